"""CMP (consent management platform) signal model.

A CmpSnapshot tells the gate whether the CMP finished initializing, whether
it produced a usable transparency string (e.g. a TCF string), and whether
the user's jurisdiction requires CMP-gated consent at all.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Tri(Enum):
    """Tri-state flag for signals that may not be known yet."""

    TRUE = "TRUE"
    FALSE = "FALSE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_bool(cls, value: bool | None) -> Tri:
        """Map an optional bool onto the tri-state."""
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE


@dataclass(frozen=True)
class CmpSnapshot:
    """Immutable CMP readiness snapshot, replaced wholesale on update.

    Attributes:
        ready: CMP finished initialization.
        has_transparency_string: CMP produced a usable transparency string.
        jurisdiction_applies: Whether a CMP-gated jurisdiction applies.
    """

    ready: bool = False
    has_transparency_string: bool = False
    jurisdiction_applies: Tri = Tri.UNKNOWN

    def with_changes(
        self,
        *,
        ready: bool | None = None,
        has_transparency_string: bool | None = None,
        jurisdiction_applies: Tri | None = None,
    ) -> CmpSnapshot:
        """Return a copy with the given fields replaced."""
        changes: dict[str, object] = {}
        if ready is not None:
            changes["ready"] = ready
        if has_transparency_string is not None:
            changes["has_transparency_string"] = has_transparency_string
        if jurisdiction_applies is not None:
            changes["jurisdiction_applies"] = jurisdiction_applies
        return replace(self, **changes)


INITIAL_CMP_SNAPSHOT = CmpSnapshot()
