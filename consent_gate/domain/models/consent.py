"""Consent domain model.

This module defines the consent categories a user can grant and the
immutable snapshot that describes which of them are granted right now.

Invariants:
- A snapshot's granted set only ever holds known ConsentType members
- Unknown category names are dropped during decoding, never raised
- Snapshots are replaced wholesale on every consent change
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ConsentType(Enum):
    """Consent category a user can grant.

    Values:
        ANALYTICS: Product analytics and measurement.
        MARKETING: Attribution and marketing measurement.
        PERSONALIZATION: Personalized content and ads.
    """

    ANALYTICS = "ANALYTICS"
    MARKETING = "MARKETING"
    PERSONALIZATION = "PERSONALIZATION"

    @classmethod
    def parse(cls, name: str) -> ConsentType | None:
        """Parse a category name, returning None for unknown names."""
        try:
            return cls(name)
        except ValueError:
            return None


def decode_consent_types(
    names: Iterable[str],
) -> tuple[frozenset[ConsentType], tuple[str, ...]]:
    """Decode category names into known consent types.

    Args:
        names: Raw category names (e.g. from a store or policy file).

    Returns:
        Tuple of (known consent types, unknown names that were dropped).
    """
    known: set[ConsentType] = set()
    unknown: list[str] = []
    for name in names:
        parsed = ConsentType.parse(name)
        if parsed is None:
            unknown.append(name)
        else:
            known.add(parsed)
    return frozenset(known), tuple(unknown)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConsentSnapshot:
    """Immutable view of the user's current consent choices.

    Attributes:
        user_id: Optional identity of the consenting user.
        granted: Set of granted consent categories (membership only).
        timestamp: When this snapshot was produced (UTC).
    """

    user_id: str | None
    granted: frozenset[ConsentType]
    timestamp: datetime = field(default_factory=_utc_now, compare=False)

    def __post_init__(self) -> None:
        granted = frozenset(self.granted)
        for item in granted:
            if not isinstance(item, ConsentType):
                raise TypeError(f"granted must contain ConsentType, got {item!r}")
        object.__setattr__(self, "granted", granted)

    @classmethod
    def empty(cls, user_id: str | None = None) -> ConsentSnapshot:
        """Create a snapshot with nothing granted (default deny)."""
        return cls(user_id=user_id, granted=frozenset())

    @classmethod
    def from_names(
        cls, names: Iterable[str], user_id: str | None = None
    ) -> ConsentSnapshot:
        """Create a snapshot from category names, dropping unknown ones."""
        granted, _ = decode_consent_types(names)
        return cls(user_id=user_id, granted=granted)

    def grants(self, consent_type: ConsentType) -> bool:
        """Check whether a single category is granted."""
        return consent_type in self.granted

    def names(self) -> list[str]:
        """Granted category names, sorted for stable serialization."""
        return sorted(c.value for c in self.granted)
