"""Declarative per-vendor SDK policy record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from consent_gate.domain.models.consent import ConsentType


class SdkId(Enum):
    """Vendor integrations the gate knows how to front."""

    APPSFLYER = "APPSFLYER"
    ADJUST = "ADJUST"
    FIREBASE_ANALYTICS = "FIREBASE_ANALYTICS"

    @classmethod
    def parse(cls, name: str) -> SdkId | None:
        """Parse a vendor id, returning None for unknown ids."""
        try:
            return cls(name)
        except ValueError:
            return None


class ExecutionContext(Enum):
    """Execution context a vendor integration must run on."""

    FOREGROUND = "FOREGROUND"
    BACKGROUND = "BACKGROUND"

    @classmethod
    def parse(cls, name: str) -> ExecutionContext | None:
        """Parse an execution context, returning None for unknown names."""
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class SdkConfig:
    """Policy for one vendor integration. Read-only after load.

    Attributes:
        id: Vendor identifier.
        required_consent: Categories that must all be granted.
        init_order: Position in multi-vendor startup sequencing.
        execution_context: Context the integration must run on.
    """

    id: SdkId
    required_consent: frozenset[ConsentType]
    init_order: int = 0
    execution_context: ExecutionContext = ExecutionContext.BACKGROUND

    def __post_init__(self) -> None:
        object.__setattr__(self, "required_consent", frozenset(self.required_consent))

    @property
    def has_consent_requirements(self) -> bool:
        """False when the policy requires nothing (possibly unconfigured)."""
        return bool(self.required_consent)
