"""Lifecycle and tripwire errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from consent_gate.domain.exceptions import ConsentGateError

if TYPE_CHECKING:
    from consent_gate.domain.models.lifecycle import SdkLifecycleState


class LifecycleStateConflictError(ConsentGateError):
    """Raised when a lifecycle compare-and-set loses.

    Transitions are serialized, so a lost compare-and-set means something
    wrote the lifecycle state outside the controller's transition lock.

    Attributes:
        expected: State the transition started from.
        actual: State found when committing.
    """

    def __init__(
        self, expected: SdkLifecycleState, actual: SdkLifecycleState
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Lifecycle state changed underneath a transition: "
            f"expected {expected.value}, found {actual.value}"
        )


class TripwireViolationError(ConsentGateError):
    """Raised by Tripwire.assert_clean() when vendor activity was seen while
    the vendor was de-authorized.

    Attributes:
        violations: Number of recorded violations.
    """

    def __init__(self, violations: int, first: str) -> None:
        self.violations = violations
        super().__init__(
            f"{violations} tripwire violation(s) recorded; first: {first}"
        )
