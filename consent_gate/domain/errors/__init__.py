"""Domain errors for Consent Gate.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from ConsentGateError.
"""

from consent_gate.domain.errors.lifecycle import (
    LifecycleStateConflictError,
    TripwireViolationError,
)
from consent_gate.domain.errors.policy import ConfigurationError, PolicyDecodeError

__all__: list[str] = [
    "ConfigurationError",
    "LifecycleStateConflictError",
    "PolicyDecodeError",
    "TripwireViolationError",
]
