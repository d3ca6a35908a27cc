"""Policy source errors.

Malformed individual policy entries are dropped with a warning by the
loader; only a file that cannot be decoded at all is fatal.
"""

from __future__ import annotations

from consent_gate.domain.exceptions import ConsentGateError


class PolicyDecodeError(ConsentGateError):
    """Raised when the SDK policy document cannot be decoded at all.

    Attributes:
        source: Where the policy was read from (path or label).
        reason: Why decoding failed.
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot decode SDK policy from {source}: {reason}")


class ConfigurationError(ConsentGateError):
    """Raised when gate configuration holds a value that cannot be used."""

    def __init__(self, key: str, value: str, reason: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid {key}={value!r}: {reason}")
