"""Lifecycle and authorization value types.

Defines the vendor SDK lifecycle states, the Mapper's authorization output,
and the explicit success/failure result every lifecycle and event-logging
operation returns instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class SdkLifecycleState(Enum):
    """Lifecycle of the vendor SDK wrapper.

    Values:
        UNINITIALIZED: Listeners not yet registered with the vendor.
        BOOTSTRAPPED_STOPPED: Listeners registered, transmission off.
        STARTED: Transmission on; the vendor-backed sink is active.
    """

    UNINITIALIZED = "UNINITIALIZED"
    BOOTSTRAPPED_STOPPED = "BOOTSTRAPPED_STOPPED"
    STARTED = "STARTED"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Derived authorization for one vendor. Never persisted.

    Attributes:
        allow: Whether data may flow to the vendor.
        policy_allows: Every required category is granted.
        cmp_allows: CMP gating is satisfied (or not applicable).
        policy_unconfigured: The required set was empty, so the policy
            allowed trivially.
    """

    allow: bool
    policy_allows: bool = False
    cmp_allows: bool = False
    policy_unconfigured: bool = False


@dataclass(frozen=True)
class InitSuccess:
    """Operation completed (or was an idempotent no-op)."""

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class InitFailure:
    """Operation failed; carries the cause.

    Attributes:
        error: The exception raised by the vendor or storage call.
    """

    error: BaseException

    @property
    def is_success(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


InitResult = Union[InitSuccess, InitFailure]

INIT_SUCCESS = InitSuccess()
