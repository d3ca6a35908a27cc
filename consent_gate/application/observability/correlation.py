"""Decision correlation IDs.

Each coordinator evaluation runs inside ``decision_scope()``: a fresh ID is
placed in a ContextVar for the duration of the evaluation, so the
grant/revoke/purge logs it triggers (including those of the transition task
spawned from it) carry the ID of the signal combination that caused them.
Leaving the scope restores whatever ID was current before.

Usage:
    with decision_scope() as correlation_id:
        log.info("consent_decision", allow=True)  # carries correlation_id

    # In structlog configuration
    processors = [..., correlation_id_processor, ...]
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Empty string means "no decision in progress"
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Current decision's correlation ID, or empty string outside a scope."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID without scoping. Prefer decision_scope()."""
    _correlation_id.set(correlation_id)


@contextmanager
def decision_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Open a correlation scope for one consent decision.

    Args:
        correlation_id: ID to use; a new UUID4 when omitted.

    Yields:
        The scope's correlation ID.
    """
    scope_id = correlation_id or generate_correlation_id()
    token = _correlation_id.set(scope_id)
    try:
        yield scope_id
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding the current correlation_id.

    A correlation_id already bound on the logger is left untouched, and
    nothing is added outside a decision scope.
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict
