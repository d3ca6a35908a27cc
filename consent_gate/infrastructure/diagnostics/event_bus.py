"""Diagnostic event bus.

Bounded, newest-first ring buffer of short tagged messages posted by the
controller, coordinator and tripwire. Live observers subscribe to a
replay-latest stream of the whole buffer.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

from consent_gate.application.services.state_stream import StateStream

DEFAULT_CAPACITY = 200


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DiagnosticEvent:
    """One posted message."""

    tag: str
    msg: str
    ts: datetime = field(default_factory=_utc_now)

    def render(self) -> str:
        return f"{self.ts.strftime('%H:%M:%S.%f')[:-3]} [{self.tag}] {self.msg}"


class DiagnosticEventBus:
    """Thread-safe bounded event log.

    Attributes:
        capacity: Maximum number of retained events; oldest are evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._events: deque[DiagnosticEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._stream: StateStream[tuple[DiagnosticEvent, ...]] = StateStream(())

    def post(self, tag: str, message: str) -> None:
        """Record a message and publish the updated buffer."""
        event = DiagnosticEvent(tag=tag, msg=message)
        with self._lock:
            self._events.appendleft(event)
            current = tuple(self._events)
        self._stream.emit(current)

    def events(self) -> list[DiagnosticEvent]:
        """Retained events, newest first."""
        with self._lock:
            return list(self._events)

    def tagged(self, tag: str) -> list[DiagnosticEvent]:
        """Retained events with the given tag, newest first."""
        return [e for e in self.events() if e.tag == tag]

    def stream(self) -> StateStream[tuple[DiagnosticEvent, ...]]:
        """Live stream of the buffer, newest first."""
        return self._stream

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
        self._stream.emit(())

    def __len__(self) -> int:
        return len(self._events)
