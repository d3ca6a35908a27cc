"""Tripwire: flags vendor traffic while the gate says the vendor is off.

Two kinds of signal:
- gate mismatch: an application call hit the no-op sink. Expected while
  consent is withheld; counted as a blocked call.
- violation: the vendor itself produced data (attribution, deep link)
  while stopped. Counted, logged at error level, and turned into a
  TripwireViolationError by assert_clean().
"""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

from structlog import get_logger

from consent_gate.domain.errors import TripwireViolationError

if TYPE_CHECKING:
    from consent_gate.infrastructure.diagnostics.event_bus import DiagnosticEventBus
    from consent_gate.infrastructure.monitoring.metrics import LifecycleMetrics

logger = get_logger()

EVENT_TAG = "tripwire"

# Violation details retained; older entries are dropped, the count is kept.
DEFAULT_VIOLATION_CAPACITY = 100


class Tripwire:
    """Thread-safe violation recorder.

    Keeps the total violation count, the first violation, and the most recent
    ``capacity`` violation details.
    """

    def __init__(
        self,
        event_bus: DiagnosticEventBus | None = None,
        metrics: LifecycleMetrics | None = None,
        capacity: int = DEFAULT_VIOLATION_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._event_bus = event_bus
        self._metrics = metrics
        self._lock = threading.Lock()
        self._violations: deque[str] = deque(maxlen=capacity)
        self._violation_count = 0
        self._first_violation: str | None = None
        self._blocked_calls = 0
        self._log = logger.bind(component="tripwire")

    @property
    def violations(self) -> list[str]:
        with self._lock:
            return list(self._violations)

    @property
    def violation_count(self) -> int:
        """Violations recorded since construction or the last reset()."""
        with self._lock:
            return self._violation_count

    @property
    def blocked_calls(self) -> int:
        return self._blocked_calls

    def gate_mismatch(self, api: str) -> None:
        with self._lock:
            self._blocked_calls += 1
        self._log.warning("tripwire_gate_mismatch", api=api)
        if self._metrics is not None:
            self._metrics.record_blocked_call(api)
        if self._event_bus is not None:
            self._event_bus.post(EVENT_TAG, f"blocked {api} (no consent)")

    def vendor_activity_while_stopped(self, source: str, detail: str = "") -> None:
        entry = f"{source}: {detail}" if detail else source
        with self._lock:
            self._violations.append(entry)
            self._violation_count += 1
            if self._first_violation is None:
                self._first_violation = entry
        self._log.error("tripwire_vendor_activity_while_stopped", source=source, detail=detail)
        if self._metrics is not None:
            self._metrics.record_violation(source)
        if self._event_bus is not None:
            self._event_bus.post(EVENT_TAG, f"VIOLATION {entry}")

    def assert_clean(self) -> None:
        """Raise TripwireViolationError if any violation was recorded."""
        with self._lock:
            count = self._violation_count
            first = self._first_violation
        if first is not None:
            raise TripwireViolationError(count, first)

    def reset(self) -> None:
        with self._lock:
            self._violations.clear()
            self._violation_count = 0
            self._first_violation = None
            self._blocked_calls = 0
