"""Diagnostics ports.

Passive observers of lifecycle transitions. The decision logic never reads
from them; they exist for tests and operators.
"""

from __future__ import annotations

from typing import Protocol


class DiagnosticEventSinkProtocol(Protocol):
    """Receives short tagged diagnostic messages."""

    def post(self, tag: str, message: str) -> None: ...


class LifecycleMetricsProtocol(Protocol):
    """Counts lifecycle transitions and failures."""

    def record_start(self, duration_seconds: float) -> None: ...

    def record_stop(self, duration_seconds: float) -> None: ...

    def record_failure(self, operation: str) -> None: ...


class TripwireProtocol(Protocol):
    """Flags vendor traffic while the gate believes the vendor is off."""

    def gate_mismatch(self, api: str) -> None:
        """An application call was blocked by the no-op sink."""
        ...

    def vendor_activity_while_stopped(self, source: str, detail: str = "") -> None:
        """The vendor produced data while de-authorized."""
        ...
