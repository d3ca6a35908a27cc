"""Diagnostics: event bus and tripwire."""

from consent_gate.infrastructure.diagnostics.event_bus import (
    DEFAULT_CAPACITY,
    DiagnosticEvent,
    DiagnosticEventBus,
)
from consent_gate.infrastructure.diagnostics.tripwire import Tripwire

__all__ = [
    "DEFAULT_CAPACITY",
    "DiagnosticEvent",
    "DiagnosticEventBus",
    "Tripwire",
]
