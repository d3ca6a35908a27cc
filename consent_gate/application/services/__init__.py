"""Application services: streams, sinks, lifecycle controller, coordinator."""

from consent_gate.application.services.analytics_sinks import NoopSink, VendorSink
from consent_gate.application.services.base import LoggingMixin
from consent_gate.application.services.consent_coordinator import ConsentCoordinator
from consent_gate.application.services.sdk_lifecycle_controller import (
    LifecycleSnapshot,
    SdkLifecycleController,
)
from consent_gate.application.services.state_stream import StateStream, StreamSubscription

__all__: list[str] = [
    "ConsentCoordinator",
    "LifecycleSnapshot",
    "LoggingMixin",
    "NoopSink",
    "SdkLifecycleController",
    "StateStream",
    "StreamSubscription",
    "VendorSink",
]
