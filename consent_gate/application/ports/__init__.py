"""Application ports (protocols implemented by infrastructure adapters)."""

from consent_gate.application.ports.analytics_sink import AnalyticsSink
from consent_gate.application.ports.cmp_signal_source import CmpSignalSourceProtocol
from consent_gate.application.ports.consent_store import ConsentStoreProtocol
from consent_gate.application.ports.diagnostics import (
    DiagnosticEventSinkProtocol,
    LifecycleMetricsProtocol,
    TripwireProtocol,
)
from consent_gate.application.ports.vendor_sdk import (
    VendorListenerProtocol,
    VendorSdkProtocol,
)
from consent_gate.application.ports.vendor_storage import VendorStorageProtocol

__all__: list[str] = [
    "AnalyticsSink",
    "CmpSignalSourceProtocol",
    "ConsentStoreProtocol",
    "DiagnosticEventSinkProtocol",
    "LifecycleMetricsProtocol",
    "TripwireProtocol",
    "VendorListenerProtocol",
    "VendorSdkProtocol",
    "VendorStorageProtocol",
]
