"""
Pytest configuration and shared fixtures for consent gate tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async collaborator mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
- Objects whose logs are asserted are built inside structlog.testing.capture_logs
"""

from collections.abc import Generator
from pathlib import Path

import pytest
import structlog
from prometheus_client import CollectorRegistry

from consent_gate.application.services.sdk_lifecycle_controller import (
    SdkLifecycleController,
)
from consent_gate.domain.models.consent import ConsentType
from consent_gate.infrastructure.diagnostics.event_bus import DiagnosticEventBus
from consent_gate.infrastructure.diagnostics.tripwire import Tripwire
from consent_gate.infrastructure.monitoring.metrics import LifecycleMetrics
from consent_gate.infrastructure.stubs.vendor_sdk_stub import VendorSdkStub
from consent_gate.infrastructure.stubs.vendor_storage_stub import VendorStorageStub

REQUIRED = frozenset({ConsentType.ANALYTICS, ConsentType.MARKETING})


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults so configure() calls never leak between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from consent_gate import __version__

    return __version__


@pytest.fixture
def required_consent() -> frozenset[ConsentType]:
    """Categories the default APPSFLYER policy requires."""
    return REQUIRED


@pytest.fixture
def vendor_sdk(tmp_path: Path) -> VendorSdkStub:
    """Vendor simulator writing queued events under tmp_path/cache."""
    return VendorSdkStub(cache_dir=tmp_path / "cache")


@pytest.fixture
def vendor_storage() -> VendorStorageStub:
    """In-memory vendor storage."""
    return VendorStorageStub()


@pytest.fixture
def metrics() -> LifecycleMetrics:
    """Lifecycle metrics on an isolated registry."""
    return LifecycleMetrics(registry=CollectorRegistry())


@pytest.fixture
def event_bus() -> DiagnosticEventBus:
    return DiagnosticEventBus(capacity=50)


@pytest.fixture
def tripwire(event_bus: DiagnosticEventBus, metrics: LifecycleMetrics) -> Tripwire:
    return Tripwire(event_bus=event_bus, metrics=metrics)


@pytest.fixture
def controller(
    vendor_sdk: VendorSdkStub,
    vendor_storage: VendorStorageStub,
    event_bus: DiagnosticEventBus,
    metrics: LifecycleMetrics,
    tripwire: Tripwire,
) -> SdkLifecycleController:
    """Controller wired to the simulator and in-memory storage."""
    return SdkLifecycleController(
        vendor_sdk,
        vendor_storage,
        "test-dev-key",
        event_bus=event_bus,
        metrics=metrics,
        tripwire=tripwire,
    )
