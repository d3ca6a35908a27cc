"""Bootstrap wiring for the consent gateway.

Builds the full object graph for one vendor: policy registry, signal
sources, lifecycle controller, coordinator and diagnostics.

Usage:
    gateway = build_gateway(load_config(), vendor_sdk=binding)
    await gateway.start()
    gateway.controller.log_event("app_open")
    ...
    await gateway.shutdown()
"""

from __future__ import annotations

from dataclasses import dataclass

from structlog import get_logger

from consent_gate.application.ports.consent_store import ConsentStoreProtocol
from consent_gate.application.ports.vendor_sdk import VendorSdkProtocol
from consent_gate.application.ports.vendor_storage import VendorStorageProtocol
from consent_gate.application.services.consent_coordinator import ConsentCoordinator
from consent_gate.application.services.sdk_lifecycle_controller import (
    SdkLifecycleController,
)
from consent_gate.config.gate_config import GateConfig
from consent_gate.domain.models.consent import ConsentType
from consent_gate.domain.models.lifecycle import InitResult
from consent_gate.domain.models.sdk_registry import SdkRegistry
from consent_gate.infrastructure.adapters.cmp_state_source import CmpStateSource
from consent_gate.infrastructure.adapters.file_consent_store import FileConsentStore
from consent_gate.infrastructure.adapters.in_memory_consent_store import (
    InMemoryConsentStore,
)
from consent_gate.infrastructure.adapters.local_vendor_storage import LocalVendorStorage
from consent_gate.infrastructure.adapters.policy_file_loader import (
    load_default_registry,
    load_registry,
)
from consent_gate.infrastructure.diagnostics.event_bus import DiagnosticEventBus
from consent_gate.infrastructure.diagnostics.tripwire import Tripwire
from consent_gate.infrastructure.monitoring.metrics import LifecycleMetrics

logger = get_logger()


@dataclass
class ConsentGateway:
    """Wired gateway for one vendor."""

    config: GateConfig
    registry: SdkRegistry
    required_consent: frozenset[ConsentType]
    consent_store: ConsentStoreProtocol
    cmp_source: CmpStateSource
    storage: VendorStorageProtocol
    controller: SdkLifecycleController
    coordinator: ConsentCoordinator
    event_bus: DiagnosticEventBus
    metrics: LifecycleMetrics
    tripwire: Tripwire

    async def start(self) -> InitResult:
        """Bootstrap the vendor (listeners only) and start reconciling."""
        result = await self.controller.bootstrap()
        await self.coordinator.start()
        return result

    async def shutdown(self) -> None:
        """Release the coordinator's subscriptions. The vendor is left as is."""
        await self.coordinator.stop()


def load_policy(config: GateConfig) -> SdkRegistry:
    """Load the configured policy file, or the packaged default."""
    if config.policy_path is not None:
        return load_registry(config.policy_path)
    return load_default_registry()


def build_gateway(
    config: GateConfig,
    vendor_sdk: VendorSdkProtocol,
    *,
    storage: VendorStorageProtocol | None = None,
    consent_store: ConsentStoreProtocol | None = None,
    cmp_source: CmpStateSource | None = None,
    registry: SdkRegistry | None = None,
) -> ConsentGateway:
    """Wire a gateway for the configured vendor.

    Args:
        config: Gate configuration.
        vendor_sdk: The vendor binding (or VendorSdkStub).
        storage: Vendor storage; defaults to LocalVendorStorage at
            ``config.storage_root``.
        consent_store: Consent store; defaults to FileConsentStore when
            ``config.consent_file`` is set, InMemoryConsentStore otherwise.
        cmp_source: CMP source; defaults to a fresh CmpStateSource.
        registry: Policy registry; defaults to ``load_policy(config)``.

    Raises:
        PolicyDecodeError: The policy file cannot be decoded.
    """
    log = logger.bind(vendor=config.vendor.value)
    if registry is None:
        registry = load_policy(config)
    sdk_config = registry.get(config.vendor)
    if sdk_config is None:
        log.warning("sdk_policy_missing_vendor", policy_version=registry.version)
        required: frozenset[ConsentType] = frozenset()
    else:
        required = sdk_config.required_consent
    if not required:
        log.warning("sdk_policy_has_no_consent_requirements")

    if consent_store is None:
        if config.consent_file is not None:
            consent_store = FileConsentStore(config.consent_file)
        else:
            consent_store = InMemoryConsentStore()
    if storage is None:
        storage = LocalVendorStorage.from_root(config.storage_root)
    if cmp_source is None:
        cmp_source = CmpStateSource()

    event_bus = DiagnosticEventBus(capacity=config.event_bus_capacity)
    metrics = LifecycleMetrics()
    tripwire = Tripwire(event_bus=event_bus, metrics=metrics)

    controller = SdkLifecycleController(
        vendor_sdk,
        storage,
        config.dev_key,
        vendor_name=config.vendor.value,
        debug_log=config.vendor_debug_log,
        event_bus=event_bus,
        metrics=metrics,
        tripwire=tripwire,
    )
    coordinator = ConsentCoordinator(
        consent_store,
        cmp_source,
        controller,
        required,
        gdpr_subject=config.gdpr_mode.resolver(),
        event_bus=event_bus,
    )
    log.info(
        "gateway_built",
        required=sorted(c.value for c in required),
        gdpr_mode=config.gdpr_mode.value,
        consent_store=type(consent_store).__name__,
    )
    return ConsentGateway(
        config=config,
        registry=registry,
        required_consent=required,
        consent_store=consent_store,
        cmp_source=cmp_source,
        storage=storage,
        controller=controller,
        coordinator=coordinator,
        event_bus=event_bus,
        metrics=metrics,
        tripwire=tripwire,
    )
