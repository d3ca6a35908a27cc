"""Diagnostic scenarios against the vendor simulator.

Each scenario wires a fresh gateway around a VendorSdkStub whose storage
root is a caller-provided directory, drives it through a fixed sequence of
calls, and reports what the vendor saw and what is left on disk.

Scenarios:
    stopped-log       start, manual stop, direct logEvent, inspect cache
    denied-log        vendor consent denied, direct logEvent, inspect cache
    granted-log       vendor consent granted, start, direct logEvent, inspect cache
    rapid-withdrawal  grant then immediately withdraw through the coordinator
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from consent_gate.bootstrap.gateway import ConsentGateway, build_gateway
from consent_gate.config.gate_config import GateConfig, GdprMode
from consent_gate.domain.models.cmp_signal import CmpSnapshot, Tri
from consent_gate.domain.models.consent import ConsentType
from consent_gate.domain.models.vendor_storage import StorageLocation
from consent_gate.infrastructure.adapters.local_vendor_storage import LocalVendorStorage
from consent_gate.infrastructure.stubs.vendor_sdk_stub import VendorSdkStub

SIMULATOR_DEV_KEY = "simulator-dev-key"


@dataclass
class ScenarioReport:
    """Outcome of one scenario run."""

    name: str
    steps: list[str] = field(default_factory=list)
    final_state: str = ""
    is_started: bool = False
    sink: str = ""
    vendor_calls: list[str] = field(default_factory=list)
    sent_events: list[str] = field(default_factory=list)
    queued_events: list[str] = field(default_factory=list)
    cache_status: str = ""
    violations: list[str] = field(default_factory=list)
    metrics: dict[str, int] = field(default_factory=dict)
    events: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "steps": self.steps,
            "final_state": self.final_state,
            "is_started": self.is_started,
            "sink": self.sink,
            "vendor_calls": self.vendor_calls,
            "sent_events": self.sent_events,
            "queued_events": self.queued_events,
            "cache_status": self.cache_status,
            "violations": self.violations,
            "metrics": self.metrics,
            "events": self.events,
        }


def _build(workdir: Path) -> tuple[ConsentGateway, VendorSdkStub]:
    storage = LocalVendorStorage.from_root(workdir)
    sdk = VendorSdkStub(cache_dir=storage.directory(StorageLocation.CACHE))
    config = GateConfig(
        dev_key=SIMULATOR_DEV_KEY,
        storage_root=workdir,
        gdpr_mode=GdprMode.AUTO,
    )
    return build_gateway(config, sdk, storage=storage), sdk


async def _finish(
    report: ScenarioReport, gateway: ConsentGateway, sdk: VendorSdkStub
) -> ScenarioReport:
    snapshot = gateway.controller.snapshot
    report.final_state = snapshot.state.value
    report.is_started = snapshot.is_started
    report.sink = repr(snapshot.sink)
    report.vendor_calls = sdk.method_calls()
    report.sent_events = [name for name, _ in sdk.sent_events]
    report.queued_events = [name for name, _ in sdk.queued_events]
    report.cache_status = await gateway.controller.check_cached_state()
    report.violations = gateway.tripwire.violations
    report.metrics = gateway.metrics.snapshot()
    report.events = [e.render() for e in reversed(gateway.event_bus.events())]
    return report


async def stopped_log(workdir: Path) -> ScenarioReport:
    """Vendor started then manually stopped; an event is logged directly."""
    gateway, sdk = _build(workdir)
    report = ScenarioReport(name="stopped-log")
    await gateway.controller.bootstrap()
    report.steps.append("bootstrap()")
    await gateway.controller.start_if_allowed(True)
    report.steps.append("start_if_allowed(True)")
    await gateway.controller.stop()
    report.steps.append("stop()")
    await gateway.controller.log_test_event("scenario_1_stopped")
    report.steps.append("log_test_event('scenario_1_stopped')")
    return await _finish(report, gateway, sdk)


async def denied_log(workdir: Path) -> ScenarioReport:
    """Vendor consent denied without starting; an event is logged directly."""
    gateway, sdk = _build(workdir)
    report = ScenarioReport(name="denied-log")
    await gateway.controller.bootstrap()
    report.steps.append("bootstrap()")
    await gateway.controller.set_consent(True, False, False)
    report.steps.append("set_consent(gdpr=True, data_usage=False, ad_personalization=False)")
    await gateway.controller.log_test_event("scenario_2_consent_denied")
    report.steps.append("log_test_event('scenario_2_consent_denied')")
    return await _finish(report, gateway, sdk)


async def granted_log(workdir: Path) -> ScenarioReport:
    """Vendor consent granted and started; an event is logged directly."""
    gateway, sdk = _build(workdir)
    report = ScenarioReport(name="granted-log")
    await gateway.controller.bootstrap()
    report.steps.append("bootstrap()")
    await gateway.controller.set_consent(True, True, True)
    report.steps.append("set_consent(gdpr=True, data_usage=True, ad_personalization=True)")
    await gateway.controller.start_if_allowed(True)
    report.steps.append("start_if_allowed(True)")
    await gateway.controller.log_test_event("scenario_3_granted")
    report.steps.append("log_test_event('scenario_3_granted')")
    return await _finish(report, gateway, sdk)


async def rapid_withdrawal(workdir: Path) -> ScenarioReport:
    """Consent granted through the coordinator, then withdrawn at once."""
    gateway, sdk = _build(workdir)
    report = ScenarioReport(name="rapid-withdrawal")
    await gateway.start()
    report.steps.append("gateway.start()")
    gateway.cmp_source.update(
        CmpSnapshot(ready=True, has_transparency_string=True, jurisdiction_applies=Tri.TRUE)
    )
    report.steps.append("cmp ready with transparency string")
    await gateway.consent_store.update(gateway.required_consent or {ConsentType.ANALYTICS})
    report.steps.append("consent granted")
    # Let the grant get in flight before withdrawing.
    for _ in range(3):
        await asyncio.sleep(0)
    await gateway.consent_store.update(set())
    report.steps.append("consent withdrawn")
    await gateway.coordinator.drain()
    await gateway.shutdown()
    report.steps.append("gateway.shutdown()")
    return await _finish(report, gateway, sdk)


SCENARIOS: dict[str, Callable[[Path], Awaitable[ScenarioReport]]] = {
    "stopped-log": stopped_log,
    "denied-log": denied_log,
    "granted-log": granted_log,
    "rapid-withdrawal": rapid_withdrawal,
}


async def run_scenario(name: str, workdir: Path) -> ScenarioReport:
    """Run a scenario by name.

    Raises:
        KeyError: Unknown scenario name.
    """
    return await SCENARIOS[name](workdir)
