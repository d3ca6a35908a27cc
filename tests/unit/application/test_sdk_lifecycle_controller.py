"""Unit tests for SdkLifecycleController.

Tests cover:
- Bootstrap ordering and idempotence
- Grant/revoke transitions, their idempotence and sink swap ordering
- Failure handling (vendor start/stop failures, partial purge)
- Event routing through the active sink and direct vendor calls
- Listener-driven tripwire violations
"""

import asyncio
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from consent_gate.application.services.analytics_sinks import NoopSink, VendorSink
from consent_gate.application.services.sdk_lifecycle_controller import (
    LifecycleSnapshot,
    SdkLifecycleController,
    _LifecycleCell,
)
from consent_gate.domain.models.lifecycle import InitFailure, InitSuccess, SdkLifecycleState
from consent_gate.domain.models.vendor import DeepLinkStatus, VendorConsent
from consent_gate.domain.models.vendor_storage import StorageLocation
from consent_gate.infrastructure.diagnostics.event_bus import DiagnosticEventBus
from consent_gate.infrastructure.diagnostics.tripwire import Tripwire
from consent_gate.infrastructure.monitoring.metrics import LifecycleMetrics
from consent_gate.infrastructure.stubs.vendor_sdk_stub import VendorSdkStub
from consent_gate.infrastructure.stubs.vendor_storage_stub import VendorStorageStub


class SinkObservingSdk(VendorSdkStub):
    """Simulator that records which sink the controller exposed during stop()."""

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.controller: SdkLifecycleController | None = None
        self.sinks_seen_on_stop: list[object] = []

    def stop(self, is_stopped: bool) -> None:
        if is_stopped and self.controller is not None:
            self.sinks_seen_on_stop.append(self.controller.sink)
        super().stop(is_stopped)


class TestLifecycleCell:
    """Tests for the compare-and-set holder."""

    def test_compare_and_set_by_identity(self) -> None:
        """Only the exact expected snapshot object can be replaced."""
        sink = NoopSink()
        first = LifecycleSnapshot(SdkLifecycleState.UNINITIALIZED, sink)
        lookalike = LifecycleSnapshot(SdkLifecycleState.UNINITIALIZED, sink)
        new = LifecycleSnapshot(SdkLifecycleState.BOOTSTRAPPED_STOPPED, sink)
        cell = _LifecycleCell(first)

        assert cell.compare_and_set(lookalike, new) is False
        assert cell.compare_and_set(first, new) is True
        assert cell.get() is new


class TestBootstrap:
    """Tests for bootstrap()."""

    @pytest.mark.asyncio
    async def test_initial_state(self, controller: SdkLifecycleController) -> None:
        """A fresh controller is uninitialized with the no-op sink."""
        assert controller.state is SdkLifecycleState.UNINITIALIZED
        assert isinstance(controller.sink, NoopSink)
        assert not controller.is_bootstrapped

    @pytest.mark.asyncio
    async def test_bootstrap_calls_vendor_in_order(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        """Debug log, TCF collection, then init with the dev key and listener."""
        result = await controller.bootstrap()

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.method_calls() == ["set_debug_log", "enable_tcf_data_collection", "init"]
        assert vendor_sdk.dev_key == "test-dev-key"
        assert vendor_sdk.tcf_enabled is True
        assert vendor_sdk.listener is not None
        assert controller.state is SdkLifecycleState.BOOTSTRAPPED_STOPPED
        assert isinstance(controller.sink, NoopSink)

    @pytest.mark.asyncio
    async def test_bootstrap_does_not_start_vendor(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.bootstrap()

        assert vendor_sdk.start_count == 0
        assert not controller.is_started

    @pytest.mark.asyncio
    async def test_bootstrap_is_idempotent(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        """A second bootstrap makes no vendor calls."""
        await controller.bootstrap()
        calls_before = len(vendor_sdk.calls)

        result = await controller.bootstrap()

        assert isinstance(result, InitSuccess)
        assert len(vendor_sdk.calls) == calls_before

    @pytest.mark.asyncio
    async def test_bootstrap_failure_stays_uninitialized(
        self,
        vendor_storage: VendorStorageStub,
        metrics: LifecycleMetrics,
    ) -> None:
        """A failing vendor init leaves the controller uninitialized."""
        sdk = VendorSdkStub(fail_on={"init"})
        controller = SdkLifecycleController(sdk, vendor_storage, "k", metrics=metrics)

        result = await controller.bootstrap()

        assert isinstance(result, InitFailure)
        assert "init failed" in result.message
        assert controller.state is SdkLifecycleState.UNINITIALIZED
        assert metrics.snapshot()["failures"] == 1

    @pytest.mark.asyncio
    async def test_debug_log_flag_is_forwarded(self, vendor_storage: VendorStorageStub) -> None:
        sdk = VendorSdkStub()
        controller = SdkLifecycleController(sdk, vendor_storage, "k", debug_log=False)

        await controller.bootstrap()

        assert sdk.calls[0] == ("set_debug_log", (False,))


class TestGrant:
    """Tests for grant()."""

    @pytest.mark.asyncio
    async def test_grant_bootstraps_then_starts(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        """Grant from UNINITIALIZED bootstraps first, unpauses, then starts."""
        result = await controller.grant()

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.method_calls() == [
            "set_debug_log",
            "enable_tcf_data_collection",
            "init",
            "stop",
            "start",
        ]
        assert vendor_sdk.calls[3] == ("stop", (False,))
        assert vendor_sdk.running
        assert controller.state is SdkLifecycleState.STARTED
        assert isinstance(controller.sink, VendorSink)

    @pytest.mark.asyncio
    async def test_grant_twice_starts_once(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.grant()
        result = await controller.grant()

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.start_count == 1

    @pytest.mark.asyncio
    async def test_start_failure_keeps_gate_closed(
        self,
        vendor_storage: VendorStorageStub,
        metrics: LifecycleMetrics,
    ) -> None:
        """A failed start leaves the no-op sink in place and re-pauses the vendor."""
        sdk = VendorSdkStub(fail_on={"start"})
        controller = SdkLifecycleController(sdk, vendor_storage, "k", metrics=metrics)

        result = await controller.grant()

        assert isinstance(result, InitFailure)
        assert controller.state is SdkLifecycleState.BOOTSTRAPPED_STOPPED
        assert isinstance(controller.sink, NoopSink)
        assert sdk.calls[-1] == ("stop", (True,))
        assert sdk.paused is True
        assert metrics.snapshot() == {"starts": 0, "stops": 0, "failures": 1}

    @pytest.mark.asyncio
    async def test_grant_records_metrics_and_event(
        self,
        controller: SdkLifecycleController,
        metrics: LifecycleMetrics,
        event_bus: DiagnosticEventBus,
    ) -> None:
        await controller.grant()

        assert metrics.snapshot()["starts"] == 1
        assert any("STARTED in" in e.msg for e in event_bus.tagged("lifecycle"))

    @pytest.mark.asyncio
    async def test_grant_logs_start(
        self, vendor_sdk: VendorSdkStub, vendor_storage: VendorStorageStub
    ) -> None:
        """sdk_started is logged with the grant operation and vendor."""
        with capture_logs() as logs:
            controller = SdkLifecycleController(vendor_sdk, vendor_storage, "k")
            await controller.grant()

        started = [entry for entry in logs if entry["event"] == "sdk_started"]
        assert len(started) == 1
        assert started[0]["operation"] == "grant"
        assert started[0]["vendor"] == "APPSFLYER"
        assert started[0]["service"] == "SdkLifecycleController"
        assert "latency_ms" in started[0]

    @pytest.mark.asyncio
    async def test_start_if_allowed(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        """start_if_allowed(False) does nothing; True grants."""
        await controller.start_if_allowed(False)
        assert vendor_sdk.calls == []

        await controller.start_if_allowed(True)
        assert controller.is_started


class TestRevoke:
    """Tests for revoke() and stop()."""

    @pytest.mark.asyncio
    async def test_revoke_stops_and_purges(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        vendor_storage: VendorStorageStub,
    ) -> None:
        """Vendor files are deleted; unrelated files stay."""
        vendor_storage.add(StorageLocation.CACHE, "AF_queue_1.json", 12)
        vendor_storage.add(StorageLocation.PREFERENCES, "appsflyer-data.xml", 4)
        vendor_storage.add(StorageLocation.FILES, "app_state.json", 9)
        await controller.grant()

        result = await controller.revoke(purge=True)

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.calls[-1] == ("stop", (True,))
        assert not vendor_sdk.running
        assert controller.state is SdkLifecycleState.BOOTSTRAPPED_STOPPED
        assert isinstance(controller.sink, NoopSink)
        assert vendor_storage.names() == ["app_state.json"]

    @pytest.mark.asyncio
    async def test_revoke_twice_stops_once(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        vendor_storage: VendorStorageStub,
    ) -> None:
        await controller.grant()
        await controller.revoke()
        result = await controller.revoke()

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.stop_count == 1
        assert vendor_storage.purge_calls == 1

    @pytest.mark.asyncio
    async def test_revoke_when_never_started_is_noop(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        vendor_storage: VendorStorageStub,
    ) -> None:
        result = await controller.revoke()

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.calls == []
        assert vendor_storage.purge_calls == 0

    @pytest.mark.asyncio
    async def test_noop_sink_installed_before_vendor_stop(
        self, vendor_storage: VendorStorageStub
    ) -> None:
        """By the time the vendor's stop runs, callers already get the no-op sink."""
        sdk = SinkObservingSdk()
        controller = SdkLifecycleController(sdk, vendor_storage, "k")
        sdk.controller = controller
        await controller.grant()

        await controller.revoke()

        assert len(sdk.sinks_seen_on_stop) == 1
        assert isinstance(sdk.sinks_seen_on_stop[0], NoopSink)

    @pytest.mark.asyncio
    async def test_stop_failure_still_purges(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        vendor_storage: VendorStorageStub,
        metrics: LifecycleMetrics,
    ) -> None:
        """A failed vendor stop is reported but the gate closes and purges anyway."""
        vendor_storage.add(StorageLocation.CACHE, "AF_queue_1.json")
        await controller.grant()
        vendor_sdk.fail_on.add("stop")

        result = await controller.revoke(purge=True)

        assert isinstance(result, InitFailure)
        assert controller.state is SdkLifecycleState.BOOTSTRAPPED_STOPPED
        assert isinstance(controller.sink, NoopSink)
        assert vendor_storage.purge_calls == 1
        assert vendor_storage.names() == []
        assert metrics.snapshot()["failures"] == 1

    @pytest.mark.asyncio
    async def test_partial_purge_is_reported_not_raised(
        self, vendor_sdk: VendorSdkStub, vendor_storage: VendorStorageStub
    ) -> None:
        """Undeletable entries are logged; the rest are deleted."""
        vendor_storage.add(StorageLocation.CACHE, "AF_queue_1.json")
        vendor_storage.add(StorageLocation.CACHE, "AF_locked.json")
        vendor_storage.undeletable.add("AF_locked.json")

        with capture_logs() as logs:
            controller = SdkLifecycleController(vendor_sdk, vendor_storage, "k")
            await controller.grant()
            result = await controller.revoke()

        assert isinstance(result, InitSuccess)
        assert vendor_storage.names() == ["AF_locked.json"]
        not_deleted = [e for e in logs if e["event"] == "vendor_file_not_deleted"]
        assert not_deleted[0]["failure"] == "cache/AF_locked.json: permission denied"
        purged = next(e for e in logs if e["event"] == "vendor_state_purged")
        assert purged["deleted_count"] == 1
        assert purged["failed_count"] == 1

    @pytest.mark.asyncio
    async def test_manual_stop_does_not_purge(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        vendor_storage: VendorStorageStub,
    ) -> None:
        vendor_storage.add(StorageLocation.CACHE, "AF_queue_1.json")
        await controller.grant()

        await controller.stop()

        assert not controller.is_started
        assert vendor_sdk.stop_count == 1
        assert vendor_storage.purge_calls == 0
        assert vendor_storage.names() == ["AF_queue_1.json"]

    @pytest.mark.asyncio
    async def test_grant_after_revoke_restarts(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        """Re-granting unpauses and starts the vendor again."""
        await controller.grant()
        await controller.revoke()
        await controller.grant()

        assert vendor_sdk.start_count == 2
        assert vendor_sdk.running
        assert controller.is_started

    @pytest.mark.asyncio
    async def test_metrics_after_full_cycle(
        self, controller: SdkLifecycleController, metrics: LifecycleMetrics
    ) -> None:
        await controller.grant()
        await controller.revoke()

        assert metrics.snapshot() == {"starts": 1, "stops": 1, "failures": 0}


class TestConcurrentTransitions:
    """Transitions are serialized; state and sink never disagree."""

    @pytest.mark.asyncio
    async def test_gathered_transitions_end_consistent(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        """Transitions apply in call order and leave a consistent pair."""
        results = await asyncio.gather(
            controller.grant(),
            controller.revoke(),
            controller.grant(),
            controller.grant(),
        )

        assert all(isinstance(r, InitSuccess) for r in results)
        snapshot = controller.snapshot
        assert snapshot.state is SdkLifecycleState.STARTED
        assert isinstance(snapshot.sink, VendorSink)
        assert vendor_sdk.start_count == 2
        assert vendor_sdk.stop_count == 1

    @pytest.mark.asyncio
    async def test_snapshot_pairs_state_with_sink(
        self, controller: SdkLifecycleController
    ) -> None:
        """Every observed snapshot pairs STARTED with the vendor sink only."""
        observed: list[LifecycleSnapshot] = []

        async def watch() -> None:
            for _ in range(200):
                observed.append(controller.snapshot)
                await asyncio.sleep(0)

        watcher = asyncio.create_task(watch())
        for _ in range(5):
            await controller.grant()
            await controller.revoke()
        await watcher

        for snapshot in observed:
            assert snapshot.is_started == isinstance(snapshot.sink, VendorSink)


class TestEventApi:
    """Tests for log_event/set_user_id/log_revenue routing."""

    @pytest.mark.asyncio
    async def test_calls_before_grant_are_blocked(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
        metrics: LifecycleMetrics,
    ) -> None:
        """Nothing reaches the vendor while not started."""
        await controller.bootstrap()

        result = controller.log_event("purchase", {"sku": "x"})
        controller.set_user_id("u1")
        controller.log_revenue("1.00", "EUR")

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.call_count("log_event") == 0
        assert vendor_sdk.call_count("set_customer_user_id") == 0
        assert tripwire.blocked_calls == 3
        assert metrics.blocked_calls() == 3

    @pytest.mark.asyncio
    async def test_calls_after_grant_reach_vendor(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.grant()

        controller.log_event("purchase", {"sku": "x"})
        controller.set_user_id("u1")
        controller.log_revenue("2.50", "USD")

        assert vendor_sdk.sent_events == [
            ("purchase", {"sku": "x"}),
            ("af_purchase", {"af_revenue": "2.50", "af_currency": "USD"}),
        ]
        assert vendor_sdk.customer_user_id == "u1"

    @pytest.mark.asyncio
    async def test_calls_after_revoke_are_blocked_again(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
    ) -> None:
        await controller.grant()
        await controller.revoke()

        controller.log_event("late_event")

        assert vendor_sdk.call_count("log_event") == 0
        assert tripwire.blocked_calls == 1

    @pytest.mark.asyncio
    async def test_vendor_error_becomes_failure(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        metrics: LifecycleMetrics,
    ) -> None:
        """A raising vendor call is returned as InitFailure, never raised."""
        await controller.grant()
        vendor_sdk.fail_on.add("log_event")

        result = controller.log_event("boom")

        assert isinstance(result, InitFailure)
        assert metrics.snapshot()["failures"] == 1


class TestVendorConsent:
    """Tests for set_consent()."""

    @pytest.mark.asyncio
    async def test_forwards_consent_without_lifecycle_change(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.bootstrap()

        result = await controller.set_consent(True, False, True)

        assert isinstance(result, InitSuccess)
        assert vendor_sdk.consent == VendorConsent(
            is_gdpr_subject=True,
            has_data_usage_consent=False,
            has_ad_personalization_consent=True,
        )
        assert controller.state is SdkLifecycleState.BOOTSTRAPPED_STOPPED

    @pytest.mark.asyncio
    async def test_failure_is_returned(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        vendor_sdk.fail_on.add("set_consent_data")

        result = await controller.set_consent(True, True, True)

        assert isinstance(result, InitFailure)


class TestDirectVendorCalls:
    """Direct calls reach the vendor, bypassing the sink."""

    @pytest.mark.asyncio
    async def test_log_test_event_reaches_stopped_vendor(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
        tmp_path: Path,
    ) -> None:
        """A direct call while stopped shows the vendor queueing to disk."""
        await controller.bootstrap()

        result = await controller.log_test_event("direct_1")

        assert isinstance(result, InitSuccess)
        assert [name for name, _ in vendor_sdk.queued_events] == ["direct_1"]
        assert vendor_sdk.queued_events[0][1]["test_param"] == "test_value"
        assert (tmp_path / "cache" / "AF_queue_1.json").exists()
        assert tripwire.blocked_calls == 0

    @pytest.mark.asyncio
    async def test_default_test_event_name(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.grant()

        await controller.log_test_event()

        assert vendor_sdk.sent_events[0][0] == "test_event"

    @pytest.mark.asyncio
    async def test_set_test_user_id_generates_id(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.set_test_user_id()

        assert vendor_sdk.customer_user_id is not None
        assert vendor_sdk.customer_user_id.startswith("test_user_")

    @pytest.mark.asyncio
    async def test_set_test_user_id_uses_given_id(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.set_test_user_id("direct-user")

        assert vendor_sdk.customer_user_id == "direct-user"

    @pytest.mark.asyncio
    async def test_log_test_revenue(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        await controller.grant()

        await controller.log_test_revenue()

        name, params = vendor_sdk.sent_events[0]
        assert name == "af_purchase"
        assert params["af_revenue"] == "9.99"
        assert params["af_currency"] == "USD"

    @pytest.mark.asyncio
    async def test_direct_call_failure_is_returned(
        self, controller: SdkLifecycleController, vendor_sdk: VendorSdkStub
    ) -> None:
        vendor_sdk.fail_on.add("log_event")

        result = await controller.log_test_event()

        assert isinstance(result, InitFailure)


class TestCheckCachedState:
    """Tests for check_cached_state()."""

    @pytest.mark.asyncio
    async def test_empty(self, controller: SdkLifecycleController) -> None:
        assert await controller.check_cached_state() == "No vendor cache files"

    @pytest.mark.asyncio
    async def test_lists_vendor_files(
        self, controller: SdkLifecycleController, vendor_storage: VendorStorageStub
    ) -> None:
        vendor_storage.add(StorageLocation.CACHE, "AF_queue_1.json", 10)
        vendor_storage.add(StorageLocation.FILES, "notes.txt", 3)

        text = await controller.check_cached_state()

        assert text.startswith("Found 1 vendor cache files:")
        assert "AF_queue_1.json (10 bytes" in text
        assert "notes.txt" not in text

    @pytest.mark.asyncio
    async def test_scan_error_is_reported_as_text(
        self, controller: SdkLifecycleController, vendor_storage: VendorStorageStub
    ) -> None:
        vendor_storage.scan_error = OSError("disk gone")

        assert await controller.check_cached_state() == "Error checking cache: disk gone"

    @pytest.mark.asyncio
    async def test_never_mutates(
        self, controller: SdkLifecycleController, vendor_storage: VendorStorageStub
    ) -> None:
        vendor_storage.add(StorageLocation.CACHE, "AF_queue_1.json")

        await controller.check_cached_state()

        assert vendor_storage.names() == ["AF_queue_1.json"]
        assert vendor_storage.purge_calls == 0


class TestInstrumentationListener:
    """Vendor callbacks while stopped trip the tripwire."""

    @pytest.mark.asyncio
    async def test_conversion_data_while_stopped_is_violation(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
        metrics: LifecycleMetrics,
    ) -> None:
        await controller.bootstrap()

        vendor_sdk.emit_conversion_data()

        assert tripwire.violations == ["conversion_data_success: keys=['af_status']"]
        assert metrics.violations() == 1

    @pytest.mark.asyncio
    async def test_app_open_and_deep_link_while_stopped(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
    ) -> None:
        await controller.bootstrap()

        vendor_sdk.emit_app_open_attribution()
        vendor_sdk.emit_deep_link()

        assert [v.split(":")[0] for v in tripwire.violations] == [
            "app_open_attribution",
            "deep_link_found",
        ]

    @pytest.mark.asyncio
    async def test_failures_and_misses_are_not_violations(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
        event_bus: DiagnosticEventBus,
    ) -> None:
        """Error callbacks are logged but carry no user data."""
        await controller.bootstrap()

        vendor_sdk.emit_conversion_failure()
        vendor_sdk.emit_attribution_failure()
        vendor_sdk.emit_deep_link(status=DeepLinkStatus.NOT_FOUND, deep_link=None)
        vendor_sdk.emit_deep_link(status=DeepLinkStatus.ERROR, deep_link=None, error="timeout")

        assert tripwire.violations == []
        assert len([e for e in event_bus.tagged("lifecycle") if "data flow" in e.msg]) == 4

    @pytest.mark.asyncio
    async def test_activity_while_started_is_fine(
        self,
        controller: SdkLifecycleController,
        vendor_sdk: VendorSdkStub,
        tripwire: Tripwire,
    ) -> None:
        await controller.grant()

        vendor_sdk.emit_conversion_data({"af_status": "Non-organic", "campaign": "x"})
        vendor_sdk.emit_deep_link()

        tripwire.assert_clean()
