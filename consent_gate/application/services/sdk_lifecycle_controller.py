"""SDK lifecycle controller.

Owns the vendor SDK handle, the lifecycle state and the active analytics
sink, and is the only component allowed to touch any of them.

State machine:
    UNINITIALIZED --bootstrap--> BOOTSTRAPPED_STOPPED --grant--> STARTED
    STARTED --revoke--> BOOTSTRAPPED_STOPPED

Operating Rules:
1. ONE TRANSITION AT A TIME - bootstrap/grant/revoke hold an asyncio lock
2. STATE AND SINK MOVE TOGETHER - both live in one immutable snapshot held
   by a compare-and-set cell, so no reader ever sees a torn pair
3. GRANT SWAPS LAST - the vendor sink is installed only after start()
4. REVOKE SWAPS FIRST - the no-op sink is installed before stop(), so
   concurrent event calls stop reaching the vendor immediately
5. NEVER RAISE - every operation returns InitSuccess or InitFailure

Reads (``state``, ``sink``, ``is_started``, event-logging calls) never take
the transition lock and are safe from any thread.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from consent_gate.application.services.analytics_sinks import NoopSink, VendorSink
from consent_gate.application.services.base import LoggingMixin
from consent_gate.domain.errors import LifecycleStateConflictError
from consent_gate.domain.models.lifecycle import (
    INIT_SUCCESS,
    InitFailure,
    InitResult,
    SdkLifecycleState,
)
from consent_gate.domain.models.vendor import (
    DeepLinkResult,
    DeepLinkStatus,
    VendorConsent,
)
from consent_gate.domain.models.vendor_storage import (
    APPSFLYER_FILE_FILTER,
    PurgeReport,
    VendorFileFilter,
    format_cache_inventory,
)

if TYPE_CHECKING:
    from consent_gate.application.ports.analytics_sink import AnalyticsSink
    from consent_gate.application.ports.diagnostics import (
        DiagnosticEventSinkProtocol,
        LifecycleMetricsProtocol,
        TripwireProtocol,
    )
    from consent_gate.application.ports.vendor_sdk import VendorSdkProtocol
    from consent_gate.application.ports.vendor_storage import VendorStorageProtocol

T = TypeVar("T")

EVENT_TAG = "lifecycle"


@dataclass(frozen=True)
class LifecycleSnapshot:
    """Lifecycle state paired with the sink that goes with it."""

    state: SdkLifecycleState
    sink: AnalyticsSink

    @property
    def is_started(self) -> bool:
        return self.state is SdkLifecycleState.STARTED


class _LifecycleCell:
    """Single authoritative holder of the LifecycleSnapshot.

    Reads are a single reference load. Writes go through compare_and_set.
    """

    def __init__(self, initial: LifecycleSnapshot) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> LifecycleSnapshot:
        return self._value

    def compare_and_set(
        self, expected: LifecycleSnapshot, new: LifecycleSnapshot
    ) -> bool:
        with self._lock:
            if self._value is not expected:
                return False
            self._value = new
            return True


class _InstrumentationListener:
    """Vendor callback listener. Logs all data flow and fires the tripwire
    when the vendor produces data while the gate says it is off."""

    def __init__(self, controller: SdkLifecycleController) -> None:
        self._controller = controller

    def _observe(self, callback: str, detail: str, *, violation_if_stopped: bool) -> None:
        started = self._controller.is_started
        self._controller._log.warning(
            "vendor_data_flow",
            callback=callback,
            is_started=started,
            detail=detail,
        )
        self._controller._post(f"data flow: {callback} (started={started}) {detail}".rstrip())
        if violation_if_stopped and not started:
            self._controller._report_violation(callback, detail)

    def on_conversion_data_success(self, data: Mapping[str, Any] | None) -> None:
        keys = sorted(data.keys()) if data else []
        self._observe("conversion_data_success", f"keys={keys}", violation_if_stopped=True)

    def on_conversion_data_fail(self, error: str | None) -> None:
        self._observe("conversion_data_fail", f"error={error}", violation_if_stopped=False)

    def on_app_open_attribution(self, data: Mapping[str, str] | None) -> None:
        keys = sorted(data.keys()) if data else []
        self._observe("app_open_attribution", f"keys={keys}", violation_if_stopped=True)

    def on_attribution_failure(self, error: str | None) -> None:
        self._observe("attribution_failure", f"error={error}", violation_if_stopped=False)

    def on_deep_link(self, result: DeepLinkResult) -> None:
        if result.status is DeepLinkStatus.FOUND:
            self._observe(
                "deep_link_found", f"deep_link={result.deep_link}", violation_if_stopped=True
            )
        elif result.status is DeepLinkStatus.ERROR:
            self._observe(
                "deep_link_error", f"error={result.error}", violation_if_stopped=False
            )
        else:
            self._observe("deep_link_not_found", "", violation_if_stopped=False)


class SdkLifecycleController(LoggingMixin):
    """Bootstrap/start/stop/purge state machine for the vendor SDK.

    Attributes:
        vendor_name: Label used in logs and diagnostics.
    """

    def __init__(
        self,
        sdk: VendorSdkProtocol,
        storage: VendorStorageProtocol,
        dev_key: str,
        *,
        vendor_name: str = "APPSFLYER",
        file_filter: VendorFileFilter = APPSFLYER_FILE_FILTER,
        debug_log: bool = True,
        event_bus: DiagnosticEventSinkProtocol | None = None,
        metrics: LifecycleMetricsProtocol | None = None,
        tripwire: TripwireProtocol | None = None,
    ) -> None:
        """Initialize the controller. Makes no vendor calls.

        Args:
            sdk: The vendor SDK binding (owned exclusively from now on).
            storage: Filesystem collaborator for purge and cache scans.
            dev_key: Vendor dev key passed to init.
            vendor_name: Label used in logs and diagnostics.
            file_filter: Naming convention of the vendor's on-disk files.
            debug_log: Enable the vendor's own debug logging at bootstrap.
            event_bus: Optional diagnostic event sink.
            metrics: Optional lifecycle metrics.
            tripwire: Optional tripwire for blocked calls and violations.
        """
        self._sdk = sdk
        self._storage = storage
        self._dev_key = dev_key
        self.vendor_name = vendor_name
        self._file_filter = file_filter
        self._debug_log = debug_log
        self._event_bus = event_bus
        self._metrics = metrics
        self._tripwire = tripwire

        self._noop_sink = NoopSink(tripwire)
        self._cell = _LifecycleCell(
            LifecycleSnapshot(SdkLifecycleState.UNINITIALIZED, self._noop_sink)
        )
        self._transition_lock = asyncio.Lock()
        self._listener = _InstrumentationListener(self)
        self._init_logger(component="sdk_lifecycle", vendor=self.vendor_name)

    # ------------------------------------------------------------------
    # Read side (non-blocking, any caller)
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> LifecycleSnapshot:
        """State and sink as one consistent pair."""
        return self._cell.get()

    @property
    def state(self) -> SdkLifecycleState:
        return self._cell.get().state

    @property
    def is_started(self) -> bool:
        return self._cell.get().is_started

    @property
    def sink(self) -> AnalyticsSink:
        return self._cell.get().sink

    @property
    def is_bootstrapped(self) -> bool:
        return self._cell.get().state is not SdkLifecycleState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Lifecycle transitions (mutually exclusive)
    # ------------------------------------------------------------------

    async def bootstrap(self) -> InitResult:
        """Register listeners with the vendor exactly once.

        Idempotent: returns success without vendor calls when already
        bootstrapped.
        """
        async with self._transition_lock:
            return await self._bootstrap_locked()

    async def grant(self) -> InitResult:
        """Authorization became true: start the vendor and install its sink.

        No-op when already STARTED.
        """
        async with self._transition_lock:
            log = self._log_operation("grant")
            if self._cell.get().is_started:
                log.info("sdk_already_started")
                return INIT_SUCCESS

            result = await self._bootstrap_locked()
            if isinstance(result, InitFailure):
                return result

            stopped = self._cell.get()
            log.warning("consent_granted_starting_sdk")
            started_at = time.perf_counter()
            try:
                await asyncio.to_thread(self._start_vendor)
            except Exception as e:
                log.error("sdk_start_failed", error=str(e), exc_info=True)
                self._record_failure("grant")
                await self._pause_after_failed_start(log)
                return InitFailure(e)

            self._commit(stopped, LifecycleSnapshot(SdkLifecycleState.STARTED, VendorSink(self._sdk)))
            latency = time.perf_counter() - started_at
            if self._metrics is not None:
                self._metrics.record_start(latency)
            log.warning("sdk_started", latency_ms=round(latency * 1000, 2))
            self._post(f"STARTED in {latency * 1000:.0f} ms - data flow allowed")
            return INIT_SUCCESS

    async def revoke(self, purge: bool = True) -> InitResult:
        """Authorization became false: cut delivery, stop the vendor, purge.

        No-op when not STARTED. The no-op sink is installed before the
        vendor stop call. The purge runs even if the stop call fails.

        Args:
            purge: Delete buffered vendor files after stopping.
        """
        async with self._transition_lock:
            log = self._log_operation("revoke", purge=purge)
            current = self._cell.get()
            if not current.is_started:
                log.info("sdk_already_stopped")
                return INIT_SUCCESS

            if purge:
                log.warning("consent_revoked_stopping_sdk")
            else:
                log.warning("manual_stop_requested")
            self._commit(
                current,
                LifecycleSnapshot(SdkLifecycleState.BOOTSTRAPPED_STOPPED, self._noop_sink),
            )

            result: InitResult = INIT_SUCCESS
            stopped_at = time.perf_counter()
            try:
                await asyncio.to_thread(self._sdk.stop, True)
            except Exception as e:
                log.error("sdk_stop_failed", error=str(e), exc_info=True)
                self._record_failure("revoke")
                result = InitFailure(e)
            else:
                latency = time.perf_counter() - stopped_at
                if self._metrics is not None:
                    self._metrics.record_stop(latency)
                log.warning("sdk_stopped", latency_ms=round(latency * 1000, 2))
                self._post(f"STOPPED in {latency * 1000:.0f} ms - data flow blocked")

            if purge:
                await self._purge_vendor_state()
            return result

    async def start_if_allowed(self, allow: bool) -> InitResult:
        """Manual start: grant() when allowed, otherwise nothing."""
        if not allow:
            self._log_operation("start_if_allowed").debug("sdk_start_blocked", allow=False)
            return INIT_SUCCESS
        return await self.grant()

    async def stop(self) -> InitResult:
        """Manual stop without purging buffered vendor state."""
        return await self.revoke(purge=False)

    # ------------------------------------------------------------------
    # Vendor consent and application event API
    # ------------------------------------------------------------------

    async def set_consent(
        self,
        is_gdpr_subject: bool,
        has_data_usage_consent: bool,
        has_ad_personalization_consent: bool,
    ) -> InitResult:
        """Forward the vendor's own consent object. Lifecycle is unchanged."""
        log = self._log_operation("set_consent")
        consent = VendorConsent(
            is_gdpr_subject=is_gdpr_subject,
            has_data_usage_consent=has_data_usage_consent,
            has_ad_personalization_consent=has_ad_personalization_consent,
        )
        try:
            await asyncio.to_thread(self._sdk.set_consent_data, consent)
        except Exception as e:
            log.error("vendor_consent_failed", error=str(e), exc_info=True)
            self._record_failure("set_consent")
            return InitFailure(e)
        log.warning(
            "vendor_consent_set",
            gdpr_subject=is_gdpr_subject,
            data_usage=has_data_usage_consent,
            ad_personalization=has_ad_personalization_consent,
        )
        self._post(
            f"vendor consent: gdpr={is_gdpr_subject} data_usage={has_data_usage_consent} "
            f"ad_personalization={has_ad_personalization_consent}"
        )
        return INIT_SUCCESS

    def log_event(self, name: str, props: Mapping[str, Any] | None = None) -> InitResult:
        """Log an application event through the active sink."""
        return self._through_sink("log_event", lambda sink: sink.log_event(name, props))

    def set_user_id(self, user_id: str) -> InitResult:
        """Set the customer user id through the active sink."""
        return self._through_sink("set_user_id", lambda sink: sink.set_user_id(user_id))

    def log_revenue(
        self,
        revenue: str,
        currency: str,
        props: Mapping[str, Any] | None = None,
    ) -> InitResult:
        """Log a revenue event through the active sink."""
        return self._through_sink(
            "log_revenue", lambda sink: sink.log_revenue(revenue, currency, props)
        )

    # ------------------------------------------------------------------
    # Direct vendor calls: reach the SDK, bypassing the sink, to observe
    # whether the vendor itself honours stop and consent.
    # ------------------------------------------------------------------

    async def log_test_event(self, event_name: str = "test_event") -> InitResult:
        ts = datetime.now(timezone.utc).isoformat()
        params = {"test_param": "test_value", "timestamp": ts}
        return await self._direct_call(
            "log_test_event",
            f"direct logEvent {event_name}",
            lambda: self._sdk.log_event(event_name, params),
        )

    async def set_test_user_id(self, user_id: str | None = None) -> InitResult:
        user_id = user_id or f"test_user_{int(time.time() * 1000)}"
        return await self._direct_call(
            "set_test_user_id",
            f"direct setCustomerUserId {user_id}",
            lambda: self._sdk.set_customer_user_id(user_id),
        )

    async def log_test_revenue(self) -> InitResult:
        params = {
            "af_revenue": "9.99",
            "af_currency": "USD",
            "af_content_type": "test_purchase",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        return await self._direct_call(
            "log_test_revenue",
            "direct logEvent af_purchase",
            lambda: self._sdk.log_event("af_purchase", params),
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def check_cached_state(self) -> str:
        """Inventory of vendor-named files. Never mutates, never raises."""
        log = self._log_operation("check_cached_state")
        try:
            files = await asyncio.to_thread(self._storage.scan, self._file_filter)
        except Exception as e:
            log.error("vendor_cache_check_failed", error=str(e), exc_info=True)
            return f"Error checking cache: {e}"
        if files:
            log.warning("vendor_cache_files_found", count=len(files))
        else:
            log.info("vendor_cache_empty")
        return format_cache_inventory(files)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _bootstrap_locked(self) -> InitResult:
        current = self._cell.get()
        if current.state is not SdkLifecycleState.UNINITIALIZED:
            return INIT_SUCCESS
        log = self._log_operation("bootstrap")
        try:
            await asyncio.to_thread(self._bootstrap_vendor)
        except Exception as e:
            log.error("sdk_bootstrap_failed", error=str(e), exc_info=True)
            self._record_failure("bootstrap")
            return InitFailure(e)
        self._commit(
            current,
            LifecycleSnapshot(SdkLifecycleState.BOOTSTRAPPED_STOPPED, self._noop_sink),
        )
        log.info("sdk_bootstrapped", tcf_collection=True, listeners=True)
        self._post("bootstrapped - listeners active, TCF collection enabled")
        return INIT_SUCCESS

    def _bootstrap_vendor(self) -> None:
        self._sdk.set_debug_log(self._debug_log)
        self._sdk.enable_tcf_data_collection(True)
        self._sdk.init(self._dev_key, self._listener)

    def _start_vendor(self) -> None:
        # Undo any earlier pause before starting.
        self._sdk.stop(False)
        self._sdk.start()

    async def _pause_after_failed_start(self, log: Any) -> None:
        try:
            await asyncio.to_thread(self._sdk.stop, True)
        except Exception as e:
            log.error("sdk_repause_failed", error=str(e), exc_info=True)

    async def _purge_vendor_state(self) -> PurgeReport:
        log = self._log_operation("purge")
        try:
            report = await asyncio.to_thread(self._storage.purge, self._file_filter)
        except Exception as e:
            log.error("vendor_purge_failed", error=str(e), exc_info=True)
            self._record_failure("purge")
            report = PurgeReport(deleted_count=0, failures=(str(e),))
        for failure in report.failures:
            log.warning("vendor_file_not_deleted", failure=failure)
        log.warning(
            "vendor_state_purged",
            deleted_count=report.deleted_count,
            failed_count=len(report.failures),
        )
        self._post(f"purged {report.deleted_count} vendor files ({len(report.failures)} failed)")
        return report

    def _commit(self, expected: LifecycleSnapshot, new: LifecycleSnapshot) -> None:
        if not self._cell.compare_and_set(expected, new):
            raise LifecycleStateConflictError(expected.state, self._cell.get().state)

    def _through_sink(self, api: str, call: Callable[[AnalyticsSink], None]) -> InitResult:
        sink = self._cell.get().sink
        try:
            call(sink)
        except Exception as e:
            self._log_operation(api).error(
                "analytics_call_failed", error=str(e), exc_info=True
            )
            self._record_failure(api)
            return InitFailure(e)
        return INIT_SUCCESS

    async def _direct_call(self, api: str, label: str, call: Callable[[], T]) -> InitResult:
        log = self._log_operation(api)
        started = self.is_started
        log.warning("vendor_direct_call", is_started=started)
        self._post(f"{label} (started={started})")
        try:
            await asyncio.to_thread(call)
        except Exception as e:
            log.error("vendor_direct_call_failed", error=str(e), exc_info=True)
            self._record_failure(api)
            return InitFailure(e)
        return INIT_SUCCESS

    def _post(self, message: str) -> None:
        if self._event_bus is not None:
            self._event_bus.post(EVENT_TAG, message)

    def _record_failure(self, operation: str) -> None:
        if self._metrics is not None:
            self._metrics.record_failure(operation)

    def _report_violation(self, source: str, detail: str) -> None:
        if self._tripwire is not None:
            self._tripwire.vendor_activity_while_stopped(source, detail)
        else:
            self._log.error(
                "tripwire_vendor_activity_while_stopped", source=source, detail=detail
            )
