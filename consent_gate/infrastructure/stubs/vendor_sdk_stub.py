"""Vendor SDK simulator for tests, scenarios and development.

Models the parts of the vendor binding the gate depends on:
- Records every call (method name and arguments) in order
- Per-method failure injection via ``fail_on``
- Fires listener callbacks on demand (conversion data, app-open
  attribution, deep links)
- Behaves like a non-compliant vendor: ``log_event`` while not running is
  queued and written to disk as ``AF_queue_<n>.json`` in the cache
  directory, to be flushed on the next start

Usage:
    sdk = VendorSdkStub(cache_dir=tmp_path / "cache")
    controller = SdkLifecycleController(sdk, storage, dev_key="dev")
    await controller.grant()
    assert sdk.start_count == 1
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from structlog import get_logger

from consent_gate.application.ports.vendor_sdk import VendorListenerProtocol
from consent_gate.domain.models.vendor import (
    DeepLinkResult,
    DeepLinkStatus,
    VendorConsent,
)

logger = get_logger()

QUEUE_FILE_PREFIX = "AF_queue_"


class InjectedVendorError(RuntimeError):
    """Raised by the simulator for methods listed in ``fail_on``."""


class VendorSdkStub:
    """In-process stand-in for the vendor SDK singleton.

    Attributes:
        calls: (method, args) for every call, in order.
        sent_events: (name, params) transmitted while running.
        queued_events: (name, params) accepted while not running.
        fail_on: Method names that raise InjectedVendorError.
    """

    def __init__(
        self,
        *,
        cache_dir: Path | str | None = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.fail_on: set[str] = set(fail_on)

        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.sent_events: list[tuple[str, dict[str, Any]]] = []
        self.queued_events: list[tuple[str, dict[str, Any]]] = []

        self.listener: VendorListenerProtocol | None = None
        self.dev_key: str | None = None
        self.debug_log = False
        self.tcf_enabled = False
        self.consent: VendorConsent | None = None
        self.customer_user_id: str | None = None
        self.started = False
        self.paused = False
        self._queue_seq = 0
        self._log = logger.bind(stub="VendorSdkStub")

    @property
    def running(self) -> bool:
        """Transmitting: started and not paused."""
        return self.started and not self.paused

    @property
    def start_count(self) -> int:
        return self.call_count("start")

    @property
    def stop_count(self) -> int:
        """Number of pause calls, i.e. ``stop(True)``."""
        with self._lock:
            return sum(1 for m, a in self.calls if m == "stop" and a == (True,))

    def call_count(self, method: str) -> int:
        with self._lock:
            return sum(1 for m, _ in self.calls if m == method)

    def method_calls(self) -> list[str]:
        with self._lock:
            return [m for m, _ in self.calls]

    def _record(self, method: str, *args: Any) -> None:
        with self._lock:
            self.calls.append((method, args))
        if method in self.fail_on:
            self._log.warning("injected_failure", method=method)
            raise InjectedVendorError(f"{method} failed (injected)")

    # Vendor API

    def set_debug_log(self, enabled: bool) -> None:
        self._record("set_debug_log", enabled)
        self.debug_log = enabled

    def enable_tcf_data_collection(self, enabled: bool) -> None:
        self._record("enable_tcf_data_collection", enabled)
        self.tcf_enabled = enabled

    def init(self, dev_key: str, listener: VendorListenerProtocol) -> None:
        self._record("init", dev_key)
        self.dev_key = dev_key
        self.listener = listener

    def start(self) -> None:
        self._record("start")
        self.started = True
        if self.running:
            self._flush_queue()

    def stop(self, is_stopped: bool) -> None:
        self._record("stop", is_stopped)
        self.paused = is_stopped
        if is_stopped:
            self.started = False

    def set_consent_data(self, consent: VendorConsent) -> None:
        self._record("set_consent_data", consent)
        self.consent = consent

    def log_event(self, name: str, params: Mapping[str, Any]) -> None:
        self._record("log_event", name, dict(params))
        event = (name, dict(params))
        if self.running:
            self.sent_events.append(event)
            return
        self.queued_events.append(event)
        self._persist_queued(event)

    def set_customer_user_id(self, user_id: str) -> None:
        self._record("set_customer_user_id", user_id)
        self.customer_user_id = user_id

    # Simulation helpers

    def _persist_queued(self, event: tuple[str, dict[str, Any]]) -> None:
        if self._cache_dir is None:
            return
        self._queue_seq += 1
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._cache_dir / f"{QUEUE_FILE_PREFIX}{self._queue_seq}.json"
        path.write_text(json.dumps({"event": event[0], "params": event[1]}, default=str))
        self._log.debug("event_queued_to_disk", path=str(path))

    def _flush_queue(self) -> None:
        if self._cache_dir is None:
            flushed = list(self.queued_events)
        else:
            # Only what survived on disk is still known to the vendor.
            flushed = []
            for path in sorted(self._cache_dir.glob(f"{QUEUE_FILE_PREFIX}*.json")):
                document = json.loads(path.read_text())
                flushed.append((document["event"], document["params"]))
                path.unlink()
        if flushed:
            self._log.warning("queued_events_flushed", count=len(flushed))
        self.sent_events.extend(flushed)
        self.queued_events.clear()

    def _require_listener(self) -> VendorListenerProtocol:
        if self.listener is None:
            raise RuntimeError("vendor SDK not initialized; no listener registered")
        return self.listener

    def emit_conversion_data(self, data: Mapping[str, Any] | None = None) -> None:
        self._require_listener().on_conversion_data_success(data or {"af_status": "Organic"})

    def emit_conversion_failure(self, error: str = "network error") -> None:
        self._require_listener().on_conversion_data_fail(error)

    def emit_app_open_attribution(self, data: Mapping[str, str] | None = None) -> None:
        self._require_listener().on_app_open_attribution(data or {"link": "https://example.test"})

    def emit_attribution_failure(self, error: str = "attribution error") -> None:
        self._require_listener().on_attribution_failure(error)

    def emit_deep_link(
        self,
        status: DeepLinkStatus = DeepLinkStatus.FOUND,
        deep_link: str | None = "app://promo",
        error: str | None = None,
    ) -> None:
        self._require_listener().on_deep_link(
            DeepLinkResult(status=status, deep_link=deep_link, error=error)
        )
