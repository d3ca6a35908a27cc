"""Analytics sinks: the no-op sink and the vendor-backed sink.

The lifecycle controller swaps between these two. Application code only
ever calls the controller, which forwards to whichever sink is active.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from consent_gate.application.ports.diagnostics import TripwireProtocol
    from consent_gate.application.ports.vendor_sdk import VendorSdkProtocol

logger = structlog.get_logger(__name__)

REVENUE_EVENT_NAME = "af_purchase"
REVENUE_KEY = "af_revenue"
CURRENCY_KEY = "af_currency"


class NoopSink:
    """Sink used while the vendor is not authorized.

    Logs the attempt and reports it to the tripwire as a blocked call. Never
    touches the vendor SDK.
    """

    def __init__(self, tripwire: TripwireProtocol | None = None) -> None:
        self._tripwire = tripwire

    def _blocked(self, api: str, **context: object) -> None:
        logger.warning("analytics_call_blocked", api=api, reason="no_consent", **context)
        if self._tripwire is not None:
            self._tripwire.gate_mismatch(api)

    def log_event(self, name: str, props: Mapping[str, Any] | None = None) -> None:
        self._blocked("log_event", event_name=name)

    def set_user_id(self, user_id: str) -> None:
        self._blocked("set_user_id")

    def log_revenue(
        self,
        revenue: str,
        currency: str,
        props: Mapping[str, Any] | None = None,
    ) -> None:
        self._blocked("log_revenue", revenue=revenue, currency=currency)

    def __repr__(self) -> str:
        return "NoopSink()"


class VendorSink:
    """Sink that forwards every call to the vendor SDK.

    Only created by the lifecycle controller once the vendor is started.
    """

    def __init__(self, sdk: VendorSdkProtocol) -> None:
        self._sdk = sdk

    def log_event(self, name: str, props: Mapping[str, Any] | None = None) -> None:
        logger.info("vendor_log_event", event_name=name)
        self._sdk.log_event(name, dict(props or {}))

    def set_user_id(self, user_id: str) -> None:
        logger.info("vendor_set_user_id")
        self._sdk.set_customer_user_id(user_id)

    def log_revenue(
        self,
        revenue: str,
        currency: str,
        props: Mapping[str, Any] | None = None,
    ) -> None:
        logger.info("vendor_log_revenue", revenue=revenue, currency=currency)
        params = dict(props or {})
        params[REVENUE_KEY] = revenue
        params[CURRENCY_KEY] = currency
        self._sdk.log_event(REVENUE_EVENT_NAME, params)

    def __repr__(self) -> str:
        return f"VendorSink({type(self._sdk).__name__})"
