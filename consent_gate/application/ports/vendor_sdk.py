"""Vendor SDK port.

The concrete vendor binding is opaque: a process-wide singleton with its own
threading and caching model, which may keep queueing data after it was told
to stop. Only the SDK lifecycle controller holds a reference to it.

Calls are synchronous and may block; the controller runs them off the event
loop.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from consent_gate.domain.models.vendor import DeepLinkResult, VendorConsent


class VendorListenerProtocol(Protocol):
    """Callbacks the vendor delivers after init. Used for diagnostics only."""

    def on_conversion_data_success(self, data: Mapping[str, Any] | None) -> None: ...

    def on_conversion_data_fail(self, error: str | None) -> None: ...

    def on_app_open_attribution(self, data: Mapping[str, str] | None) -> None: ...

    def on_attribution_failure(self, error: str | None) -> None: ...

    def on_deep_link(self, result: DeepLinkResult) -> None: ...


class VendorSdkProtocol(Protocol):
    """Operations exposed by the vendor SDK binding."""

    def set_debug_log(self, enabled: bool) -> None: ...

    def enable_tcf_data_collection(self, enabled: bool) -> None:
        """Let the vendor read the CMP's transparency data."""
        ...

    def init(self, dev_key: str, listener: VendorListenerProtocol) -> None:
        """Register the dev key and callback listener. Does not transmit."""
        ...

    def start(self) -> None:
        """Begin data transmission."""
        ...

    def stop(self, is_stopped: bool) -> None:
        """Pause (True) or un-pause (False) the SDK."""
        ...

    def set_consent_data(self, consent: VendorConsent) -> None: ...

    def log_event(self, name: str, params: Mapping[str, Any]) -> None: ...

    def set_customer_user_id(self, user_id: str) -> None: ...
