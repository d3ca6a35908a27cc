"""Analytics sink port.

Every application event-logging call goes through the sink the lifecycle
controller currently holds: a no-op sink while the vendor is not
authorized, a vendor-backed sink while it is. Callers never check
authorization themselves.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class AnalyticsSink(Protocol):
    """Event delivery target behind the application-facing logging API."""

    def log_event(self, name: str, props: Mapping[str, Any] | None = None) -> None: ...

    def set_user_id(self, user_id: str) -> None: ...

    def log_revenue(
        self,
        revenue: str,
        currency: str,
        props: Mapping[str, Any] | None = None,
    ) -> None: ...
