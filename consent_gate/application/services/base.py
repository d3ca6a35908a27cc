"""Base service logging mixin.

Controller and coordinator log through the same shape: a logger bound once
with the service name, the component and the vendor the service drives, and
an operation-scoped child that carries the current decision's correlation
ID when one is open.

Usage:
    from consent_gate.application.services.base import LoggingMixin

    class VendorService(LoggingMixin):
        def __init__(self, vendor_name: str) -> None:
            self._init_logger(component="sdk_lifecycle", vendor=vendor_name)

        async def grant(self) -> None:
            log = self._log_operation("grant")
            log.warning("sdk_started", latency_ms=3.2)
"""

import structlog

from consent_gate.application.observability.correlation import get_correlation_id


class LoggingMixin:
    """Mixin providing structured logging for gate services.

    Bound once by _init_logger():
    - service: The class name of the service
    - component: Log category (``sdk_lifecycle``, ``consent_gate``, ...)
    - any static context, typically ``vendor``

    Bound per call by _log_operation():
    - operation: The lifecycle or reconciliation step
    - correlation_id: Only inside a decision scope
    - any per-call context

    Attributes:
        _log: The structlog BoundLogger for this service instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "consent_gate", **static_context: object) -> None:
        """Bind the service logger. Call at the end of __init__.

        Args:
            component: Log category.
            **static_context: Context that holds for the service's lifetime.
        """
        self._log = structlog.get_logger().bind(
            service=self.__class__.__name__,
            component=component,
            **static_context,
        )

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Operation-scoped logger.

        Args:
            operation: Name of the step being performed.
            **context: Additional context for this call.
        """
        correlation_id = get_correlation_id()
        if correlation_id:
            context["correlation_id"] = correlation_id
        return self._log.bind(operation=operation, **context)
