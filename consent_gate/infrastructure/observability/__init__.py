"""Observability infrastructure (structured logging configuration)."""

from consent_gate.infrastructure.observability.logging import (
    configure_structlog,
    get_logger_for_service,
)

__all__ = ["configure_structlog", "get_logger_for_service"]
