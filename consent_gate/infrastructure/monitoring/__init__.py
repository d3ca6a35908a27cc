"""Monitoring infrastructure (Prometheus lifecycle metrics)."""

from consent_gate.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    LifecycleMetrics,
)

__all__ = ["METRICS_CONTENT_TYPE", "LifecycleMetrics"]
