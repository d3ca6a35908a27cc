"""Prometheus metrics for the vendor SDK lifecycle.

Counts starts, stops, failures, tripwire violations and blocked calls, and
times every transition. Each LifecycleMetrics instance owns its registry so
gateways and tests stay isolated.
"""

import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Content type for Prometheus exposition output
METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# Vendor start/stop calls complete well under a second; purge can take longer
TRANSITION_HISTOGRAM_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)


class LifecycleMetrics:
    """Collects lifecycle metrics for one gateway.

    Attributes:
        sdk_starts_total: Successful vendor starts.
        sdk_stops_total: Successful vendor stops.
        sdk_failures_total: Failed vendor or storage calls, by operation.
        tripwire_violations_total: Vendor activity seen while stopped.
        blocked_calls_total: Application calls absorbed by the no-op sink.
        transition_duration_seconds: Start/stop latency, by operation.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize lifecycle metrics.

        Args:
            registry: Optional custom registry for testing isolation.
        """
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")

        self.sdk_starts_total = Counter(
            name="consent_gate_sdk_starts_total",
            documentation="Total successful vendor SDK starts",
            labelnames=["environment"],
            registry=self._registry,
        )
        self.sdk_stops_total = Counter(
            name="consent_gate_sdk_stops_total",
            documentation="Total successful vendor SDK stops",
            labelnames=["environment"],
            registry=self._registry,
        )
        self.sdk_failures_total = Counter(
            name="consent_gate_sdk_failures_total",
            documentation="Total failed vendor SDK or storage calls",
            labelnames=["environment", "operation"],
            registry=self._registry,
        )
        self.tripwire_violations_total = Counter(
            name="consent_gate_tripwire_violations_total",
            documentation="Vendor activity observed while the SDK was stopped",
            labelnames=["environment", "source"],
            registry=self._registry,
        )
        self.blocked_calls_total = Counter(
            name="consent_gate_blocked_calls_total",
            documentation="Application analytics calls absorbed by the no-op sink",
            labelnames=["environment", "api"],
            registry=self._registry,
        )
        self.transition_duration_seconds = Histogram(
            name="consent_gate_transition_duration_seconds",
            documentation="Vendor SDK start/stop latency in seconds",
            labelnames=["environment", "operation"],
            buckets=TRANSITION_HISTOGRAM_BUCKETS,
            registry=self._registry,
        )

    def record_start(self, duration_seconds: float) -> None:
        self.sdk_starts_total.labels(environment=self._environment).inc()
        self.transition_duration_seconds.labels(
            environment=self._environment, operation="start"
        ).observe(duration_seconds)

    def record_stop(self, duration_seconds: float) -> None:
        self.sdk_stops_total.labels(environment=self._environment).inc()
        self.transition_duration_seconds.labels(
            environment=self._environment, operation="stop"
        ).observe(duration_seconds)

    def record_failure(self, operation: str) -> None:
        self.sdk_failures_total.labels(
            environment=self._environment, operation=operation
        ).inc()

    def record_violation(self, source: str) -> None:
        self.tripwire_violations_total.labels(
            environment=self._environment, source=source
        ).inc()

    def record_blocked_call(self, api: str) -> None:
        self.blocked_calls_total.labels(environment=self._environment, api=api).inc()

    def _total(self, counter: Counter) -> int:
        total = 0.0
        for metric in counter.collect():
            for sample in metric.samples:
                if sample.name.endswith("_total"):
                    total += sample.value
        return int(total)

    def snapshot(self) -> dict[str, int]:
        """Start, stop and failure totals.

        Returns:
            Dict with ``starts``, ``stops`` and ``failures`` keys.
        """
        return {
            "starts": self._total(self.sdk_starts_total),
            "stops": self._total(self.sdk_stops_total),
            "failures": self._total(self.sdk_failures_total),
        }

    def violations(self) -> int:
        return self._total(self.tripwire_violations_total)

    def blocked_calls(self) -> int:
        return self._total(self.blocked_calls_total)

    def exposition(self) -> bytes:
        """Render this registry in Prometheus text format."""
        return generate_latest(self._registry)

    def get_registry(self) -> CollectorRegistry:
        """Get the Prometheus registry.

        Returns:
            The CollectorRegistry containing all lifecycle metrics.
        """
        return self._registry
