"""Cross-cutting observability helpers usable from application services."""

from consent_gate.application.observability.correlation import (
    correlation_id_processor,
    decision_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

__all__: list[str] = [
    "correlation_id_processor",
    "decision_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
