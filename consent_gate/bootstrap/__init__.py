"""Bootstrap wiring: logging, gateway construction and diagnostic scenarios."""

from consent_gate.bootstrap.gateway import ConsentGateway, build_gateway, load_policy
from consent_gate.bootstrap.logging import configure_structlog

__all__ = ["ConsentGateway", "build_gateway", "configure_structlog", "load_policy"]
