"""Gate configuration and the packaged SDK policy."""

from consent_gate.config.gate_config import GateConfig, GdprMode, load_config

__all__ = ["GateConfig", "GdprMode", "load_config"]
