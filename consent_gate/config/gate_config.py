"""Consent gate configuration.

Built from environment variables, after loading a ``.env`` file from the
working directory when one exists.

Environment Variables:
- ENVIRONMENT: 'production' for JSON logs (default: development)
- CONSENT_GATE_DEV_KEY: Vendor dev key passed to init (default: empty)
- CONSENT_GATE_VENDOR: Vendor id from the policy (default: APPSFLYER)
- CONSENT_GATE_POLICY_PATH: Policy JSON file (default: packaged sdk_policy.json)
- CONSENT_GATE_GDPR_MODE: auto | always | never (default: auto)
- CONSENT_GATE_STORAGE_ROOT: Vendor data root holding cache/, files/ and
  shared_prefs/ (default: ./vendor_data)
- CONSENT_GATE_CONSENT_FILE: JSON consent store path (default: in-memory)
- CONSENT_GATE_EVENT_BUS_CAPACITY: Diagnostic events retained (default: 200)
- CONSENT_GATE_VENDOR_DEBUG_LOG: Vendor debug logging (default: true)
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog
from dotenv import find_dotenv, load_dotenv

from consent_gate.domain.errors import ConfigurationError
from consent_gate.domain.models.cmp_signal import CmpSnapshot
from consent_gate.domain.models.sdk_config import SdkId
from consent_gate.domain.services.consent_mapper import jurisdiction_gdpr_subject

logger = structlog.get_logger()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class GdprMode(Enum):
    """How the GDPR-subject flag is resolved."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"

    def resolver(self) -> Callable[[CmpSnapshot], bool]:
        """The gdpr_subject callable the coordinator uses for this mode."""
        if self is GdprMode.ALWAYS:
            return lambda _cmp: True
        if self is GdprMode.NEVER:
            return lambda _cmp: False
        return jurisdiction_gdpr_subject


def _get_int_env(key: str, default: int, minimum: int | None = None) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.
        minimum: Smallest accepted value; smaller values fall back to default.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("invalid_config_value", key=key, value=value, default=default)
        return default
    if minimum is not None and parsed < minimum:
        logger.warning("invalid_config_value", key=key, value=value, default=default)
        return default
    return parsed


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("invalid_config_value", key=key, value=value, default=default)
    return default


def _get_path_env(key: str) -> Path | None:
    value = os.environ.get(key)
    if not value:
        return None
    return Path(value).expanduser()


@dataclass(frozen=True)
class GateConfig:
    """Configuration for one consent gateway.

    Attributes:
        environment: Deployment environment; 'production' selects JSON logs.
        dev_key: Vendor dev key.
        vendor: Vendor id whose policy drives the gate.
        policy_path: Policy file; None means the packaged default.
        gdpr_mode: GDPR-subject resolution mode.
        storage_root: Vendor data root for purge and inspection.
        consent_file: JSON consent store; None means in-memory.
        event_bus_capacity: Diagnostic events retained.
        vendor_debug_log: Enable the vendor's own debug logging.
    """

    environment: str = "development"
    dev_key: str = ""
    vendor: SdkId = SdkId.APPSFLYER
    policy_path: Path | None = None
    gdpr_mode: GdprMode = GdprMode.AUTO
    storage_root: Path = Path("vendor_data")
    consent_file: Path | None = None
    event_bus_capacity: int = 200
    vendor_debug_log: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.event_bus_capacity < 1:
            raise ValueError(
                f"event_bus_capacity must be at least 1, got {self.event_bus_capacity}"
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_environment(cls) -> GateConfig:
        """Create config from environment variables with defaults.

        Raises:
            ConfigurationError: Unknown vendor id or GDPR mode.
        """
        vendor_name = os.environ.get("CONSENT_GATE_VENDOR", SdkId.APPSFLYER.value)
        vendor = SdkId.parse(vendor_name.strip().upper())
        if vendor is None:
            raise ConfigurationError(
                "CONSENT_GATE_VENDOR",
                vendor_name,
                f"expected one of {[s.value for s in SdkId]}",
            )

        mode_name = os.environ.get("CONSENT_GATE_GDPR_MODE", GdprMode.AUTO.value)
        try:
            gdpr_mode = GdprMode(mode_name.strip().lower())
        except ValueError as e:
            raise ConfigurationError(
                "CONSENT_GATE_GDPR_MODE",
                mode_name,
                f"expected one of {[m.value for m in GdprMode]}",
            ) from e

        return cls(
            environment=os.environ.get("ENVIRONMENT", "development"),
            dev_key=os.environ.get("CONSENT_GATE_DEV_KEY", ""),
            vendor=vendor,
            policy_path=_get_path_env("CONSENT_GATE_POLICY_PATH"),
            gdpr_mode=gdpr_mode,
            storage_root=_get_path_env("CONSENT_GATE_STORAGE_ROOT") or Path("vendor_data"),
            consent_file=_get_path_env("CONSENT_GATE_CONSENT_FILE"),
            event_bus_capacity=_get_int_env("CONSENT_GATE_EVENT_BUS_CAPACITY", 200, minimum=1),
            vendor_debug_log=_get_bool_env("CONSENT_GATE_VENDOR_DEBUG_LOG", True),
        )


def load_config(dotenv_path: Path | str | None = None) -> GateConfig:
    """Load ``.env`` (if present) and build the config from the environment.

    Variables already set in the environment win over ``.env`` values.

    Args:
        dotenv_path: Explicit .env file; defaults to searching from the
            working directory.
    """
    load_dotenv(dotenv_path=dotenv_path or find_dotenv(usecwd=True), override=False)
    return GateConfig.from_environment()
