"""SDK policy loader.

Decodes the declarative policy document into an SdkRegistry:

    {
        "version": "1",
        "sdks": [
            {"id": "APPSFLYER", "requiredConsent": ["ANALYTICS", "MARKETING"],
             "initOrder": 0, "thread": "BACKGROUND"}
        ]
    }

Resilience rules:
- Unknown ``id``: entry dropped with a warning
- Unknown ``thread``: BACKGROUND, with a warning
- Unknown consent names: dropped from the entry with a warning
- Malformed entry (wrong types, missing requiredConsent): dropped
- Unparseable JSON or malformed top level: PolicyDecodeError
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from structlog import get_logger

from consent_gate.domain.errors import PolicyDecodeError
from consent_gate.domain.models.consent import decode_consent_types
from consent_gate.domain.models.sdk_config import ExecutionContext, SdkConfig, SdkId
from consent_gate.domain.models.sdk_registry import SdkRegistry

logger = get_logger()

DEFAULT_POLICY_PACKAGE = "consent_gate.config"
DEFAULT_POLICY_RESOURCE = "sdk_policy.json"


class SdkRow(BaseModel):
    """One raw policy entry, before enum decoding."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    required_consent: list[str] = Field(alias="requiredConsent")
    init_order: int = Field(default=0, alias="initOrder")
    thread: str = "BACKGROUND"


class PolicyFile(BaseModel):
    """Top-level policy document. Rows are validated one by one."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: str
    sdks: list[Any]


def _decode_row(raw: Any, index: int, source: str) -> SdkConfig | None:
    log = logger.bind(source=source, index=index)
    try:
        row = SdkRow.model_validate(raw)
    except ValidationError as e:
        log.warning("policy_entry_malformed", errors=e.error_count())
        return None

    sdk_id = SdkId.parse(row.id)
    if sdk_id is None:
        log.warning("policy_entry_unknown_sdk_id", sdk_id=row.id)
        return None

    context = ExecutionContext.parse(row.thread)
    if context is None:
        log.warning("policy_entry_unknown_thread", sdk_id=row.id, thread=row.thread)
        context = ExecutionContext.BACKGROUND

    required, unknown = decode_consent_types(row.required_consent)
    if unknown:
        log.warning("policy_entry_unknown_consent_types", sdk_id=row.id, unknown=list(unknown))

    return SdkConfig(
        id=sdk_id,
        required_consent=required,
        init_order=row.init_order,
        execution_context=context,
    )


def parse_policy_document(
    document: str | bytes | Mapping[str, Any], source: str = "<memory>"
) -> SdkRegistry:
    """Decode a policy document into a registry.

    Args:
        document: JSON text or an already-decoded mapping.
        source: Label used in logs and errors.

    Returns:
        The SdkRegistry built from every decodable entry.

    Raises:
        PolicyDecodeError: If the document as a whole cannot be decoded.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise PolicyDecodeError(source, f"invalid JSON: {e}") from e
        except UnicodeDecodeError as e:
            raise PolicyDecodeError(source, f"not valid UTF-8: {e}") from e

    try:
        policy = PolicyFile.model_validate(document)
    except ValidationError as e:
        raise PolicyDecodeError(source, f"malformed policy document ({e.error_count()} errors)") from e

    configs = [
        config
        for index, raw in enumerate(policy.sdks)
        if (config := _decode_row(raw, index, source)) is not None
    ]
    registry = SdkRegistry(configs, version=policy.version)
    if registry.duplicate_ids:
        logger.warning(
            "policy_duplicate_sdk_ids",
            source=source,
            duplicates=[i.value for i in registry.duplicate_ids],
        )
    logger.info(
        "sdk_policy_loaded",
        source=source,
        version=registry.version,
        sdks=[c.id.value for c in registry],
        dropped=len(policy.sdks) - len(configs),
    )
    return registry


def load_registry(path: Path | str) -> SdkRegistry:
    """Load a policy file from disk.

    Raises:
        PolicyDecodeError: If the file cannot be read or decoded.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyDecodeError(str(path), f"cannot read file: {e}") from e
    except UnicodeDecodeError as e:
        raise PolicyDecodeError(str(path), f"not valid UTF-8: {e}") from e
    return parse_policy_document(text, source=str(path))


def load_default_registry() -> SdkRegistry:
    """Load the policy bundled with the package."""
    text = resources.files(DEFAULT_POLICY_PACKAGE).joinpath(DEFAULT_POLICY_RESOURCE).read_text(
        encoding="utf-8"
    )
    return parse_policy_document(text, source=f"package:{DEFAULT_POLICY_RESOURCE}")
