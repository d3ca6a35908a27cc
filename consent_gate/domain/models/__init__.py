"""Domain models for Consent Gate."""

from consent_gate.domain.models.cmp_signal import INITIAL_CMP_SNAPSHOT, CmpSnapshot, Tri
from consent_gate.domain.models.consent import (
    ConsentSnapshot,
    ConsentType,
    decode_consent_types,
)
from consent_gate.domain.models.lifecycle import (
    INIT_SUCCESS,
    AuthorizationDecision,
    InitFailure,
    InitResult,
    InitSuccess,
    SdkLifecycleState,
)
from consent_gate.domain.models.sdk_config import ExecutionContext, SdkConfig, SdkId
from consent_gate.domain.models.sdk_registry import SdkRegistry
from consent_gate.domain.models.vendor import (
    DeepLinkResult,
    DeepLinkStatus,
    VendorConsent,
)
from consent_gate.domain.models.vendor_storage import (
    APPSFLYER_FILE_FILTER,
    PurgeReport,
    StorageLocation,
    VendorFileFilter,
    VendorFileInfo,
    format_cache_inventory,
)

__all__: list[str] = [
    "APPSFLYER_FILE_FILTER",
    "AuthorizationDecision",
    "CmpSnapshot",
    "ConsentSnapshot",
    "ConsentType",
    "DeepLinkResult",
    "DeepLinkStatus",
    "ExecutionContext",
    "INITIAL_CMP_SNAPSHOT",
    "INIT_SUCCESS",
    "InitFailure",
    "InitResult",
    "InitSuccess",
    "PurgeReport",
    "SdkConfig",
    "SdkId",
    "SdkLifecycleState",
    "SdkRegistry",
    "StorageLocation",
    "Tri",
    "VendorConsent",
    "VendorFileFilter",
    "VendorFileInfo",
    "decode_consent_types",
    "format_cache_inventory",
]
