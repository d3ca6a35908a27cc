"""Infrastructure adapters implementing the application ports."""

from consent_gate.infrastructure.adapters.cmp_state_source import CmpStateSource
from consent_gate.infrastructure.adapters.file_consent_store import FileConsentStore
from consent_gate.infrastructure.adapters.in_memory_consent_store import (
    InMemoryConsentStore,
)
from consent_gate.infrastructure.adapters.local_vendor_storage import LocalVendorStorage
from consent_gate.infrastructure.adapters.policy_file_loader import (
    load_default_registry,
    load_registry,
    parse_policy_document,
)

__all__ = [
    "CmpStateSource",
    "FileConsentStore",
    "InMemoryConsentStore",
    "LocalVendorStorage",
    "load_default_registry",
    "load_registry",
    "parse_policy_document",
]
