"""Stub implementations for testing and development."""

from consent_gate.infrastructure.stubs.vendor_sdk_stub import (
    InjectedVendorError,
    VendorSdkStub,
)
from consent_gate.infrastructure.stubs.vendor_storage_stub import VendorStorageStub

__all__ = ["InjectedVendorError", "VendorSdkStub", "VendorStorageStub"]
