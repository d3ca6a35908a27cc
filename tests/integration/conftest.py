"""
Integration test configuration.

Integration tests wire the full gateway through build_gateway with the
vendor simulator and a LocalVendorStorage rooted in tmp_path. No external
services are required.

Usage:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_example(gateway: ConsentGateway, vendor_sdk: VendorSdkStub) -> None:
        await gateway.start()
        ...
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from consent_gate.bootstrap.gateway import ConsentGateway, build_gateway
from consent_gate.config.gate_config import GateConfig, GdprMode
from consent_gate.domain.models.vendor_storage import StorageLocation
from consent_gate.infrastructure.adapters.local_vendor_storage import LocalVendorStorage
from consent_gate.infrastructure.stubs.vendor_sdk_stub import VendorSdkStub


@pytest.fixture
def gate_config(tmp_path: Path) -> GateConfig:
    return GateConfig(dev_key="integration-dev-key", storage_root=tmp_path, gdpr_mode=GdprMode.AUTO)


@pytest.fixture
def local_storage(gate_config: GateConfig) -> LocalVendorStorage:
    return LocalVendorStorage.from_root(gate_config.storage_root)


@pytest.fixture
def vendor_sdk(local_storage: LocalVendorStorage) -> VendorSdkStub:
    """Simulator queuing to the same cache directory the gate purges."""
    return VendorSdkStub(cache_dir=local_storage.directory(StorageLocation.CACHE))


@pytest.fixture
async def gateway(
    gate_config: GateConfig,
    vendor_sdk: VendorSdkStub,
    local_storage: LocalVendorStorage,
) -> AsyncGenerator[ConsentGateway, None]:
    """Gateway built from config; coordinator released on teardown."""
    gateway = build_gateway(gate_config, vendor_sdk, storage=local_storage)
    yield gateway
    await gateway.shutdown()
