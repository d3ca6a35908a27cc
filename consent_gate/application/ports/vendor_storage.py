"""Vendor storage port (filesystem collaborator for purge and diagnostics)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from consent_gate.domain.models.vendor_storage import (
        PurgeReport,
        VendorFileFilter,
        VendorFileInfo,
    )


class VendorStorageProtocol(Protocol):
    """Protocol for the vendor's on-disk footprint.

    Implementers MUST:
    1. Look in cache, files and preferences locations
    2. Never abort a purge because one entry failed; count and report it
    3. Leave non-matching entries untouched
    """

    def scan(self, file_filter: VendorFileFilter) -> list[VendorFileInfo]:
        """List vendor-named entries. Read-only."""
        ...

    def purge(self, file_filter: VendorFileFilter) -> PurgeReport:
        """Delete vendor-named entries, reporting successes and failures."""
        ...
