"""In-memory vendor storage for testing.

Implements the vendor storage port over a dict so tests can seed vendor
files, inject per-entry delete failures, and make scans fail outright.
"""

from __future__ import annotations

from datetime import datetime, timezone

from consent_gate.domain.models.vendor_storage import (
    PurgeReport,
    StorageLocation,
    VendorFileFilter,
    VendorFileInfo,
)


class VendorStorageStub:
    """Dict-backed storage with failure injection.

    Attributes:
        undeletable: Entry names whose deletion fails.
        scan_error: If set, ``scan()`` raises it.
        purge_calls: Number of purge() invocations.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[StorageLocation, str], VendorFileInfo] = {}
        self.undeletable: set[str] = set()
        self.scan_error: Exception | None = None
        self.purge_calls = 0

    def add(self, location: StorageLocation, name: str, size_bytes: int = 0) -> None:
        self._entries[(location, name)] = VendorFileInfo(
            location=location,
            name=name,
            size_bytes=size_bytes,
            modified_at=datetime.now(timezone.utc),
        )

    def names(self) -> list[str]:
        return sorted(name for _, name in self._entries)

    def scan(self, file_filter: VendorFileFilter) -> list[VendorFileInfo]:
        if self.scan_error is not None:
            raise self.scan_error
        return [
            info
            for (location, name), info in self._entries.items()
            if file_filter.matches(name, location)
        ]

    def purge(self, file_filter: VendorFileFilter) -> PurgeReport:
        self.purge_calls += 1
        deleted = 0
        failures: list[str] = []
        for key in list(self._entries):
            location, name = key
            if not file_filter.matches(name, location):
                continue
            if name in self.undeletable:
                failures.append(f"{location.value}/{name}: permission denied")
                continue
            del self._entries[key]
            deleted += 1
        return PurgeReport(deleted_count=deleted, failures=tuple(failures))
