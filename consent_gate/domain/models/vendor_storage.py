"""Vendor on-disk artifacts: naming filter, inventory entries, purge report.

The vendor buffers events, attribution state and preferences on disk. These
types describe which entries belong to the vendor and what a purge did.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class StorageLocation(Enum):
    """Storage locations the vendor may write to."""

    CACHE = "cache"
    FILES = "files"
    PREFERENCES = "shared_prefs"


@dataclass(frozen=True)
class VendorFileFilter:
    """Name filter for vendor-owned entries.

    Case-insensitive substrings match everywhere. Case-sensitive prefixes
    such as ``AF_`` are only trusted in cache and files locations, since
    preference files use the full vendor name.
    """

    case_insensitive: tuple[str, ...]
    case_sensitive: tuple[str, ...] = ()

    def matches(self, name: str, location: StorageLocation) -> bool:
        """Check whether an entry name belongs to the vendor."""
        lowered = name.lower()
        if any(s.lower() in lowered for s in self.case_insensitive):
            return True
        if location is StorageLocation.PREFERENCES:
            return False
        return any(s in name for s in self.case_sensitive)


APPSFLYER_FILE_FILTER = VendorFileFilter(
    case_insensitive=("appsflyer",),
    case_sensitive=("AF_",),
)


@dataclass(frozen=True)
class VendorFileInfo:
    """One vendor-named entry found on disk."""

    location: StorageLocation
    name: str
    size_bytes: int
    modified_at: datetime


@dataclass(frozen=True)
class PurgeReport:
    """Result of a purge. Partial failure still yields a report.

    Attributes:
        deleted_count: Entries deleted successfully.
        failures: One human-readable line per entry (or location) that
            could not be processed.
    """

    deleted_count: int = 0
    failures: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_complete(self) -> bool:
        return not self.failures


def format_cache_inventory(files: Iterable[VendorFileInfo]) -> str:
    """Render a human-readable inventory of vendor files.

    Args:
        files: Entries found by a storage scan.

    Returns:
        ``No vendor cache files`` or a header line plus one bullet per file.
    """
    entries = list(files)
    if not entries:
        return "No vendor cache files"
    lines = [
        f"  • {f.name} ({f.size_bytes} bytes, modified {f.modified_at.isoformat()})"
        for f in entries
    ]
    return f"Found {len(entries)} vendor cache files:\n" + "\n".join(lines)
