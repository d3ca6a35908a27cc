"""Local filesystem collaborator for vendor purge and cache inspection.

The vendor writes to three locations under the app's data root:

    <root>/cache/          queued events, attribution payloads
    <root>/files/          persisted vendor state
    <root>/shared_prefs/   vendor preference files

Only entries whose names match the vendor file filter are touched.
Directories are removed recursively.
"""

from __future__ import annotations

import shutil
from datetime import datetime, timezone
from pathlib import Path

from structlog import get_logger

from consent_gate.domain.models.vendor_storage import (
    PurgeReport,
    StorageLocation,
    VendorFileFilter,
    VendorFileInfo,
)

logger = get_logger()


class LocalVendorStorage:
    """Scans and purges vendor-named entries in the three storage locations."""

    def __init__(self, cache_dir: Path | str, files_dir: Path | str, prefs_dir: Path | str) -> None:
        self._locations: tuple[tuple[StorageLocation, Path], ...] = (
            (StorageLocation.CACHE, Path(cache_dir)),
            (StorageLocation.FILES, Path(files_dir)),
            (StorageLocation.PREFERENCES, Path(prefs_dir)),
        )
        self._log = logger.bind(adapter="LocalVendorStorage")

    @classmethod
    def from_root(cls, root: Path | str) -> LocalVendorStorage:
        """Build from a data root holding cache/, files/ and shared_prefs/."""
        root = Path(root)
        return cls(
            cache_dir=root / StorageLocation.CACHE.value,
            files_dir=root / StorageLocation.FILES.value,
            prefs_dir=root / StorageLocation.PREFERENCES.value,
        )

    def directory(self, location: StorageLocation) -> Path:
        for loc, path in self._locations:
            if loc is location:
                return path
        raise KeyError(location)

    def _matching(self, location: StorageLocation, directory: Path, file_filter: VendorFileFilter) -> list[Path]:
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.iterdir() if file_filter.matches(p.name, location))

    def scan(self, file_filter: VendorFileFilter) -> list[VendorFileInfo]:
        found: list[VendorFileInfo] = []
        for location, directory in self._locations:
            for path in self._matching(location, directory, file_filter):
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    # Removed between listing and stat.
                    continue
                found.append(
                    VendorFileInfo(
                        location=location,
                        name=path.name,
                        size_bytes=stat.st_size,
                        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
        return found

    def purge(self, file_filter: VendorFileFilter) -> PurgeReport:
        deleted = 0
        failures: list[str] = []
        for location, directory in self._locations:
            try:
                entries = self._matching(location, directory, file_filter)
            except OSError as e:
                failures.append(f"{location.value}: {e}")
                continue
            for path in entries:
                try:
                    if path.is_dir() and not path.is_symlink():
                        shutil.rmtree(path)
                    else:
                        path.unlink()
                except OSError as e:
                    failures.append(f"{path}: {e}")
                    continue
                deleted += 1
                self._log.debug("vendor_file_deleted", location=location.value, name=path.name)
        return PurgeReport(deleted_count=deleted, failures=tuple(failures))
