"""JSON-file consent store.

Persists granted consent categories (by name) and the optional user id:

    {"granted": ["ANALYTICS", "MARKETING"], "user_id": null}

Unknown category names in the file are dropped with a warning. A missing
file means nothing is granted. File I/O runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from structlog import get_logger

from consent_gate.application.services.state_stream import StateStream
from consent_gate.domain.models.consent import (
    ConsentSnapshot,
    ConsentType,
    decode_consent_types,
)

logger = get_logger()


class FileConsentStore:
    """Consent store persisted as a small JSON document.

    The file is read once at construction; afterwards the in-memory stream
    is authoritative and every update rewrites the file before emitting.
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize the store.

        Args:
            path: JSON file location. Parent directories are created on
                first write.
        """
        self._path = Path(path)
        self._log = logger.bind(adapter="FileConsentStore", path=str(self._path))
        self._write_lock = asyncio.Lock()
        self._stream: StateStream[ConsentSnapshot] = StateStream(self._read())

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> ConsentSnapshot:
        if not self._path.exists():
            return ConsentSnapshot.empty()
        try:
            document: Any = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self._log.warning("consent_file_unreadable", error=str(e))
            return ConsentSnapshot.empty()
        if not isinstance(document, dict):
            self._log.warning("consent_file_malformed", reason="top level is not an object")
            return ConsentSnapshot.empty()

        names = document.get("granted") or []
        if not isinstance(names, list):
            self._log.warning("consent_file_malformed", reason="granted is not a list")
            names = []
        granted, unknown = decode_consent_types(str(n) for n in names)
        if unknown:
            self._log.warning("unknown_consent_types_dropped", unknown=list(unknown))
        user_id = document.get("user_id")
        return ConsentSnapshot(
            user_id=str(user_id) if user_id is not None else None,
            granted=granted,
        )

    def _write(self, snapshot: ConsentSnapshot) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        document = {"granted": snapshot.names(), "user_id": snapshot.user_id}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    async def current(self) -> ConsentSnapshot:
        return self._stream.value

    async def update(
        self, granted: Iterable[ConsentType], user_id: str | None = None
    ) -> None:
        snapshot = ConsentSnapshot(user_id=user_id, granted=frozenset(granted))
        async with self._write_lock:
            await asyncio.to_thread(self._write, snapshot)
            self._log.info("consent_persisted", granted=snapshot.names())
            self._stream.emit(snapshot)

    def stream(self) -> StateStream[ConsentSnapshot]:
        return self._stream
