"""In-memory consent store.

Default consent store: nothing survives a restart, so every process starts
from the deny-all snapshot.
"""

from __future__ import annotations

from collections.abc import Iterable

from structlog import get_logger

from consent_gate.application.services.state_stream import StateStream
from consent_gate.domain.models.consent import ConsentSnapshot, ConsentType

logger = get_logger()


class InMemoryConsentStore:
    """Consent store backed by a StateStream only."""

    def __init__(self, initial: ConsentSnapshot | None = None) -> None:
        self._stream: StateStream[ConsentSnapshot] = StateStream(
            initial or ConsentSnapshot.empty()
        )
        self._log = logger.bind(adapter="InMemoryConsentStore")

    async def current(self) -> ConsentSnapshot:
        return self._stream.value

    async def update(
        self, granted: Iterable[ConsentType], user_id: str | None = None
    ) -> None:
        snapshot = ConsentSnapshot(user_id=user_id, granted=frozenset(granted))
        self._log.info("consent_updated", granted=snapshot.names())
        self._stream.emit(snapshot)

    def stream(self) -> StateStream[ConsentSnapshot]:
        return self._stream
