"""CMP state source.

Holds the latest consent-management-platform snapshot. In this project the
CMP is simulated, so ``update()`` is the only producer.
"""

from __future__ import annotations

from structlog import get_logger

from consent_gate.application.services.state_stream import StateStream
from consent_gate.domain.models.cmp_signal import INITIAL_CMP_SNAPSHOT, CmpSnapshot

logger = get_logger()


class CmpStateSource:
    """Replay-latest source of CmpSnapshot values."""

    def __init__(self, initial: CmpSnapshot = INITIAL_CMP_SNAPSHOT) -> None:
        self._stream: StateStream[CmpSnapshot] = StateStream(initial)
        self._log = logger.bind(adapter="CmpStateSource")

    def current(self) -> CmpSnapshot:
        return self._stream.value

    def update(self, snapshot: CmpSnapshot) -> None:
        self._log.info(
            "cmp_state_updated",
            ready=snapshot.ready,
            has_transparency_string=snapshot.has_transparency_string,
            jurisdiction_applies=snapshot.jurisdiction_applies.value,
        )
        self._stream.emit(snapshot)

    def stream(self) -> StateStream[CmpSnapshot]:
        return self._stream
