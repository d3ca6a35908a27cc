"""Consent store port.

Persisted consent storage: get/set of granted consent categories plus a
live stream that replays the latest snapshot to new subscribers.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from consent_gate.application.services.state_stream import StateStream
    from consent_gate.domain.models.consent import ConsentSnapshot, ConsentType


class ConsentStoreProtocol(Protocol):
    """Protocol for consent persistence.

    Implementers MUST:
    1. Replace the snapshot atomically on every update
    2. Push every new snapshot to ``stream()`` subscribers
    3. Drop unknown category names when decoding persisted data
    """

    async def current(self) -> ConsentSnapshot:
        """Read the latest snapshot."""
        ...

    async def update(
        self, granted: Iterable[ConsentType], user_id: str | None = None
    ) -> None:
        """Persist a new set of granted categories.

        Args:
            granted: Categories now granted (replaces the previous set).
            user_id: Optional identity of the consenting user.
        """
        ...

    def stream(self) -> StateStream[ConsentSnapshot]:
        """Live stream of snapshots, replaying the latest to subscribers."""
        ...
