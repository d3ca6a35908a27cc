"""CMP signal source port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from consent_gate.application.services.state_stream import StateStream
    from consent_gate.domain.models.cmp_signal import CmpSnapshot


class CmpSignalSourceProtocol(Protocol):
    """Protocol for the consent-management-platform readiness signal."""

    def current(self) -> CmpSnapshot:
        """Latest CMP snapshot."""
        ...

    def update(self, snapshot: CmpSnapshot) -> None:
        """Replace the CMP snapshot (simulation and testing entry point)."""
        ...

    def stream(self) -> StateStream[CmpSnapshot]:
        """Live stream of CMP snapshots, replaying the latest."""
        ...
