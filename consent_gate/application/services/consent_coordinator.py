"""Consent coordinator.

Reactive glue between the signal sources and the lifecycle controller. It
subscribes to the consent store and the CMP source, recomputes the
authorization decision through the consent mapper whenever the combination
of the two latest values changes, and drives ``grant()`` /
``revoke(purge=True)`` on the controller.

Operating Rules:
1. NO DECISION WITHOUT BOTH SIGNALS - nothing is evaluated until a consent
   snapshot and a CMP snapshot have both been seen
2. DEDUP ON VALUE - a value-identical (granted, cmp) pair is not re-evaluated
3. LATEST WINS - signals arriving while a transition is in flight only
   update the pending pair; once the transition completes, the newest pair
   is evaluated and everything in between is skipped
4. NO CANCELLATION MID-TRANSITION - stop() cancels the subscriptions but
   lets an in-flight grant/revoke run to completion
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Set
from typing import TYPE_CHECKING

from consent_gate.application.observability.correlation import decision_scope
from consent_gate.application.services.base import LoggingMixin
from consent_gate.domain.models.lifecycle import AuthorizationDecision, InitFailure
from consent_gate.domain.services.consent_mapper import (
    effective,
    jurisdiction_gdpr_subject,
)

if TYPE_CHECKING:
    from consent_gate.application.ports.cmp_signal_source import CmpSignalSourceProtocol
    from consent_gate.application.ports.consent_store import ConsentStoreProtocol
    from consent_gate.application.ports.diagnostics import DiagnosticEventSinkProtocol
    from consent_gate.application.services.sdk_lifecycle_controller import (
        SdkLifecycleController,
    )
    from consent_gate.application.services.state_stream import StreamSubscription
    from consent_gate.domain.models.cmp_signal import CmpSnapshot
    from consent_gate.domain.models.consent import ConsentSnapshot, ConsentType

EVENT_TAG = "coordinator"


class ConsentCoordinator(LoggingMixin):
    """Reconciles consent and CMP signals into controller transitions."""

    def __init__(
        self,
        consent_store: ConsentStoreProtocol,
        cmp_source: CmpSignalSourceProtocol,
        controller: SdkLifecycleController,
        required_consent: Set[ConsentType],
        *,
        gdpr_subject: Callable[[CmpSnapshot], bool] = jurisdiction_gdpr_subject,
        event_bus: DiagnosticEventSinkProtocol | None = None,
    ) -> None:
        """Initialize the coordinator. Nothing is subscribed until start().

        Args:
            consent_store: Source of consent snapshots.
            cmp_source: Source of CMP snapshots.
            controller: Lifecycle controller to drive.
            required_consent: Categories the vendor policy requires.
            gdpr_subject: Resolves the GDPR-subject flag from a CMP snapshot.
            event_bus: Optional diagnostic event sink.
        """
        self._consent_store = consent_store
        self._cmp_source = cmp_source
        self._controller = controller
        self._required = frozenset(required_consent)
        self._gdpr_subject = gdpr_subject
        self._event_bus = event_bus

        self._latest_consent: ConsentSnapshot | None = None
        self._latest_cmp: CmpSnapshot | None = None
        self._last_key: tuple[frozenset[ConsentType], CmpSnapshot] | None = None
        self._last_decision: AuthorizationDecision | None = None

        self._dirty = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._subscriptions: list[StreamSubscription[object]] = []
        self._tasks: list[asyncio.Task[None]] = []
        self._inflight: asyncio.Future[None] | None = None
        self._init_logger(component="consent_gate", vendor=controller.vendor_name)

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def last_decision(self) -> AuthorizationDecision | None:
        """Most recently evaluated decision, if any."""
        return self._last_decision

    async def start(self) -> None:
        """Subscribe to both signal streams and start reconciling."""
        if self._tasks:
            return
        log = self._log_operation("start", required=sorted(c.value for c in self._required))
        consent_sub = self._consent_store.stream().subscribe()
        cmp_sub = self._cmp_source.stream().subscribe()
        self._subscriptions = [consent_sub, cmp_sub]  # type: ignore[list-item]
        self._tasks = [
            asyncio.create_task(self._pump_consent(consent_sub), name="consent-pump"),
            asyncio.create_task(self._pump_cmp(cmp_sub), name="cmp-pump"),
            asyncio.create_task(self._run(), name="consent-coordinator"),
        ]
        log.info("coordinator_started")

    async def stop(self) -> None:
        """Release the subscriptions and wait for any in-flight transition."""
        if not self._tasks:
            return
        log = self._log_operation("stop")
        for subscription in self._subscriptions:
            subscription.close()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        self._subscriptions = []
        if self._inflight is not None and not self._inflight.done():
            log.info("awaiting_inflight_transition")
            try:
                await self._inflight
            except Exception as e:
                log.error("inflight_transition_failed", error=str(e), exc_info=True)
        self._idle.set()
        log.info("coordinator_stopped")

    async def drain(self) -> None:
        """Wait until every signal seen so far has been reconciled."""
        while True:
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            await self._idle.wait()
            if not self._dirty.is_set():
                return

    async def _pump_consent(self, subscription: StreamSubscription[ConsentSnapshot]) -> None:
        async for snapshot in subscription:
            self._latest_consent = snapshot
            self._dirty.set()

    async def _pump_cmp(self, subscription: StreamSubscription[CmpSnapshot]) -> None:
        async for snapshot in subscription:
            self._latest_cmp = snapshot
            self._dirty.set()

    async def _run(self) -> None:
        """Reconcile loop. An evaluation error is logged and the loop continues."""
        while True:
            if not self._dirty.is_set():
                self._idle.set()
            await self._dirty.wait()
            self._idle.clear()
            self._dirty.clear()

            consent = self._latest_consent
            cmp = self._latest_cmp
            if consent is None or cmp is None:
                continue
            key = (consent.granted, cmp)
            if key == self._last_key:
                continue
            self._last_key = key
            try:
                await self._evaluate(consent, cmp)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Forget the pair so the same signals are evaluated again.
                self._last_key = None
                self._log_operation("evaluate").error(
                    "consent_evaluation_failed", error=str(e), exc_info=True
                )

    async def _evaluate(self, consent: ConsentSnapshot, cmp: CmpSnapshot) -> None:
        with decision_scope():
            await self._decide(consent, cmp)

    async def _decide(self, consent: ConsentSnapshot, cmp: CmpSnapshot) -> None:
        log = self._log_operation("evaluate")
        gdpr_subject = self._gdpr_subject(cmp)
        decision = effective(
            granted=consent.granted,
            required=self._required,
            gdpr_subject=gdpr_subject,
            cmp_ready=cmp.ready,
            has_transparency_string=cmp.has_transparency_string,
        )
        self._last_decision = decision
        if decision.policy_unconfigured:
            log.warning("empty_required_consent_policy")
        log.info(
            "consent_decision",
            allow=decision.allow,
            policy_allows=decision.policy_allows,
            cmp_allows=decision.cmp_allows,
            gdpr_subject=gdpr_subject,
            cmp_ready=cmp.ready,
            has_transparency_string=cmp.has_transparency_string,
            granted=consent.names(),
        )
        if self._event_bus is not None:
            self._event_bus.post(
                EVENT_TAG,
                f"consent decision allow={decision.allow} "
                f"(policy={decision.policy_allows}, cmp={decision.cmp_allows})",
            )

        self._inflight = asyncio.ensure_future(self._apply(decision))
        await asyncio.shield(self._inflight)

    async def _apply(self, decision: AuthorizationDecision) -> None:
        log = self._log_operation("apply", allow=decision.allow)
        if decision.allow:
            result = await self._controller.grant()
        else:
            result = await self._controller.revoke(purge=True)
        if isinstance(result, InitFailure):
            log.error("transition_failed", error=result.message)
