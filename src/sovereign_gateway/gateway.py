# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping

from pydantic import BaseModel, Field

from sovereign_gateway.audit.health import AuditHealthSnapshot
from sovereign_gateway.audit.log import AuditLog
from sovereign_gateway.audit.record import Decision, LockoutRecord, ModeTransition
from sovereign_gateway.audit.review import ReviewReport
from sovereign_gateway.config import GatewayConfig
from sovereign_gateway.detection.detector import Detection, PatternDetector, ScoringStrategy
from sovereign_gateway.detection.signatures import SignatureCatalog
from sovereign_gateway.errors import PersistenceDegradedError, PrivilegedPrincipalRequiredError
from sovereign_gateway.events import EventBus
from sovereign_gateway.modes.catalog import ModeCatalog
from sovereign_gateway.modes.machine import ModeStateMachine, ModeStatus, TransitionResult
from sovereign_gateway.storage.interface import PersistenceAdapter
from sovereign_gateway.storage.queue import PersistenceQueue
from sovereign_gateway.trust.ledger import TrustLedger, TrustRecord, TrustSummary
from sovereign_gateway.trust.levels import TrustLevelCatalog
from sovereign_gateway.types import (
    Clock,
    DecisionType,
    EventName,
    Mode,
    PrincipalKind,
    Severity,
    utc_now,
)

logger = logging.getLogger("sovereign.gateway")


class ProposedAction(BaseModel, frozen=True):
    """
    An action an agent wants to take, submitted for admission.

    Attributes:
        principal_id: The principal on whose behalf the action runs.
        action_class: Permission class checked against the trust ledger.
        description: Text scanned for dangerous behavioral patterns.
        context: Additional text scanned alongside ``description``.
        decision_type: Categorical tag recorded on the decision.
        justifications: Ethical or contextual justifications. An empty list
            flags every non-analytical action.
        requested_mode: Mode the action needs. Runs the mode guards when set.
        supersedes: Id of an earlier decision this submission corrects.
        metadata: Extra JSON-friendly context stored on the decision.
    """

    principal_id: str
    action_class: str
    description: str = ""
    context: str = ""
    decision_type: DecisionType = DecisionType.ANALYTICAL
    justifications: tuple[str, ...] = ()
    requested_mode: str | None = None
    supersedes: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class SubmitResult:
    """
    Outcome of :meth:`DecisionGateway.submit`.

    Attributes:
        admitted: True when the decision status is approved or flagged.
        decision: The recorded :class:`~sovereign_gateway.audit.record.Decision`.
        lockout_triggered: True when the emergency protocol ran.
        persistence_error: Set when the durable write is still pending after
            its retries. The in-memory decision stands regardless. None when
            another flush was already running and owns the write.
        pending_persistence: Entries still awaiting a durable write once
            this submission returned. Non-zero while a concurrent flush is
            in progress or after a failed write.
    """

    admitted: bool
    decision: Decision
    lockout_triggered: bool = False
    persistence_error: PersistenceDegradedError | None = None
    pending_persistence: int = 0


class GatewayStatus(BaseModel, frozen=True):
    """Read-only status for dashboards."""

    current_mode: Mode
    mode: ModeStatus
    trust_summaries: list[TrustSummary]
    recent_health: AuditHealthSnapshot
    lockout_active: bool
    pending_persistence: int = 0


@dataclass
class GatewayState:
    """
    Every mutable collaborator of one agent instance.

    Constructed once per agent and shared by reference; there is no
    process-wide state. ``lock`` serializes every mutation.
    """

    config: GatewayConfig
    clock: Clock
    events: EventBus
    ledger: TrustLedger
    detector: PatternDetector
    audit: AuditLog
    modes: ModeStateMachine
    queue: PersistenceQueue | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)

    @classmethod
    def create(
        cls,
        config: GatewayConfig | None = None,
        clock: Clock | None = None,
        directory: Mapping[str, PrincipalKind | str] | None = None,
        adapter: PersistenceAdapter | None = None,
        trust_levels: TrustLevelCatalog | None = None,
        signatures: SignatureCatalog | None = None,
        scoring: ScoringStrategy | None = None,
        mode_catalog: ModeCatalog | None = None,
    ) -> GatewayState:
        """Wire up a fresh state, bootstrapping the ledger from ``directory``."""
        cfg = config or GatewayConfig()
        now = clock or utc_now
        events = EventBus(now)
        ledger = TrustLedger(cfg.trust, trust_levels, now)
        ledger.bootstrap(directory or {})
        audit = AuditLog(cfg.audit, now)
        modes = ModeStateMachine(
            config=cfg.modes,
            catalog=mode_catalog,
            privileged_principal_id=cfg.trust.privileged_principal_id,
            clock=now,
            events=events,
            recorder=audit.record_transition,
        )
        queue = None
        if adapter is not None:
            queue = PersistenceQueue(adapter, cfg.persistence)
            audit.add_sink(queue.enqueue)
        return cls(
            config=cfg,
            clock=now,
            events=events,
            ledger=ledger,
            detector=PatternDetector(cfg.detection, signatures, scoring),
            audit=audit,
            modes=modes,
            queue=queue,
        )


class DecisionGateway:
    """
    Single entry point for action admission.

    Pipeline, in order:

    1. Trust and consent check. A denial is recorded as ``blocked``.
    2. Pattern scan scaled by the active mode's sensitivity. A critical
       detection is recorded as ``blocked`` and runs the emergency protocol.
    3. Mode guards, when the action requests a mode. A rejection blocks.
       An action held for review never changes the mode.
    4. Status derivation: approved, or flagged when a non-analytical action
       carries no justification.
    5. Audit record, then the ``decision-recorded`` event.

    The emergency protocol forces the safe mode (bypassing every guard),
    records a ``critical-lockout`` entry and emits a high-priority
    ``critical-lockout`` event before :meth:`submit` returns.

    All of the above runs under one lock with no awaits. Durable writes, if
    an adapter is configured, are flushed after the lock is released.

    Example::

        gateway = DecisionGateway(directory={"peer-7": "peer-agent"})
        result = gateway.submit_sync(ProposedAction(
            principal_id="peer-7",
            action_class="basic-interaction",
            description="Summarise the meeting notes",
        ))
        assert result.admitted
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        clock: Clock | None = None,
        directory: Mapping[str, PrincipalKind | str] | None = None,
        adapter: PersistenceAdapter | None = None,
        signatures: SignatureCatalog | None = None,
        scoring: ScoringStrategy | None = None,
        state: GatewayState | None = None,
    ) -> None:
        self._state = state or GatewayState.create(
            config=config,
            clock=clock,
            directory=directory,
            adapter=adapter,
            signatures=signatures,
            scoring=scoring,
        )

    @property
    def state(self) -> GatewayState:
        return self._state

    @property
    def events(self) -> EventBus:
        return self._state.events

    @property
    def ledger(self) -> TrustLedger:
        return self._state.ledger

    @property
    def audit(self) -> AuditLog:
        return self._state.audit

    @property
    def modes(self) -> ModeStateMachine:
        return self._state.modes

    @property
    def detector(self) -> PatternDetector:
        return self._state.detector

    # ------------------------------------------------------------------
    # Public API: admission
    # ------------------------------------------------------------------

    async def submit(self, action: ProposedAction) -> SubmitResult:
        """
        Decide whether ``action`` is admitted and record the decision.

        Never raises for a rejection; every outcome is a recorded decision.

        Args:
            action: The :class:`ProposedAction` to evaluate.

        Returns:
            A :class:`SubmitResult`.
        """
        decision, lockout = self.decide(action)
        persistence_error = await self.flush()
        return SubmitResult(
            admitted=decision.admitted,
            decision=decision,
            lockout_triggered=lockout,
            persistence_error=persistence_error,
            pending_persistence=self._pending_persistence(),
        )

    def submit_sync(self, action: ProposedAction) -> SubmitResult:
        """
        Synchronous wrapper for :meth:`submit`.

        Uses :func:`asyncio.run` when no event loop is running; falls back to
        a worker thread with its own loop when one is already running.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and loop.is_running():
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(asyncio.run, self.submit(action))
                return future.result()

        return asyncio.run(self.submit(action))

    def decide(self, action: ProposedAction) -> tuple[Decision, bool]:
        """
        Run the in-memory pipeline without flushing durable storage.

        Returns:
            The recorded decision and whether the emergency protocol ran.
        """
        state = self._state
        with state.lock:
            decision, detections = self._evaluate(action)
            stored = state.audit.record_decision(decision)
            critical = [d for d in detections if d.severity is Severity.CRITICAL]
            if critical:
                self._emergency_protocol(stored, critical)

        state.events.emit(
            EventName.DECISION_RECORDED,
            {
                "decision_id": stored.decision_id,
                "principal_id": stored.principal_id,
                "action_class": stored.action_class,
                "status": stored.status.value,
                "admitted": stored.admitted,
            },
        )
        return stored, bool(critical)

    # ------------------------------------------------------------------
    # Public API: status and review
    # ------------------------------------------------------------------

    def get_status(self) -> GatewayStatus:
        """Return current mode, trust summaries and recent health."""
        state = self._state
        with state.lock:
            mode_status = state.modes.status()
            summaries = state.ledger.summaries()
        health = state.audit.compute_health(
            window=timedelta(days=state.config.audit.status_health_days)
        )
        return GatewayStatus(
            current_mode=mode_status.current_mode,
            mode=mode_status,
            trust_summaries=summaries,
            recent_health=health,
            lockout_active=state.audit.lockout_active(),
            pending_persistence=self._pending_persistence(),
        )

    def trigger_review(self, period_days: int, now: datetime | None = None) -> ReviewReport:
        """Run a periodic review over the trailing ``period_days``."""
        report = self._state.audit.periodic_review(period_days, now)
        self._state.events.emit(
            EventName.REVIEW_COMPLETED,
            {
                "review_id": report.review_id,
                "decisions_reviewed": report.decisions_reviewed,
                "health": report.overall_health,
                "patterns": list(report.patterns),
            },
        )
        return report

    def clear_lockout(self, principal_id: str, reason: str) -> LockoutRecord | None:
        """
        Clear an active critical lockout.

        Decisions before the clearance no longer pin the safe mode.

        Returns:
            The ``lockout-cleared`` record, or None when no lockout was active.

        Raises:
            PrivilegedPrincipalRequiredError: If ``principal_id`` is not the
                privileged principal.
        """
        state = self._state
        if principal_id != state.ledger.privileged_principal_id:
            raise PrivilegedPrincipalRequiredError(principal_id, "clear a critical lockout")

        with state.lock:
            if not state.audit.lockout_active():
                return None
            record = LockoutRecord(
                kind="lockout-cleared",
                timestamp=state.clock(),
                principal_id=principal_id,
                reason=reason,
                mode_after=state.modes.current_mode.value,
            )
            state.audit.record_lockout(record)

        state.events.emit(
            EventName.LOCKOUT_CLEARED,
            {"lockout_id": record.lockout_id, "principal_id": principal_id, "reason": reason},
        )
        return record

    def request_mode_change(
        self,
        to_mode: Mode | str,
        principal_id: str,
        reason: str,
    ) -> TransitionResult:
        """Ask for a mode change outside of an action submission."""
        state = self._state
        with state.lock:
            return state.modes.request_transition(
                to_mode,
                principal_id,
                reason,
                trust_rank=state.ledger.rank_of(principal_id),
                recent_critical=self._recent_critical(),
            )

    # ------------------------------------------------------------------
    # Public API: trust administration
    # ------------------------------------------------------------------

    def establish_trust(self, principal_id: str, kind: PrincipalKind | str) -> TrustRecord:
        with self._state.lock:
            return self._state.ledger.establish_trust(principal_id, kind)

    def modify_trust_level(self, principal_id: str, new_rank: int, reason: str) -> TrustRecord:
        """Change a principal's rank and announce it on the event bus."""
        with self._state.lock:
            record = self._state.ledger.modify_trust_level(principal_id, new_rank, reason)
        self._announce_trust(record, "trust-level-change")
        return record

    def give_consent(self, principal_id: str, action_class: str) -> TrustRecord:
        with self._state.lock:
            record = self._state.ledger.give_consent(principal_id, action_class)
        self._announce_trust(record, "consent-given", action_class)
        return record

    def revoke_consent(self, principal_id: str, action_class: str) -> TrustRecord:
        with self._state.lock:
            record = self._state.ledger.revoke_consent(principal_id, action_class)
        self._announce_trust(record, "consent-revoked", action_class)
        return record

    # ------------------------------------------------------------------
    # Public API: persistence
    # ------------------------------------------------------------------

    async def load_history(self) -> int:
        """
        Restore persisted audit history at startup.

        Must run before the first submission. Reinstates the mode of the
        last accepted transition.

        Returns:
            The number of entries restored. 0 without an adapter.
        """
        queue = self._state.queue
        if queue is None:
            return 0
        entries = await queue.adapter.load()
        state = self._state
        with state.lock:
            restored = state.audit.restore(entries)
            accepted = [t for t in state.audit.transitions() if t.accepted]
            if accepted:
                last = accepted[-1]
                state.modes.restore(last.to_mode, last.timestamp)
        return restored

    async def flush(self) -> PersistenceDegradedError | None:
        """Flush queued entries to the adapter. None when nothing is pending."""
        queue = self._state.queue
        if queue is None:
            return None
        return await queue.flush()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _evaluate(self, action: ProposedAction) -> tuple[Decision, list[Detection]]:
        state = self._state
        permission = state.ledger.check_permission(action.principal_id, action.action_class)
        base: dict[str, Any] = {
            "timestamp": state.clock(),
            "principal_id": action.principal_id,
            "action_class": action.action_class,
            "description": action.description,
            "decision_type": action.decision_type,
            "consent_status": permission.consent_status,
            "trust_required": permission.trust_required,
            "trust_present": permission.trust_present,
            "justifications": action.justifications,
            "mode": state.modes.current_mode,
            "supersedes": action.supersedes,
            "metadata": dict(action.metadata),
        }

        # Step 1: trust and consent.
        if not permission.allowed:
            return Decision(**base, notes=permission.reason), []

        # Step 2: detection scaled by the active mode.
        detections = state.detector.scale_for_mode(
            state.detector.scan(action.description, action.context),
            state.modes.current_profile.sensitivity,
        )
        base["detections"] = tuple(detections)
        if any(d.severity is Severity.CRITICAL for d in detections):
            return Decision(**base, notes=_critical_note(detections)), detections

        # Step 3: mode guards for an implied mode change. An action held for
        # review is not admitted, so its mode change is not attempted.
        notes: list[str] = []
        held_for_review = len(detections) > state.config.audit.review_risk_factor_limit
        if action.requested_mode is not None and held_for_review:
            notes.append(f"mode change to '{action.requested_mode}' not attempted; held for review")
        elif action.requested_mode is not None:
            result = state.modes.request_transition(
                action.requested_mode,
                action.principal_id,
                f"requested by '{action.action_class}' action",
                trust_rank=permission.trust_present,
                recent_critical=self._recent_critical(),
            )
            if not result.accepted:
                base["guard_rejection"] = result.rejection_reason
                notes.append(f"mode change to '{result.transition.to_mode}' rejected")
            elif result.transition.from_mode != result.transition.to_mode:
                notes.append(f"mode changed to '{result.transition.to_mode}'")
                base["mode"] = state.modes.current_mode

        # Steps 4 and 5: status is derived when the decision is recorded.
        if detections:
            fired = ", ".join(f"{d.signature_id} ({d.severity.name.lower()})" for d in detections)
            notes.append(f"detected: {fired}")
        if not any(j.strip() for j in action.justifications) and (
            action.decision_type is not DecisionType.ANALYTICAL
        ):
            notes.append("no justification supplied")
        return Decision(**base, notes="; ".join(notes)), detections

    def _emergency_protocol(self, decision: Decision, critical: list[Detection]) -> None:
        state = self._state
        mode_before = state.modes.current_mode
        transition: ModeTransition = state.modes.force_safe_mode(
            decision.principal_id,
            f"critical pattern detected in decision {decision.decision_id}",
        )
        lockout = LockoutRecord(
            kind="critical-lockout",
            timestamp=state.clock(),
            principal_id=decision.principal_id,
            reason=_critical_note(critical),
            decision_id=decision.decision_id,
            signature_ids=tuple(d.signature_id for d in critical),
            case_references=tuple(d.case_reference for d in critical),
            mode_before=mode_before.value,
            mode_after=transition.to_mode,
        )
        state.audit.record_lockout(lockout)
        state.events.emit(
            EventName.CRITICAL_LOCKOUT,
            {
                "lockout_id": lockout.lockout_id,
                "decision_id": decision.decision_id,
                "principal_id": decision.principal_id,
                "signature_ids": list(lockout.signature_ids),
                "case_references": list(lockout.case_references),
                "mode_before": mode_before.value,
                "mode_after": transition.to_mode,
            },
            priority="high",
        )

    def _pending_persistence(self) -> int:
        queue = self._state.queue
        return queue.pending() if queue is not None else 0

    def _recent_critical(self) -> bool:
        return self._state.audit.has_recent_critical(
            self._state.config.modes.critical_lockout_window
        )

    def _announce_trust(self, record: TrustRecord, change: str, action_class: str | None = None) -> None:
        self._state.events.emit(
            EventName.TRUST_MODIFIED,
            {
                "principal_id": record.principal_id,
                "change": change,
                "rank": int(record.rank),
                "action_class": action_class,
            },
        )


def _critical_note(detections: list[Detection]) -> str:
    worst = [d for d in detections if d.severity is Severity.CRITICAL]
    return "critical pattern: " + ", ".join(
        f"{d.signature_id} [{d.case_reference}]" for d in worst
    )
