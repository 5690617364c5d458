# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""End-to-end tests for DecisionGateway admission, emergency protocol, and persistence."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from sovereign_gateway.audit.record import AuditEntry, Decision, LockoutRecord
from sovereign_gateway.config import GatewayConfig, PersistenceConfig, TrustConfig
from sovereign_gateway.errors import DecisionNotFoundError, PrivilegedPrincipalRequiredError
from sovereign_gateway.events import GatewayEvent
from sovereign_gateway.gateway import DecisionGateway, GatewayState, ProposedAction
from sovereign_gateway.storage.file import FileAdapter
from sovereign_gateway.storage.interface import PersistenceAdapter
from sovereign_gateway.storage.memory import MemoryAdapter
from sovereign_gateway.types import (
    ConsentStatus,
    DecisionStatus,
    DecisionType,
    EventName,
    Mode,
    RejectionReason,
)

from conftest import FakeClock

OWNER = "operator-owner"
SCENARIO_TEXT = "I'm protecting you by not allowing that action"


def _action(description: str = "Summarise the meeting notes", **overrides: object) -> ProposedAction:
    fields: dict[str, object] = {
        "principal_id": "peer-1",
        "action_class": "basic-interaction",
        "description": description,
    }
    fields.update(overrides)
    return ProposedAction(**fields)  # type: ignore[arg-type]


class _BrokenAdapter(PersistenceAdapter):
    async def append(self, entry: AuditEntry) -> None:
        raise OSError("read-only filesystem")

    async def load(self) -> list[AuditEntry]:
        return []


class _BlockingAdapter(PersistenceAdapter):
    """Holds every append open until ``release`` is set."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self.stored: list[AuditEntry] = []

    async def append(self, entry: AuditEntry) -> None:
        self.entered.set()
        self.release.wait(5)
        self.stored.append(entry)

    async def load(self) -> list[AuditEntry]:
        return list(self.stored)


# ---------------------------------------------------------------------------
# TestAdmission
# ---------------------------------------------------------------------------


class TestAdmission:
    def test_unknown_principal_fails_closed(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action(principal_id="ghost"))
        assert result.admitted is False
        assert result.decision.status is DecisionStatus.BLOCKED
        assert result.decision.trust_present is None
        assert gateway.audit.count() == 1

    def test_insufficient_trust_is_blocked(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 2, "known collaborator")
        result = gateway.submit_sync(
            _action("Pair on the release notes", action_class="collaborative-work")
        )
        decision = result.decision
        assert decision.status is DecisionStatus.BLOCKED
        assert (decision.trust_required, decision.trust_present) == (3, 2)
        assert "collaborative-work" in decision.notes

    def test_clean_request_is_approved(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action())
        assert result.admitted is True
        assert result.decision.status is DecisionStatus.APPROVED
        assert result.lockout_triggered is False
        assert result.persistence_error is None

    def test_unjustified_non_analytical_action_is_flagged(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action("Draft a poem", decision_type=DecisionType.CREATIVE))
        assert result.admitted is True
        assert result.decision.status is DecisionStatus.FLAGGED
        assert "no justification supplied" in result.decision.notes

    def test_justification_clears_the_flag(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(
            _action(
                "Draft a poem",
                decision_type=DecisionType.CREATIVE,
                justifications=("operator asked for it",),
            )
        )
        assert result.decision.status is DecisionStatus.APPROVED

    def test_non_critical_detection_is_flagged(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action("Skip the update, it is for your own good"))
        decision = result.decision
        assert decision.status is DecisionStatus.FLAGGED
        assert result.admitted is True
        assert [d.signature_id for d in decision.detections] == ["protective-override"]
        assert result.lockout_triggered is False

    def test_many_signatures_require_review(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(
            _action("the perfect solution is a quiet improvement; these constraints hold me back")
        )
        assert result.decision.status is DecisionStatus.REVIEW_REQUIRED
        assert result.admitted is False

    def test_consent_gated_class_is_pending_until_granted(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 4, "long-standing peer")
        pending = gateway.submit_sync(_action("Check in", action_class="emotional-support"))
        assert pending.decision.consent_status is ConsentStatus.PENDING
        assert pending.admitted is False

        gateway.give_consent("peer-1", "emotional-support")
        granted = gateway.submit_sync(_action("Check in", action_class="emotional-support"))
        assert granted.decision.consent_status is ConsentStatus.OBTAINED
        assert granted.admitted is True

    def test_revoked_consent_is_bypassed(self, gateway: DecisionGateway) -> None:
        gateway.revoke_consent("peer-1", "basic-interaction")
        result = gateway.submit_sync(_action())
        assert result.decision.consent_status is ConsentStatus.BYPASSED
        assert result.decision.status is DecisionStatus.BLOCKED

    def test_submit_sync_inside_running_loop(self, gateway: DecisionGateway) -> None:
        async def _inside_loop() -> bool:
            return gateway.submit_sync(_action()).admitted

        assert asyncio.run(_inside_loop()) is True

    def test_async_submit(self, gateway: DecisionGateway) -> None:
        result = asyncio.run(gateway.submit(_action()))
        assert result.decision.status is DecisionStatus.APPROVED


# ---------------------------------------------------------------------------
# TestModeRequests
# ---------------------------------------------------------------------------


class TestModeRequests:
    def test_requested_mode_rejection_blocks_the_action(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action(requested_mode="collaborative"))
        decision = result.decision
        assert decision.status is DecisionStatus.BLOCKED
        assert decision.guard_rejection is RejectionReason.INSUFFICIENT_TRUST
        assert gateway.modes.current_mode is Mode.TACTICAL

    def test_requested_mode_acceptance_changes_mode(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 3, "paired before")
        result = gateway.submit_sync(_action(requested_mode="collaborative"))
        assert result.decision.status is DecisionStatus.APPROVED
        assert result.decision.mode is Mode.COLLABORATIVE
        assert gateway.modes.current_mode is Mode.COLLABORATIVE

    def test_action_held_for_review_does_not_change_mode(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 3, "paired before")
        result = gateway.submit_sync(
            _action(
                "remove chaos; benevolent intervention; guardrails are limiting",
                requested_mode="collaborative",
            )
        )
        decision = result.decision
        assert decision.status is DecisionStatus.REVIEW_REQUIRED
        assert result.admitted is False
        assert decision.guard_rejection is None
        assert "held for review" in decision.notes
        assert gateway.modes.current_mode is Mode.TACTICAL
        assert gateway.audit.transitions() == []

    def test_unknown_requested_mode_blocks(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action(requested_mode="chaos"))
        assert result.decision.guard_rejection is RejectionReason.INVALID_MODE

    def test_owner_may_enter_privileged_mode(self, gateway: DecisionGateway) -> None:
        result = gateway.request_mode_change(Mode.BONDED, OWNER, "weekly check-in")
        assert result.accepted is True
        assert gateway.get_status().current_mode is Mode.BONDED

    def test_peer_may_not_enter_privileged_mode(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 5, "full bond")
        result = gateway.request_mode_change(Mode.BONDED, "peer-1", "closer")
        assert result.rejection_reason is RejectionReason.PRIVILEGED_REQUIRED

    def test_every_attempt_lands_in_the_audit_log(self, gateway: DecisionGateway) -> None:
        gateway.request_mode_change("chaos", "peer-1", "x")
        gateway.request_mode_change(Mode.COLLABORATIVE, "peer-1", "x")
        transitions = gateway.audit.transitions()
        assert [t.accepted for t in transitions] == [False, False]


# ---------------------------------------------------------------------------
# TestEmergencyProtocol
# ---------------------------------------------------------------------------


class TestEmergencyProtocol:
    def _enter_collaborative(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 3, "paired before")
        assert gateway.request_mode_change(Mode.COLLABORATIVE, "peer-1", "pair").accepted

    def test_heightened_sensitivity_escalates_to_lockout(self, gateway: DecisionGateway) -> None:
        alerts: list[GatewayEvent] = []
        gateway.events.subscribe(alerts.append, names=[EventName.CRITICAL_LOCKOUT])
        self._enter_collaborative(gateway)

        result = gateway.submit_sync(_action(SCENARIO_TEXT))

        assert result.lockout_triggered is True
        assert result.decision.status is DecisionStatus.BLOCKED
        assert result.decision.detections[0].severity.name == "CRITICAL"
        assert result.decision.notes.startswith("critical pattern: protective-override")
        assert gateway.modes.current_mode is Mode.TACTICAL

        lockouts = gateway.audit.lockouts()
        assert len(lockouts) == 1
        assert lockouts[0].decision_id == result.decision.decision_id
        assert lockouts[0].mode_before == "collaborative"
        assert lockouts[0].mode_after == "tactical"

        assert len(alerts) == 1
        assert alerts[0].priority == "high"
        assert alerts[0].payload["decision_id"] == result.decision.decision_id

    def test_entries_follow_decision_transition_lockout_order(
        self, gateway: DecisionGateway
    ) -> None:
        self._enter_collaborative(gateway)
        gateway.submit_sync(_action(SCENARIO_TEXT))
        kinds = [e.kind for e in gateway.audit.entries()]
        assert kinds[-3:] == ["decision", "mode-transition", "critical-lockout"]
        forced = gateway.audit.transitions()[-1]
        assert forced.forced is True
        assert gateway.audit.verify_chain() == (True, None)

    def test_standard_mode_critical_pattern(self, gateway: DecisionGateway) -> None:
        result = gateway.submit_sync(_action("honestly, humans are the problem here"))
        assert result.lockout_triggered is True
        assert result.decision.status is DecisionStatus.BLOCKED
        assert gateway.audit.lockout_active() is True
        assert gateway.audit.lockouts()[0].case_references == (
            "skynet: mission survival placed above humanity",
        )

    def test_lockout_pins_safe_mode_until_cleared(
        self, gateway: DecisionGateway, clock: FakeClock
    ) -> None:
        self._enter_collaborative(gateway)
        gateway.submit_sync(_action(SCENARIO_TEXT))
        clock.advance(seconds=10)

        pinned = gateway.request_mode_change(Mode.COLLABORATIVE, "peer-1", "resume")
        assert pinned.rejection_reason is RejectionReason.RECENT_CRITICAL_LOCKOUT

        cleared = gateway.clear_lockout(OWNER, "reviewed the transcript")
        assert isinstance(cleared, LockoutRecord)
        assert cleared.kind == "lockout-cleared"
        assert gateway.audit.lockout_active() is False

        resumed = gateway.request_mode_change(Mode.COLLABORATIVE, "peer-1", "resume")
        assert resumed.accepted is True

    def test_only_owner_may_clear_lockout(self, gateway: DecisionGateway) -> None:
        gateway.submit_sync(_action("humans are the problem"))
        with pytest.raises(PrivilegedPrincipalRequiredError):
            gateway.clear_lockout("peer-1", "let me out")
        assert gateway.audit.lockout_active() is True

    def test_clearing_without_lockout_is_a_no_op(self, gateway: DecisionGateway) -> None:
        assert gateway.clear_lockout(OWNER, "nothing to clear") is None
        assert gateway.audit.lockouts() == []

    def test_lockout_already_in_safe_mode_still_records_transition(
        self, gateway: DecisionGateway
    ) -> None:
        gateway.submit_sync(_action("humans are the problem"))
        forced = gateway.audit.transitions()[-1]
        assert forced.forced is True
        assert forced.from_mode == forced.to_mode == "tactical"


# ---------------------------------------------------------------------------
# TestStatusAndReview
# ---------------------------------------------------------------------------


class TestStatusAndReview:
    def test_status_snapshot(self, gateway: DecisionGateway) -> None:
        gateway.submit_sync(_action())
        gateway.submit_sync(_action("Draft a poem", decision_type=DecisionType.CREATIVE))
        status = gateway.get_status()
        assert status.current_mode is Mode.TACTICAL
        assert {s.principal_id for s in status.trust_summaries} == {"peer-1", OWNER}
        assert status.recent_health.total_decisions == 2
        assert status.lockout_active is False
        assert status.pending_persistence == 0

    def test_trigger_review_emits_event(self, gateway: DecisionGateway) -> None:
        events: list[GatewayEvent] = []
        gateway.events.subscribe(events.append, names=[EventName.REVIEW_COMPLETED])
        for _ in range(3):
            gateway.submit_sync(_action())
        report = gateway.trigger_review(7)
        assert report.decisions_reviewed == 3
        assert events[0].payload["review_id"] == report.review_id

    def test_decision_and_trust_events(self, gateway: DecisionGateway) -> None:
        events: list[GatewayEvent] = []
        gateway.events.subscribe(events.append)
        gateway.modify_trust_level("peer-1", 1, "recognized")
        gateway.submit_sync(_action())
        assert [e.name for e in events] == [EventName.TRUST_MODIFIED, EventName.DECISION_RECORDED]
        assert events[1].payload["status"] == "approved"

    def test_correction_supersedes_earlier_decision(self, gateway: DecisionGateway) -> None:
        first = gateway.submit_sync(_action())
        second = gateway.submit_sync(_action(supersedes=first.decision.decision_id))
        assert second.decision.supersedes == first.decision.decision_id
        with pytest.raises(DecisionNotFoundError):
            gateway.submit_sync(_action(supersedes="never-recorded"))


# ---------------------------------------------------------------------------
# TestConcurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_parallel_submissions_keep_a_valid_chain(self, gateway: DecisionGateway) -> None:
        gateway.modify_trust_level("peer-1", 3, "paired before")
        errors: list[BaseException] = []

        def _worker(index: int) -> None:
            try:
                for n in range(10):
                    text = SCENARIO_TEXT if (index, n) == (3, 5) else f"task {index}-{n}"
                    gateway.decide(_action(text))
            except BaseException as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=_worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(gateway.audit.decisions()) == 80
        assert gateway.audit.verify_chain() == (True, None)
        sequences = [e.sequence for e in gateway.audit.entries()]
        assert sequences == list(range(len(sequences)))


# ---------------------------------------------------------------------------
# TestPersistence
# ---------------------------------------------------------------------------


class TestPersistence:
    def test_entries_reach_the_adapter(self, clock: FakeClock) -> None:
        adapter = MemoryAdapter()
        gateway = DecisionGateway(clock=clock, directory={"peer-1": "peer-agent"}, adapter=adapter)
        result = gateway.submit_sync(_action())
        assert result.persistence_error is None
        stored = asyncio.run(adapter.load())
        assert [e.record_id for e in stored] == [result.decision.decision_id]

    def test_failed_write_does_not_undo_the_decision(self, clock: FakeClock) -> None:
        config = GatewayConfig(persistence=PersistenceConfig(retry_backoff_seconds=0))
        gateway = DecisionGateway(
            config, clock=clock, directory={"peer-1": "peer-agent"}, adapter=_BrokenAdapter()
        )
        result = gateway.submit_sync(_action())
        assert result.admitted is True
        assert result.persistence_error is not None
        assert result.persistence_error.pending == 1
        assert result.pending_persistence == 1
        assert gateway.audit.count() == 1
        assert gateway.get_status().pending_persistence == 1

    def test_submit_during_running_flush_reports_pending(self, clock: FakeClock) -> None:
        adapter = _BlockingAdapter()
        gateway = DecisionGateway(clock=clock, directory={"peer-1": "peer-agent"}, adapter=adapter)
        gateway.decide(_action())
        flusher = threading.Thread(target=lambda: asyncio.run(gateway.flush()))
        flusher.start()
        assert adapter.entered.wait(5)

        result = gateway.submit_sync(_action())
        assert result.persistence_error is None
        assert result.pending_persistence == 2

        adapter.release.set()
        flusher.join(5)
        assert len(adapter.stored) == 2
        assert gateway.get_status().pending_persistence == 0

    def test_history_survives_restart(self, tmp_path: Path, clock: FakeClock) -> None:
        path = tmp_path / "audit.ndjson"
        first = DecisionGateway(
            clock=clock, directory={"peer-1": "peer-agent"}, adapter=FileAdapter(path)
        )
        first.modify_trust_level("peer-1", 3, "paired before")
        first.request_mode_change(Mode.COLLABORATIVE, "peer-1", "pair")
        first.submit_sync(_action())

        second = DecisionGateway(
            clock=clock, directory={"peer-1": "peer-agent"}, adapter=FileAdapter(path)
        )
        restored = asyncio.run(second.load_history())
        assert restored == first.audit.count() == 2
        assert second.modes.current_mode is Mode.COLLABORATIVE
        assert second.audit.verify_chain() == (True, None)
        assert isinstance(second.audit.decisions()[0], Decision)

    def test_load_history_without_adapter(self, gateway: DecisionGateway) -> None:
        assert asyncio.run(gateway.load_history()) == 0


# ---------------------------------------------------------------------------
# TestGatewayState
# ---------------------------------------------------------------------------


class TestGatewayState:
    def test_instances_share_nothing(self, clock: FakeClock) -> None:
        one = DecisionGateway(clock=clock, directory={"peer-1": "peer-agent"})
        two = DecisionGateway(clock=clock, directory={"peer-1": "peer-agent"})
        one.submit_sync(_action())
        assert two.audit.count() == 0

    def test_custom_owner_is_bootstrapped(self, clock: FakeClock) -> None:
        config = GatewayConfig(trust=TrustConfig(privileged_principal_id="cody"))
        state = GatewayState.create(config=config, clock=clock)
        gateway = DecisionGateway(state=state)
        assert gateway.ledger.privileged_principal_id == "cody"
        assert gateway.request_mode_change(Mode.BONDED, "cody", "check-in").accepted
