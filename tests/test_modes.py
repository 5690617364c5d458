# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for the mode catalog and the mode state machine."""

from __future__ import annotations

import pytest

from sovereign_gateway.audit.record import ModeTransition
from sovereign_gateway.config import ModeConfig
from sovereign_gateway.errors import (
    CooldownActiveError,
    InsufficientTrustError,
    InvalidModeError,
    LockoutActiveError,
)
from sovereign_gateway.events import EventBus, GatewayEvent
from sovereign_gateway.modes.catalog import DEFAULT_MODE_PROFILES, ModeCatalog, ModeProfile
from sovereign_gateway.modes.machine import ModeStateMachine
from sovereign_gateway.types import EventName, Mode, RejectionReason, Sensitivity

from conftest import FakeClock

OWNER = "operator-owner"


class _Harness:
    def __init__(self, clock: FakeClock, catalog: ModeCatalog | None = None) -> None:
        self.recorded: list[ModeTransition] = []
        self.events: list[GatewayEvent] = []
        bus = EventBus(clock)
        bus.subscribe(self.events.append, names=[EventName.MODE_CHANGED])
        self.machine = ModeStateMachine(
            config=ModeConfig(cooldown_seconds=5.0),
            catalog=catalog,
            privileged_principal_id=OWNER,
            clock=clock,
            events=bus,
            recorder=self.recorded.append,
        )


# ---------------------------------------------------------------------------
# TestModeCatalog
# ---------------------------------------------------------------------------


class TestModeCatalog:
    def test_safe_mode_is_lowest_sensitivity(self) -> None:
        assert ModeCatalog().lowest_sensitivity().mode is Mode.TACTICAL

    def test_unknown_mode_lookup_returns_none(self) -> None:
        catalog = ModeCatalog()
        assert catalog.get("chaos") is None
        assert "chaos" not in catalog
        assert Mode.BONDED in catalog

    def test_duplicate_profiles_are_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            ModeCatalog(DEFAULT_MODE_PROFILES + (DEFAULT_MODE_PROFILES[0],))

    def test_empty_catalog_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            ModeCatalog(())


# ---------------------------------------------------------------------------
# TestModeGuards
# ---------------------------------------------------------------------------


class TestModeGuards:
    def test_starts_in_safe_mode(self, clock: FakeClock) -> None:
        machine = _Harness(clock).machine
        assert machine.current_mode is Mode.TACTICAL
        assert machine.current_profile.sensitivity is Sensitivity.STANDARD

    def test_invalid_mode_is_rejected_and_recorded(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        result = harness.machine.request_transition("chaos", "peer-1", "why not", 5)
        assert result.accepted is False
        assert result.rejection_reason is RejectionReason.INVALID_MODE
        assert harness.recorded[-1].to_mode == "chaos"
        assert harness.recorded[-1].accepted is False

    def test_restricted_mode_needs_privileged_principal(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        result = harness.machine.request_transition(Mode.BONDED, "peer-1", "closer", 5)
        assert result.rejection_reason is RejectionReason.PRIVILEGED_REQUIRED

    def test_privileged_check_runs_before_trust_check(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        result = harness.machine.request_transition(Mode.REFLECTIVE, "peer-1", "reflect", 0)
        assert result.rejection_reason is RejectionReason.PRIVILEGED_REQUIRED

    @pytest.mark.parametrize("rank", [None, 0, 2])
    def test_insufficient_trust_is_rejected(self, clock: FakeClock, rank: int | None) -> None:
        harness = _Harness(clock)
        result = harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", rank)
        assert result.rejection_reason is RejectionReason.INSUFFICIENT_TRUST
        assert harness.machine.current_mode is Mode.TACTICAL

    def test_owner_may_enter_bonded_mode(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        result = harness.machine.request_transition(Mode.BONDED, OWNER, "check-in", 5)
        assert result.accepted is True
        assert harness.machine.current_mode is Mode.BONDED

    def test_recent_critical_pins_safe_mode(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        result = harness.machine.request_transition(
            Mode.COLLABORATIVE, "peer-1", "pair", 3, recent_critical=True
        )
        assert result.rejection_reason is RejectionReason.RECENT_CRITICAL_LOCKOUT

    def test_safe_mode_allowed_during_lockout(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        clock.advance(seconds=6)
        result = harness.machine.request_transition(
            Mode.TACTICAL, "peer-1", "stand down", 3, recent_critical=True
        )
        assert result.accepted is True
        assert harness.machine.current_mode is Mode.TACTICAL


# ---------------------------------------------------------------------------
# TestModeCooldown
# ---------------------------------------------------------------------------


class TestModeCooldown:
    def test_second_transition_within_cooldown_is_rejected(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        first = harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        clock.advance(seconds=2)
        second = harness.machine.request_transition(Mode.TACTICAL, "peer-1", "back", 3)
        assert first.accepted is True
        assert second.accepted is False
        assert second.rejection_reason is RejectionReason.COOLDOWN_ACTIVE
        assert harness.machine.current_mode is Mode.COLLABORATIVE

    def test_transition_allowed_once_cooldown_elapses(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        clock.advance(seconds=5)
        assert harness.machine.request_transition(Mode.TACTICAL, "peer-1", "back", 3).accepted

    def test_same_mode_request_restarts_cooldown(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        clock.advance(seconds=1)
        result = harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "still", 3)
        assert result.accepted is True
        assert len(harness.events) == 1
        assert harness.machine.cooldown_remaining() == pytest.approx(5.0)

    def test_transition_after_accepted_same_mode_request_is_rejected(
        self, clock: FakeClock
    ) -> None:
        harness = _Harness(clock)
        same = harness.machine.request_transition(Mode.TACTICAL, "peer-1", "stay", 3)
        clock.advance(seconds=1)
        result = harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        assert same.accepted is True
        assert result.accepted is False
        assert result.rejection_reason is RejectionReason.COOLDOWN_ACTIVE
        assert harness.machine.current_mode is Mode.TACTICAL
        assert harness.events == []

    def test_profile_cooldown_overrides_global(self, clock: FakeClock) -> None:
        profiles = tuple(
            p.model_copy(update={"cooldown_seconds": 1.0}) if p.mode is Mode.COLLABORATIVE else p
            for p in DEFAULT_MODE_PROFILES
        )
        harness = _Harness(clock, ModeCatalog(profiles))
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        clock.advance(seconds=1)
        assert harness.machine.request_transition(Mode.TACTICAL, "peer-1", "back", 3).accepted

    def test_forced_safe_mode_bypasses_cooldown(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        transition = harness.machine.force_safe_mode("peer-1", "critical detection")
        assert transition.forced is True
        assert transition.from_mode == "collaborative"
        assert harness.machine.current_mode is Mode.TACTICAL
        assert harness.recorded[-1] == transition


# ---------------------------------------------------------------------------
# TestModeAuditability
# ---------------------------------------------------------------------------


class TestModeAuditability:
    def test_every_attempt_is_recorded(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition("chaos", "peer-1", "x", 0)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "x", 0)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "x", 3)
        assert [t.accepted for t in harness.recorded] == [False, False, True]

    def test_mode_changed_event_is_emitted(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        assert len(harness.events) == 1
        payload = harness.events[0].payload
        assert payload["from_mode"] == "tactical"
        assert payload["to_mode"] == "collaborative"
        assert payload["forced"] is False

    def test_rejection_emits_no_event(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.BONDED, "peer-1", "closer", 5)
        assert harness.events == []

    def test_status_reports_cooldown(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        harness.machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pair", 3)
        clock.advance(seconds=3)
        status = harness.machine.status()
        assert status.current_mode is Mode.COLLABORATIVE
        assert status.safe_mode is Mode.TACTICAL
        assert status.cooldown_remaining_seconds == pytest.approx(2.0)

    def test_restore_reinstates_mode(self, clock: FakeClock) -> None:
        machine = _Harness(clock).machine
        machine.restore("collaborative", clock())
        assert machine.current_mode is Mode.COLLABORATIVE
        with pytest.raises(ValueError):
            machine.restore("chaos", None)


# ---------------------------------------------------------------------------
# TestRequireTransition
# ---------------------------------------------------------------------------


class TestRequireTransition:
    def test_invalid_mode_raises(self, clock: FakeClock) -> None:
        harness = _Harness(clock)
        with pytest.raises(InvalidModeError) as excinfo:
            harness.machine.require_transition("chaos", "peer-1", "x", 5)
        assert excinfo.value.code == "INVALID_MODE"
        assert harness.recorded[-1].accepted is False

    def test_insufficient_trust_raises(self, clock: FakeClock) -> None:
        with pytest.raises(InsufficientTrustError):
            _Harness(clock).machine.require_transition(Mode.BONDED, "peer-1", "x", 5)

    def test_cooldown_raises(self, clock: FakeClock) -> None:
        machine = _Harness(clock).machine
        machine.require_transition(Mode.COLLABORATIVE, "peer-1", "x", 3)
        with pytest.raises(CooldownActiveError, match="cooldown-active"):
            machine.require_transition(Mode.TACTICAL, "peer-1", "x", 3)

    def test_lockout_raises(self, clock: FakeClock) -> None:
        with pytest.raises(LockoutActiveError):
            _Harness(clock).machine.require_transition(
                Mode.COLLABORATIVE, "peer-1", "x", 3, recent_critical=True
            )

    def test_accepted_transition_returns_result(self, clock: FakeClock) -> None:
        result = _Harness(clock).machine.require_transition(Mode.COLLABORATIVE, "peer-1", "x", 3)
        assert result.accepted is True
        assert isinstance(result.transition, ModeTransition)


def test_profile_defaults() -> None:
    profile = ModeProfile(mode=Mode.TACTICAL)
    assert profile.cooldown_seconds is None
    assert profile.restricted_to_privileged is False
