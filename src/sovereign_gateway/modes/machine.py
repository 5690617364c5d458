# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from pydantic import BaseModel

from sovereign_gateway.audit.record import ModeTransition
from sovereign_gateway.config import ModeConfig
from sovereign_gateway.errors import (
    CooldownActiveError,
    InsufficientTrustError,
    InvalidModeError,
    LockoutActiveError,
    ModeTransitionError,
)
from sovereign_gateway.events import EventBus
from sovereign_gateway.modes.catalog import ModeCatalog, ModeProfile
from sovereign_gateway.types import (
    Clock,
    EventName,
    Mode,
    RejectionReason,
    Sensitivity,
    utc_now,
)

logger = logging.getLogger("sovereign.gateway.modes")

TransitionRecorder = Callable[[ModeTransition], object]

_ERRORS: dict[RejectionReason, type[ModeTransitionError]] = {
    RejectionReason.INVALID_MODE: InvalidModeError,
    RejectionReason.PRIVILEGED_REQUIRED: InsufficientTrustError,
    RejectionReason.INSUFFICIENT_TRUST: InsufficientTrustError,
    RejectionReason.COOLDOWN_ACTIVE: CooldownActiveError,
    RejectionReason.RECENT_CRITICAL_LOCKOUT: LockoutActiveError,
}


class TransitionResult(BaseModel, frozen=True):
    """
    Outcome of a transition request.

    Attributes:
        accepted: Whether the machine now occupies (or already occupied)
            the requested mode.
        rejection_reason: The first guard that failed, or None.
        transition: The :class:`ModeTransition` recorded for this attempt.
    """

    accepted: bool
    rejection_reason: RejectionReason | None = None
    transition: ModeTransition


class ModeStatus(BaseModel, frozen=True):
    """Read-only view of the state machine for dashboards."""

    current_mode: Mode
    sensitivity: Sensitivity
    safe_mode: Mode
    last_transition_at: datetime | None
    cooldown_remaining_seconds: float


class ModeStateMachine:
    """
    Holds the agent's single active operational mode.

    Guards run in a fixed order and short-circuit on the first failure:

    1. ``invalid-mode``: the target is not in the catalog.
    2. ``privileged-required``: the target is restricted and the requester
       is not the privileged principal.
    3. ``insufficient-trust``: the requester's rank is below the target's.
    4. ``cooldown-active``: the current mode's dwell time has not elapsed
       and the target differs from the current mode. Every accepted
       request, including one for the current mode, restarts the dwell time.
    5. ``recent-critical-lockout``: a recent critical detection exists and
       the target is not the safe mode.

    Every attempt is handed to the recorder, accepted or not.

    Example::

        machine = ModeStateMachine(privileged_principal_id="owner")
        result = machine.request_transition(Mode.COLLABORATIVE, "peer-1", "pairing", 3)
        if not result.accepted:
            print(result.rejection_reason)
    """

    def __init__(
        self,
        config: ModeConfig | None = None,
        catalog: ModeCatalog | None = None,
        privileged_principal_id: str = "operator-owner",
        clock: Clock | None = None,
        events: EventBus | None = None,
        recorder: TransitionRecorder | None = None,
    ) -> None:
        self._config = config or ModeConfig()
        self._catalog = catalog or ModeCatalog()
        self._privileged = privileged_principal_id
        self._clock = clock or utc_now
        self._events = events
        self._recorder = recorder
        self._safe = self._catalog.lowest_sensitivity()
        self._current: ModeProfile = self._safe
        self._last_transition_at: datetime | None = None

    @property
    def catalog(self) -> ModeCatalog:
        return self._catalog

    @property
    def current_mode(self) -> Mode:
        return self._current.mode

    @property
    def current_profile(self) -> ModeProfile:
        return self._current

    @property
    def safe_mode(self) -> Mode:
        return self._safe.mode

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request_transition(
        self,
        to_mode: Mode | str,
        principal_id: str,
        reason: str,
        trust_rank: int | None,
        recent_critical: bool = False,
    ) -> TransitionResult:
        """
        Attempt a transition to ``to_mode`` on behalf of ``principal_id``.

        Args:
            to_mode: Target mode. Unknown names are rejected, not raised.
            principal_id: The requesting principal.
            reason: Free-text reason stored on the transition record.
            trust_rank: The requester's rank, or None if it has no record.
            recent_critical: Whether the recent decision window holds a
                critical detection.

        Returns:
            A :class:`TransitionResult`. Never raises for a guard failure.
        """
        now = self._clock()
        target = self._catalog.get(to_mode)
        rejection = self._first_failed_guard(target, principal_id, trust_rank, recent_critical, now)

        from_mode = self._current.mode
        to_name = target.mode.value if target is not None else _mode_name(to_mode)
        transition = ModeTransition(
            timestamp=now,
            from_mode=from_mode.value,
            to_mode=to_name,
            principal_id=principal_id,
            reason=reason,
            accepted=rejection is None,
            rejection_reason=rejection,
        )

        if target is None or rejection is not None:
            rejection = rejection or RejectionReason.INVALID_MODE
            self._record(transition)
            logger.info(
                "mode_transition_rejected",
                extra={
                    "from_mode": from_mode.value,
                    "to_mode": to_name,
                    "principal_id": principal_id,
                    "rejection_reason": rejection.value,
                },
            )
            return TransitionResult(accepted=False, rejection_reason=rejection, transition=transition)

        # Every accepted request restarts the dwell timer, including one for
        # the mode already active.
        self._current = target
        self._last_transition_at = now
        self._record(transition)
        if target.mode is not from_mode:
            self._announce(transition)
        return TransitionResult(accepted=True, transition=transition)

    def require_transition(
        self,
        to_mode: Mode | str,
        principal_id: str,
        reason: str,
        trust_rank: int | None,
        recent_critical: bool = False,
    ) -> TransitionResult:
        """
        Like :meth:`request_transition` but raises on rejection.

        The rejected attempt is recorded before the exception is raised.

        Raises:
            InvalidModeError: Target not in the catalog.
            InsufficientTrustError: Privileged-only target or rank too low.
            CooldownActiveError: Dwell time has not elapsed.
            LockoutActiveError: A recent critical detection pins the safe mode.
        """
        result = self.request_transition(to_mode, principal_id, reason, trust_rank, recent_critical)
        if not result.accepted and result.rejection_reason is not None:
            raise _ERRORS[result.rejection_reason](result)
        return result

    def force_safe_mode(self, principal_id: str, reason: str) -> ModeTransition:
        """
        Move to the safe mode, bypassing every guard.

        Reserved for the emergency protocol. The forced transition is
        recorded and announced even when the safe mode is already active.
        """
        now = self._clock()
        from_mode = self._current.mode
        transition = ModeTransition(
            timestamp=now,
            from_mode=from_mode.value,
            to_mode=self._safe.mode.value,
            principal_id=principal_id,
            reason=reason,
            accepted=True,
            forced=True,
        )
        self._current = self._safe
        self._last_transition_at = now
        self._record(transition)
        logger.warning(
            "safe_mode_forced",
            extra={"from_mode": from_mode.value, "principal_id": principal_id, "reason": reason},
        )
        self._announce(transition)
        return transition

    def cooldown_remaining(self) -> float:
        """Seconds until a transition away from the current mode is allowed."""
        if self._last_transition_at is None:
            return 0.0
        elapsed = (self._clock() - self._last_transition_at).total_seconds()
        return max(self._cooldown_for(self._current) - elapsed, 0.0)

    def status(self) -> ModeStatus:
        return ModeStatus(
            current_mode=self._current.mode,
            sensitivity=self._current.sensitivity,
            safe_mode=self._safe.mode,
            last_transition_at=self._last_transition_at,
            cooldown_remaining_seconds=self.cooldown_remaining(),
        )

    def profiles(self) -> list[ModeProfile]:
        return self._catalog.all()

    def restore(self, mode: Mode | str, at: datetime | None) -> None:
        """
        Reinstate a mode recovered from persisted history.

        Raises:
            ValueError: If ``mode`` is not in the catalog.
        """
        profile = self._catalog.get(mode)
        if profile is None:
            raise ValueError(f"Cannot restore unknown mode {mode!r}.")
        self._current = profile
        self._last_transition_at = at

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _first_failed_guard(
        self,
        target: ModeProfile | None,
        principal_id: str,
        trust_rank: int | None,
        recent_critical: bool,
        now: datetime,
    ) -> RejectionReason | None:
        if target is None:
            return RejectionReason.INVALID_MODE
        if target.restricted_to_privileged and principal_id != self._privileged:
            return RejectionReason.PRIVILEGED_REQUIRED
        if trust_rank is None or trust_rank < int(target.required_trust_rank):
            return RejectionReason.INSUFFICIENT_TRUST
        if target.mode is not self._current.mode and self._last_transition_at is not None:
            elapsed = (now - self._last_transition_at).total_seconds()
            if elapsed < self._cooldown_for(self._current):
                return RejectionReason.COOLDOWN_ACTIVE
        if recent_critical and target.mode is not self._safe.mode:
            return RejectionReason.RECENT_CRITICAL_LOCKOUT
        return None

    def _cooldown_for(self, profile: ModeProfile) -> float:
        if profile.cooldown_seconds is not None:
            return profile.cooldown_seconds
        return self._config.cooldown_seconds

    def _record(self, transition: ModeTransition) -> None:
        if self._recorder is not None:
            self._recorder(transition)

    def _announce(self, transition: ModeTransition) -> None:
        logger.info(
            "mode_changed",
            extra={
                "from_mode": transition.from_mode,
                "to_mode": transition.to_mode,
                "principal_id": transition.principal_id,
                "forced": transition.forced,
            },
        )
        if self._events is not None:
            self._events.emit(
                EventName.MODE_CHANGED,
                {
                    "transition_id": transition.transition_id,
                    "from_mode": transition.from_mode,
                    "to_mode": transition.to_mode,
                    "principal_id": transition.principal_id,
                    "reason": transition.reason,
                    "forced": transition.forced,
                },
            )


def _mode_name(mode: Mode | str) -> str:
    return mode.value if isinstance(mode, Mode) else str(mode)
