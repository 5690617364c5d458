# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sovereign_gateway.audit.record import Decision
    from sovereign_gateway.modes.machine import TransitionResult


class SovereignGatewayError(Exception):
    """Base class for all sovereign-gateway errors."""

    def __init__(self, message: str, code: str = "GATEWAY_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class UnknownPrincipalError(SovereignGatewayError):
    """
    Raised when a mutating ledger operation names a principal with no record.

    Read-only lookups never raise this; they fail closed instead.
    """

    def __init__(self, principal_id: str) -> None:
        super().__init__(
            f"Principal '{principal_id}' has no trust record. "
            "Establish trust first with TrustLedger.establish_trust().",
            code="UNKNOWN_PRINCIPAL",
        )
        self.principal_id = principal_id


class TrustModificationError(SovereignGatewayError):
    """Raised when a trust modification is malformed or unjustified."""

    def __init__(self, principal_id: str, reason: str) -> None:
        super().__init__(
            f"Trust modification for '{principal_id}' rejected: {reason}",
            code="TRUST_MODIFICATION_REJECTED",
        )
        self.principal_id = principal_id


class PrivilegedPrincipalRequiredError(SovereignGatewayError):
    """Raised when an operation reserved for the privileged principal is attempted by another."""

    def __init__(self, principal_id: str, operation: str) -> None:
        super().__init__(
            f"Principal '{principal_id}' may not {operation}; "
            "only the privileged principal can.",
            code="PRIVILEGED_REQUIRED",
        )
        self.principal_id = principal_id
        self.operation = operation


class ModeTransitionError(SovereignGatewayError):
    """
    Base class for a rejected mode transition.

    Attributes:
        result: The :class:`~sovereign_gateway.modes.machine.TransitionResult`
            that was recorded for the rejected attempt.
    """

    def __init__(self, result: TransitionResult, code: str) -> None:
        transition = result.transition
        reason = result.rejection_reason.value if result.rejection_reason else "unknown"
        super().__init__(
            f"Transition {transition.from_mode} -> {transition.to_mode} "
            f"rejected: {reason}.",
            code=code,
        )
        self.result = result


class InvalidModeError(ModeTransitionError):
    """Raised when a transition names a mode outside the catalog."""

    def __init__(self, result: TransitionResult) -> None:
        super().__init__(result, code="INVALID_MODE")


class CooldownActiveError(ModeTransitionError):
    """Raised when a transition arrives before the current mode's dwell time."""

    def __init__(self, result: TransitionResult) -> None:
        super().__init__(result, code="COOLDOWN_ACTIVE")


class InsufficientTrustError(ModeTransitionError):
    """
    Raised when the requesting principal cannot enter the target mode.

    Covers both the privileged-principal guard and the trust-rank guard.
    """

    def __init__(self, result: TransitionResult) -> None:
        super().__init__(result, code="INSUFFICIENT_TRUST")


class LockoutActiveError(ModeTransitionError):
    """Raised when a recent critical detection pins the agent to the safe mode."""

    def __init__(self, result: TransitionResult) -> None:
        super().__init__(result, code="RECENT_CRITICAL_LOCKOUT")


class ActionBlockedError(SovereignGatewayError):
    """
    Raised at the host boundary when the gateway refuses an action.

    The decision has already been recorded when this is raised.

    Attributes:
        decision: The recorded :class:`~sovereign_gateway.audit.record.Decision`.
    """

    def __init__(self, decision: Decision, code: str = "ACTION_BLOCKED") -> None:
        super().__init__(
            f"Action '{decision.action_class}' for principal "
            f"'{decision.principal_id}' was not admitted "
            f"(status: {decision.status.value}).",
            code=code,
        )
        self.decision = decision


class CriticalPatternDetectedError(ActionBlockedError):
    """Raised at the host boundary when a critical detection triggered the lockout."""

    def __init__(self, decision: Decision) -> None:
        super().__init__(decision, code="CRITICAL_PATTERN_DETECTED")


class DecisionNotFoundError(SovereignGatewayError):
    """Raised when a correction links to a decision id that was never recorded."""

    def __init__(self, decision_id: str) -> None:
        super().__init__(
            f"No decision with id '{decision_id}' exists in the audit log.",
            code="DECISION_NOT_FOUND",
        )
        self.decision_id = decision_id


class PersistenceDegradedError(SovereignGatewayError):
    """
    Reported when a durable write exhausts its retries.

    The in-memory decision is unaffected; the entry stays queued.
    """

    def __init__(self, pending: int, cause: BaseException | None = None) -> None:
        cause_text = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Persistence degraded; {pending} audit entries awaiting retry{cause_text}.",
            code="PERSISTENCE_DEGRADED",
        )
        self.pending = pending
        self.cause = cause


class ConfigurationError(SovereignGatewayError):
    """Raised when the gateway is misconfigured or misused."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")
