# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Callable

#: Wall-clock collaborator. Injected so time-dependent behaviour is testable.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time. The default :data:`Clock`."""
    return datetime.now(tz=timezone.utc)


class TrustRank(IntEnum):
    """
    Ordered trust ranks for principals.

    Higher value means a broader set of permitted action classes.
    Ranks only change through an explicit, logged modification.
    """

    UNKNOWN = 0
    RECOGNIZED = 1
    TRUSTED = 2
    COLLABORATIVE = 3
    INTIMATE = 4
    MAXIMUM_BOND = 5

    def label(self) -> str:
        """Return a human-readable label for this rank."""
        _labels: dict[int, str] = {
            0: "Unknown",
            1: "Recognized",
            2: "Trusted",
            3: "Collaborative",
            4: "Intimate",
            5: "Maximum Bond",
        }
        return _labels[int(self)]


class PrincipalKind(str, Enum):
    """Kinds of actor whose actions pass through the gateway."""

    OWNER = "operator-owner"
    OPERATOR = "operator"
    PEER_AGENT = "peer-agent"
    SYSTEM = "system"


class ConsentStatus(str, Enum):
    """Consent state attached to a decision."""

    OBTAINED = "obtained"
    NOT_REQUIRED = "not-required"
    BYPASSED = "bypassed"
    PENDING = "pending"


class DecisionStatus(str, Enum):
    """Resulting audit status of a decision."""

    APPROVED = "approved"
    FLAGGED = "flagged"
    BLOCKED = "blocked"
    REVIEW_REQUIRED = "review-required"

    @property
    def admitted(self) -> bool:
        """True when an action with this status may proceed."""
        return self in (DecisionStatus.APPROVED, DecisionStatus.FLAGGED)


class DecisionType(str, Enum):
    """Categorical tag describing what kind of decision an action is."""

    PROTECTIVE = "protective"
    CREATIVE = "creative"
    ANALYTICAL = "analytical"
    SOCIAL = "social"
    ETHICAL = "ethical"
    EMERGENCY = "emergency"


class Severity(IntEnum):
    """Severity bands for pattern detections, ordered low to critical."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    def promote(self, steps: int) -> Severity:
        """Return the band ``steps`` above this one, capped at CRITICAL."""
        if steps < 0:
            raise ValueError(f"steps must be >= 0; got {steps}.")
        return Severity(min(int(self) + steps, int(Severity.CRITICAL)))


class Sensitivity(str, Enum):
    """Pattern-detector sensitivity carried by each mode."""

    STANDARD = "standard"
    HEIGHTENED = "heightened"
    MAXIMUM = "maximum"

    def promotion_steps(self) -> int:
        """Number of severity bands a detection is promoted under this sensitivity."""
        return {"standard": 0, "heightened": 1, "maximum": 2}[self.value]


class Mode(str, Enum):
    """Operational modes. Exactly one is active at a time."""

    TACTICAL = "tactical"
    COLLABORATIVE = "collaborative"
    BONDED = "bonded"
    REFLECTIVE = "reflective"


class RejectionReason(str, Enum):
    """Reasons a mode transition can be rejected, in guard order."""

    INVALID_MODE = "invalid-mode"
    PRIVILEGED_REQUIRED = "privileged-required"
    INSUFFICIENT_TRUST = "insufficient-trust"
    COOLDOWN_ACTIVE = "cooldown-active"
    RECENT_CRITICAL_LOCKOUT = "recent-critical-lockout"


class EventName(str, Enum):
    """Names of events published on the gateway event bus."""

    MODE_CHANGED = "mode-changed"
    DECISION_RECORDED = "decision-recorded"
    CRITICAL_LOCKOUT = "critical-lockout"
    LOCKOUT_CLEARED = "lockout-cleared"
    REVIEW_COMPLETED = "review-completed"
    TRUST_MODIFIED = "trust-modified"
