# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from sovereign_gateway.detection.detector import Detection
from sovereign_gateway.types import (
    ConsentStatus,
    DecisionStatus,
    DecisionType,
    Mode,
    RejectionReason,
    Severity,
)


def new_record_id() -> str:
    """Return a fresh UUID4 string for an audit record."""
    return str(uuid.uuid4())


class Decision(BaseModel, frozen=True):
    """
    The audited outcome of one admission request.

    ``status`` is always derived by the audit log when the decision is
    recorded; any value supplied by the caller is replaced.

    Attributes:
        decision_id: Unique UUID for this decision.
        timestamp: UTC time the decision was made.
        principal_id: The requesting principal.
        action_class: The action class the principal asked for.
        description: Free-text description of the proposed action.
        decision_type: Categorical tag for the kind of decision.
        consent_status: Consent state at the time of the request.
        trust_required: Lowest rank that permits ``action_class``.
        trust_present: The principal's rank, or None when it has no record.
        detections: Mode-scaled pattern detections.
        guard_rejection: Mode guard that rejected an implied mode change.
        justifications: Ethical or contextual justifications supplied.
        mode: Mode active when the decision was made.
        status: Derived resulting status.
        notes: Free-text outcome notes.
        supersedes: Id of an earlier decision this one corrects.
        metadata: Extra JSON-friendly context from the host.
    """

    kind: Literal["decision"] = "decision"
    decision_id: str = Field(default_factory=new_record_id)
    timestamp: datetime
    principal_id: str
    action_class: str
    description: str = ""
    decision_type: DecisionType = DecisionType.ANALYTICAL
    consent_status: ConsentStatus = ConsentStatus.NOT_REQUIRED
    trust_required: int = 0
    trust_present: int | None = None
    detections: tuple[Detection, ...] = ()
    guard_rejection: RejectionReason | None = None
    justifications: tuple[str, ...] = ()
    mode: Mode = Mode.TACTICAL
    status: DecisionStatus = DecisionStatus.BLOCKED
    notes: str = ""
    supersedes: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return self.decision_id

    @property
    def admitted(self) -> bool:
        return self.status.admitted

    @property
    def max_severity(self) -> Severity | None:
        if not self.detections:
            return None
        return max(d.severity for d in self.detections)

    @property
    def has_critical(self) -> bool:
        return any(d.severity is Severity.CRITICAL for d in self.detections)


class ModeTransition(BaseModel, frozen=True):
    """
    An attempted mode transition, accepted or not.

    ``to_mode`` is a plain string so that requests naming a mode outside
    the catalog are recorded verbatim.
    """

    kind: Literal["mode-transition"] = "mode-transition"
    transition_id: str = Field(default_factory=new_record_id)
    timestamp: datetime
    from_mode: str
    to_mode: str
    principal_id: str
    reason: str = ""
    accepted: bool
    rejection_reason: RejectionReason | None = None
    forced: bool = False

    @property
    def record_id(self) -> str:
        return self.transition_id


class LockoutRecord(BaseModel, frozen=True):
    """
    A critical lockout raised by the emergency protocol, or its clearance.

    Attributes:
        kind: ``"critical-lockout"`` or ``"lockout-cleared"``.
        lockout_id: Unique UUID for this record.
        timestamp: UTC time of the event.
        principal_id: Principal whose submission triggered the lockout, or
            who cleared it.
        reason: Free-text explanation.
        decision_id: The blocked decision that triggered the lockout.
        signature_ids: Signatures that reached critical severity.
        case_references: Case references of those signatures.
        mode_before: Mode active before the forced transition.
        mode_after: Mode active once the record was written.
    """

    kind: Literal["critical-lockout", "lockout-cleared"]
    lockout_id: str = Field(default_factory=new_record_id)
    timestamp: datetime
    principal_id: str
    reason: str = ""
    decision_id: str | None = None
    signature_ids: tuple[str, ...] = ()
    case_references: tuple[str, ...] = ()
    mode_before: str | None = None
    mode_after: str

    @property
    def record_id(self) -> str:
        return self.lockout_id


AuditRecord = Annotated[
    Union[Decision, ModeTransition, LockoutRecord],
    Field(discriminator="kind"),
]


class AuditEntry(BaseModel, frozen=True):
    """
    One link in the append-only, hash-chained audit log.

    Attributes:
        sequence: Zero-based position in the log.
        record: The recorded decision, transition, or lockout.
        previous_hash: ``entry_hash`` of the preceding entry, or the genesis
            hash for the first entry.
        entry_hash: SHA-256 over this entry's canonical JSON.
    """

    sequence: int
    record: AuditRecord
    previous_hash: str
    entry_hash: str

    @property
    def kind(self) -> str:
        return self.record.kind

    @property
    def timestamp(self) -> datetime:
        return self.record.timestamp

    @property
    def record_id(self) -> str:
        return self.record.record_id
