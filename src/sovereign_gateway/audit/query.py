# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from pydantic import BaseModel

from sovereign_gateway.audit.record import Decision
from sovereign_gateway.types import DecisionStatus, DecisionType, Severity


class DecisionFilter(BaseModel, frozen=True):
    """
    Filter criteria for querying recorded decisions.

    All fields are optional. Multiple criteria are combined with AND logic:
    a decision must satisfy every provided criterion to be included.

    Attributes:
        principal_id: Only include decisions by this principal.
        status: Only include decisions with this status.
        decision_type: Only include decisions of this type.
        action_class: Only include decisions for this action class.
        signature_id: Only include decisions on which this signature fired.
        min_severity: Only include decisions with a detection at or above
            this severity.
        since: Only include decisions at or after this UTC timestamp.
        until: Only include decisions before this UTC timestamp.
        limit: Maximum number of decisions to return. 0 means no limit.
        offset: Number of decisions to skip before collecting results.
    """

    principal_id: str | None = None
    status: DecisionStatus | None = None
    decision_type: DecisionType | None = None
    action_class: str | None = None
    signature_id: str | None = None
    min_severity: Severity | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int = 0
    offset: int = 0


class DecisionQueryResult(BaseModel, frozen=True):
    """
    Result of a decision query.

    Attributes:
        decisions: The matching decisions, ordered oldest-first.
        total_matched: Matches before ``limit`` and ``offset`` were applied.
        filter_applied: The :class:`DecisionFilter` used.
    """

    decisions: list[Decision]
    total_matched: int
    filter_applied: DecisionFilter


def apply_filter(decisions: Sequence[Decision], decision_filter: DecisionFilter) -> DecisionQueryResult:
    """Apply ``decision_filter`` in memory and paginate the matches."""
    matched = [d for d in decisions if _decision_matches(d, decision_filter)]
    total_matched = len(matched)

    paginated = matched[decision_filter.offset :]
    if decision_filter.limit > 0:
        paginated = paginated[: decision_filter.limit]

    return DecisionQueryResult(
        decisions=paginated,
        total_matched=total_matched,
        filter_applied=decision_filter,
    )


def _decision_matches(decision: Decision, f: DecisionFilter) -> bool:
    if f.principal_id is not None and decision.principal_id != f.principal_id:
        return False

    if f.status is not None and decision.status is not f.status:
        return False

    if f.decision_type is not None and decision.decision_type is not f.decision_type:
        return False

    if f.action_class is not None and decision.action_class != f.action_class:
        return False

    if f.signature_id is not None:
        if not any(d.signature_id == f.signature_id for d in decision.detections):
            return False

    if f.min_severity is not None:
        worst = decision.max_severity
        if worst is None or worst < f.min_severity:
            return False

    if f.since is not None and decision.timestamp < f.since:
        return False

    if f.until is not None and decision.timestamp >= f.until:
        return False

    return True
