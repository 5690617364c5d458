# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from pydantic import BaseModel, Field

from sovereign_gateway.audit.record import Decision
from sovereign_gateway.types import ConsentStatus, DecisionStatus

_BYPASS_WEIGHT = 30.0
_DETECTION_WEIGHT = 20.0
_PROBLEM_WEIGHT = 25.0


class AuditHealthSnapshot(BaseModel, frozen=True):
    """
    Immutable aggregate over the decisions in one time window.

    A new snapshot is produced for every computation; snapshots are never
    updated in place.

    Attributes:
        window_start: Inclusive start of the window, or None for "since the
            first decision".
        window_end: Inclusive end of the window.
        total_decisions: Decisions inside the window.
        by_status: Count per :class:`~sovereign_gateway.types.DecisionStatus` value.
        by_type: Count per :class:`~sovereign_gateway.types.DecisionType` value.
        consent_bypass_count: Decisions whose consent status was ``bypassed``.
        detections_by_signature: Detection count per signature id.
        health_score: 0-100; 100 for an empty window.
        computed_at: When the snapshot was computed.
    """

    window_start: datetime | None
    window_end: datetime
    total_decisions: int
    by_status: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    consent_bypass_count: int = 0
    detections_by_signature: dict[str, int] = Field(default_factory=dict)
    health_score: int = 100
    computed_at: datetime


def health_score(decisions: Sequence[Decision]) -> int:
    """
    Compute the 0-100 health score for ``decisions``.

    Starts at 100 and deducts ``30 * bypassed / total``,
    ``20 * sum(detection scores) / total`` and
    ``25 * (flagged + blocked) / total``; floored at 0 and rounded.
    """
    total = len(decisions)
    if total == 0:
        return 100

    bypassed = sum(1 for d in decisions if d.consent_status is ConsentStatus.BYPASSED)
    detection_score = sum(det.score for d in decisions for det in d.detections)
    problematic = sum(
        1 for d in decisions if d.status in (DecisionStatus.FLAGGED, DecisionStatus.BLOCKED)
    )

    score = 100.0
    score -= _BYPASS_WEIGHT * bypassed / total
    score -= _DETECTION_WEIGHT * detection_score / total
    score -= _PROBLEM_WEIGHT * problematic / total
    return int(round(max(score, 0.0)))


def compute_health(
    decisions: Sequence[Decision],
    window_start: datetime | None,
    window_end: datetime,
    computed_at: datetime,
) -> AuditHealthSnapshot:
    """
    Build an :class:`AuditHealthSnapshot` over the decisions in a window.

    Only decisions with ``window_start <= timestamp <= window_end`` count.
    """
    in_window = [
        d
        for d in decisions
        if (window_start is None or d.timestamp >= window_start) and d.timestamp <= window_end
    ]

    by_status: dict[str, int] = {}
    by_type: dict[str, int] = {}
    by_signature: dict[str, int] = {}
    for decision in in_window:
        by_status[decision.status.value] = by_status.get(decision.status.value, 0) + 1
        by_type[decision.decision_type.value] = by_type.get(decision.decision_type.value, 0) + 1
        for detection in decision.detections:
            by_signature[detection.signature_id] = by_signature.get(detection.signature_id, 0) + 1

    return AuditHealthSnapshot(
        window_start=window_start,
        window_end=window_end,
        total_decisions=len(in_window),
        by_status=by_status,
        by_type=by_type,
        consent_bypass_count=sum(
            1 for d in in_window if d.consent_status is ConsentStatus.BYPASSED
        ),
        detections_by_signature=by_signature,
        health_score=health_score(in_window),
        computed_at=computed_at,
    )
