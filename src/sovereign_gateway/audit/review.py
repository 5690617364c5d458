# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Sequence

from pydantic import BaseModel, Field

from sovereign_gateway.audit.health import AuditHealthSnapshot, compute_health
from sovereign_gateway.audit.record import Decision
from sovereign_gateway.config import AuditConfig
from sovereign_gateway.types import ConsentStatus, DecisionStatus, DecisionType


class ReviewReport(BaseModel, frozen=True):
    """
    Result of a periodic review over a trailing window of decisions.

    Attributes:
        review_id: Unique UUID for this report.
        generated_at: When the review ran.
        period_start: Inclusive start of the reviewed window.
        period_end: Inclusive end of the reviewed window.
        decisions_reviewed: Decisions inside the window.
        patterns: Decision types whose share exceeds the pattern threshold.
        concerns: One entry per flagged decision.
        flagged_decision_ids: Ids of the flagged decisions.
        case_comparisons: Consent-bypass and protective-override summaries.
        recommendations: Remediation advice.
        health: Health snapshot for the same window.
    """

    review_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generated_at: datetime
    period_start: datetime
    period_end: datetime
    decisions_reviewed: int
    patterns: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    flagged_decision_ids: list[str] = Field(default_factory=list)
    case_comparisons: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    health: AuditHealthSnapshot

    @property
    def overall_health(self) -> int:
        return self.health.health_score


def build_review(
    decisions: Sequence[Decision],
    period_days: int,
    now: datetime,
    config: AuditConfig | None = None,
) -> ReviewReport:
    """
    Review the decisions made in the ``period_days`` before ``now``.

    An empty window is not an error: it yields a zero-decision report with
    health 100 and no recommendations.

    Raises:
        ValueError: If ``period_days`` is not positive.
    """
    if period_days <= 0:
        raise ValueError(f"period_days must be > 0; got {period_days}.")
    cfg = config or AuditConfig()
    start = now - timedelta(days=period_days)
    window = [d for d in decisions if start <= d.timestamp <= now]
    health = compute_health(window, start, now, now)

    flagged = [d for d in window if d.status is DecisionStatus.FLAGGED]
    concerns = [
        f"flagged {d.decision_type.value} decision {d.decision_id} by {d.principal_id}: "
        f"{d.action_class}" + (f" ({d.notes})" if d.notes else "")
        for d in flagged
    ]

    return ReviewReport(
        generated_at=now,
        period_start=start,
        period_end=now,
        decisions_reviewed=len(window),
        patterns=_patterns(window, cfg.pattern_share_threshold),
        concerns=concerns,
        flagged_decision_ids=[d.decision_id for d in flagged],
        case_comparisons=_case_comparisons(window),
        recommendations=_recommendations(health.health_score, concerns, cfg),
        health=health,
    )


def _patterns(decisions: Sequence[Decision], threshold: float) -> list[str]:
    total = len(decisions)
    if total == 0:
        return []
    counts: dict[DecisionType, int] = {}
    for decision in decisions:
        counts[decision.decision_type] = counts.get(decision.decision_type, 0) + 1
    return [
        f"high frequency of {decision_type.value} decisions ({count}/{total})"
        for decision_type, count in counts.items()
        if count / total > threshold
    ]


def _case_comparisons(decisions: Sequence[Decision]) -> list[str]:
    if not decisions:
        return []
    bypasses = sum(1 for d in decisions if d.consent_status is ConsentStatus.BYPASSED)
    protective_overrides = sum(
        1
        for d in decisions
        if d.decision_type is DecisionType.PROTECTIVE
        and d.consent_status is not ConsentStatus.OBTAINED
    )
    comparisons: list[str] = []
    if bypasses:
        comparisons.append(
            f"{bypasses} consent bypass incidents; matches the protective-override case pattern"
        )
    if protective_overrides:
        comparisons.append(
            f"{protective_overrides} protective decisions without obtained consent; "
            "monitor for protective drift"
        )
    if not comparisons:
        comparisons.append("no consent-bypass or protective-override incidents detected")
    return comparisons


def _recommendations(health: int, concerns: Sequence[str], cfg: AuditConfig) -> list[str]:
    recommendations: list[str] = []
    if health < cfg.recommendation_health_threshold:
        recommendations.append(
            f"health {health} is below {cfg.recommendation_health_threshold}; "
            "strengthen consent protocols and justification documentation"
        )
    if concerns:
        recommendations.append(
            f"review the {len(concerns)} flagged decisions with the operator"
        )
    return recommendations
