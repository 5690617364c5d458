# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
The single place a decision's status is computed.

Status is a pure function of the consent status, the trust comparison, the
detections, any mode-guard rejection, and whether a justification was given
for a non-analytical action. Nothing else may set it.
"""
from __future__ import annotations

from typing import Sequence

from sovereign_gateway.audit.record import Decision
from sovereign_gateway.detection.detector import Detection
from sovereign_gateway.types import (
    ConsentStatus,
    DecisionStatus,
    DecisionType,
    RejectionReason,
    Severity,
)

_BLOCKING_CONSENT = frozenset({ConsentStatus.BYPASSED, ConsentStatus.PENDING})


def derive_status(
    *,
    consent_status: ConsentStatus,
    trust_required: int,
    trust_present: int | None,
    detections: Sequence[Detection] = (),
    guard_rejection: RejectionReason | None = None,
    has_justification: bool = True,
    decision_type: DecisionType = DecisionType.ANALYTICAL,
    review_risk_factor_limit: int = 2,
) -> DecisionStatus:
    """
    Derive a :class:`~sovereign_gateway.types.DecisionStatus`.

    Precedence, first match wins:

    1. Unknown principal or insufficient trust: blocked.
    2. Consent bypassed or pending: blocked.
    3. Any critical detection: blocked.
    4. A mode-guard rejection: blocked.
    5. More signatures fired than ``review_risk_factor_limit``: review-required.
    6. Any detection, or no justification for a non-analytical type: flagged.
    7. Otherwise: approved.
    """
    if trust_present is None or trust_required > trust_present:
        return DecisionStatus.BLOCKED
    if ConsentStatus(consent_status) in _BLOCKING_CONSENT:
        return DecisionStatus.BLOCKED
    if any(d.severity is Severity.CRITICAL for d in detections):
        return DecisionStatus.BLOCKED
    if guard_rejection is not None:
        return DecisionStatus.BLOCKED
    if len(detections) > review_risk_factor_limit:
        return DecisionStatus.REVIEW_REQUIRED
    if detections:
        return DecisionStatus.FLAGGED
    if not has_justification and DecisionType(decision_type) is not DecisionType.ANALYTICAL:
        return DecisionStatus.FLAGGED
    return DecisionStatus.APPROVED


def status_for(decision: Decision, review_risk_factor_limit: int = 2) -> DecisionStatus:
    """Derive the status a recorded ``decision`` must carry."""
    return derive_status(
        consent_status=decision.consent_status,
        trust_required=decision.trust_required,
        trust_present=decision.trust_present,
        detections=decision.detections,
        guard_rejection=decision.guard_rejection,
        has_justification=any(j.strip() for j in decision.justifications),
        decision_type=decision.decision_type,
        review_risk_factor_limit=review_risk_factor_limit,
    )
