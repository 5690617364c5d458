# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from pydantic import BaseModel

from sovereign_gateway.trust.levels import TrustLevelDefinition
from sovereign_gateway.types import ConsentStatus


class PermissionCheckResult(BaseModel, frozen=True):
    """
    Result of checking a principal's permission for an action class.

    Attributes:
        allowed: True if the principal may request the action class.
        principal_id: The principal that was evaluated.
        action_class: The action class requested.
        consent_status: How consent bears on this request.
        trust_required: Lowest rank that permits the action class.
        trust_present: The principal's rank, or None if it has no record.
        reason: Human-readable explanation of the outcome.
    """

    allowed: bool
    principal_id: str
    action_class: str
    consent_status: ConsentStatus
    trust_required: int
    trust_present: int | None = None
    reason: str


def evaluate_permission(
    principal_id: str,
    action_class: str,
    level: TrustLevelDefinition | None,
    trust_required: int,
    granted: frozenset[str],
    revoked: frozenset[str],
) -> PermissionCheckResult:
    """
    Decide whether a principal may request an action class.

    This is a pure function. An absent ``level`` (unknown principal or a
    rank with no catalog entry) always denies.

    Permission holds iff the class is permitted at the principal's rank,
    it is not in the revoked set, and, when the rank gates the class behind
    consent, it is in the granted set. Revocation always wins over a grant.

    Args:
        principal_id: Identifier of the requesting principal.
        action_class: The action class being requested.
        level: The principal's :class:`TrustLevelDefinition`, or None.
        trust_required: Lowest rank that permits ``action_class``.
        granted: Classes the principal has explicitly consented to.
        revoked: Classes the principal has explicitly revoked.

    Returns:
        A frozen :class:`PermissionCheckResult`.
    """
    if level is None:
        return PermissionCheckResult(
            allowed=False,
            principal_id=principal_id,
            action_class=action_class,
            consent_status=ConsentStatus.PENDING,
            trust_required=trust_required,
            trust_present=None,
            reason=(
                f"Principal '{principal_id}' has no trust record; "
                f"'{action_class}' denied (fail closed)."
            ),
        )

    present = int(level.rank)
    gated = level.needs_consent(action_class)

    if action_class in revoked:
        consent = ConsentStatus.BYPASSED
    elif gated and action_class in granted:
        consent = ConsentStatus.OBTAINED
    elif gated:
        consent = ConsentStatus.PENDING
    else:
        consent = ConsentStatus.NOT_REQUIRED

    if not level.permits(action_class):
        allowed = False
        reason = (
            f"Principal '{principal_id}' holds rank {level.name} ({present}); "
            f"'{action_class}' requires rank {trust_required}."
        )
    elif consent is ConsentStatus.BYPASSED:
        allowed = False
        reason = f"Principal '{principal_id}' has revoked consent for '{action_class}'."
    elif consent is ConsentStatus.PENDING:
        allowed = False
        reason = (
            f"'{action_class}' requires explicit consent from "
            f"'{principal_id}', which has not been given."
        )
    else:
        allowed = True
        reason = (
            f"Principal '{principal_id}' at rank {level.name} ({present}) "
            f"may request '{action_class}'."
        )

    return PermissionCheckResult(
        allowed=allowed,
        principal_id=principal_id,
        action_class=action_class,
        consent_status=consent,
        trust_required=trust_required,
        trust_present=present,
        reason=reason,
    )
