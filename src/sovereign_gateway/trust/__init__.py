# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from sovereign_gateway.trust.ledger import (
    TrustInteraction,
    TrustLedger,
    TrustRecord,
    TrustSummary,
)
from sovereign_gateway.trust.levels import (
    ALL_PERMISSIONS,
    DEFAULT_TRUST_LEVELS,
    TrustLevelCatalog,
    TrustLevelDefinition,
)
from sovereign_gateway.trust.validator import PermissionCheckResult, evaluate_permission

__all__ = [
    "TrustLedger",
    "TrustRecord",
    "TrustSummary",
    "TrustInteraction",
    "TrustLevelCatalog",
    "TrustLevelDefinition",
    "DEFAULT_TRUST_LEVELS",
    "ALL_PERMISSIONS",
    "PermissionCheckResult",
    "evaluate_permission",
]
