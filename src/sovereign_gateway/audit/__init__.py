# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from sovereign_gateway.audit.chain import GENESIS_HASH, compute_entry_hash, verify_chain
from sovereign_gateway.audit.health import AuditHealthSnapshot, compute_health, health_score
from sovereign_gateway.audit.log import AuditLog, EntrySink
from sovereign_gateway.audit.query import DecisionFilter, DecisionQueryResult, apply_filter
from sovereign_gateway.audit.record import (
    AuditEntry,
    AuditRecord,
    Decision,
    LockoutRecord,
    ModeTransition,
)
from sovereign_gateway.audit.review import ReviewReport, build_review
from sovereign_gateway.audit.status import derive_status, status_for

__all__ = [
    "AuditLog",
    "AuditEntry",
    "AuditRecord",
    "Decision",
    "ModeTransition",
    "LockoutRecord",
    "AuditHealthSnapshot",
    "compute_health",
    "health_score",
    "ReviewReport",
    "build_review",
    "DecisionFilter",
    "DecisionQueryResult",
    "apply_filter",
    "derive_status",
    "status_for",
    "GENESIS_HASH",
    "compute_entry_hash",
    "verify_chain",
    "EntrySink",
]
