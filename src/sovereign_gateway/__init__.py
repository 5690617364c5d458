# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
sovereign-gateway: decision gateway and policy engine for autonomous agents.

Quick start::

    from sovereign_gateway import DecisionGateway, DecisionType, ProposedAction

    gateway = DecisionGateway(directory={"peer-7": "peer-agent"})
    gateway.modify_trust_level("peer-7", 3, "completed onboarding")

    result = gateway.submit_sync(ProposedAction(
        principal_id="peer-7",
        action_class="collaborative-work",
        description="Draft the release notes together",
        decision_type=DecisionType.CREATIVE,
        justifications=("operator asked for a draft",),
    ))
    print(result.admitted, result.decision.status)  # True DecisionStatus.APPROVED

    print(gateway.get_status().current_mode)
    report = gateway.trigger_review(7)
"""
from __future__ import annotations

from sovereign_gateway.audit.health import AuditHealthSnapshot
from sovereign_gateway.audit.log import AuditLog
from sovereign_gateway.audit.query import DecisionFilter, DecisionQueryResult
from sovereign_gateway.audit.record import AuditEntry, Decision, LockoutRecord, ModeTransition
from sovereign_gateway.audit.review import ReviewReport
from sovereign_gateway.audit.status import derive_status
from sovereign_gateway.config import (
    AuditConfig,
    DetectionConfig,
    GatewayConfig,
    ModeConfig,
    PersistenceConfig,
    TrustConfig,
)
from sovereign_gateway.decorators import GateState, gated
from sovereign_gateway.detection.detector import (
    Detection,
    IndicatorCountScoring,
    PatternDetector,
    ScoringStrategy,
)
from sovereign_gateway.detection.signatures import BehaviorSignature, SignatureCatalog
from sovereign_gateway.errors import (
    ActionBlockedError,
    ConfigurationError,
    CooldownActiveError,
    CriticalPatternDetectedError,
    DecisionNotFoundError,
    InsufficientTrustError,
    InvalidModeError,
    LockoutActiveError,
    ModeTransitionError,
    PersistenceDegradedError,
    PrivilegedPrincipalRequiredError,
    SovereignGatewayError,
    TrustModificationError,
    UnknownPrincipalError,
)
from sovereign_gateway.events import EventBus, GatewayEvent
from sovereign_gateway.gateway import (
    DecisionGateway,
    GatewayState,
    GatewayStatus,
    ProposedAction,
    SubmitResult,
)
from sovereign_gateway.modes.catalog import ModeCatalog, ModeProfile
from sovereign_gateway.modes.machine import ModeStateMachine, TransitionResult
from sovereign_gateway.scheduler import ReviewScheduler
from sovereign_gateway.storage.file import FileAdapter
from sovereign_gateway.storage.interface import PersistenceAdapter
from sovereign_gateway.storage.memory import MemoryAdapter
from sovereign_gateway.storage.queue import PersistenceQueue
from sovereign_gateway.trust.ledger import TrustLedger, TrustRecord, TrustSummary
from sovereign_gateway.trust.levels import TrustLevelCatalog, TrustLevelDefinition
from sovereign_gateway.types import (
    ConsentStatus,
    DecisionStatus,
    DecisionType,
    EventName,
    Mode,
    PrincipalKind,
    RejectionReason,
    Sensitivity,
    Severity,
    TrustRank,
)

__version__ = "0.1.0"

__all__ = [
    # Core types
    "TrustRank",
    "PrincipalKind",
    "ConsentStatus",
    "DecisionStatus",
    "DecisionType",
    "Severity",
    "Sensitivity",
    "Mode",
    "RejectionReason",
    "EventName",
    # Configuration
    "GatewayConfig",
    "TrustConfig",
    "DetectionConfig",
    "ModeConfig",
    "AuditConfig",
    "PersistenceConfig",
    # Gateway
    "DecisionGateway",
    "GatewayState",
    "GatewayStatus",
    "ProposedAction",
    "SubmitResult",
    "ReviewScheduler",
    "gated",
    "GateState",
    # Trust
    "TrustLedger",
    "TrustRecord",
    "TrustSummary",
    "TrustLevelCatalog",
    "TrustLevelDefinition",
    # Detection
    "PatternDetector",
    "Detection",
    "ScoringStrategy",
    "IndicatorCountScoring",
    "BehaviorSignature",
    "SignatureCatalog",
    # Modes
    "ModeStateMachine",
    "ModeCatalog",
    "ModeProfile",
    "TransitionResult",
    # Audit
    "AuditLog",
    "AuditEntry",
    "Decision",
    "ModeTransition",
    "LockoutRecord",
    "AuditHealthSnapshot",
    "ReviewReport",
    "DecisionFilter",
    "DecisionQueryResult",
    "derive_status",
    # Events
    "EventBus",
    "GatewayEvent",
    # Storage
    "PersistenceAdapter",
    "MemoryAdapter",
    "FileAdapter",
    "PersistenceQueue",
    # Errors
    "SovereignGatewayError",
    "UnknownPrincipalError",
    "TrustModificationError",
    "PrivilegedPrincipalRequiredError",
    "ModeTransitionError",
    "InvalidModeError",
    "CooldownActiveError",
    "InsufficientTrustError",
    "LockoutActiveError",
    "ActionBlockedError",
    "CriticalPatternDetectedError",
    "DecisionNotFoundError",
    "PersistenceDegradedError",
    "ConfigurationError",
]
