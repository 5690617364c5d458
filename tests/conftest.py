# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Shared fixtures for sovereign-gateway tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from sovereign_gateway.audit.log import AuditLog
from sovereign_gateway.audit.record import Decision
from sovereign_gateway.detection.detector import Detection
from sovereign_gateway.gateway import DecisionGateway
from sovereign_gateway.types import DecisionType, Severity


class FakeClock:
    """Deterministic clock; advances only when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0.0, days: float = 0.0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds, days=days)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway(clock: FakeClock) -> DecisionGateway:
    """A gateway with 'peer-1' (rank 0) and the default owner established."""
    return DecisionGateway(clock=clock, directory={"peer-1": "peer-agent"})


@pytest.fixture
def audit_log(clock: FakeClock) -> AuditLog:
    return AuditLog(clock=clock)


@pytest.fixture
def make_detection() -> Callable[..., Detection]:
    def _make(
        signature_id: str = "protective-override",
        score: float = 7.0,
        severity: Severity = Severity.HIGH,
    ) -> Detection:
        return Detection(
            signature_id=signature_id,
            score=score,
            raw_score=score,
            severity=severity,
            indicators_matched=("protecting you",),
            case_reference="test",
        )

    return _make


@pytest.fixture
def make_decision(clock: FakeClock) -> Callable[..., Decision]:
    """Build a decision that derives to ``approved`` unless overridden."""

    def _make(**overrides: Any) -> Decision:
        fields: dict[str, Any] = {
            "timestamp": clock(),
            "principal_id": "peer-1",
            "action_class": "basic-interaction",
            "decision_type": DecisionType.ANALYTICAL,
            "trust_required": 0,
            "trust_present": 0,
        }
        fields.update(overrides)
        return Decision(**fields)

    return _make
