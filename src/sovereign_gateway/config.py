# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, model_validator


class TrustConfig(BaseModel, frozen=True):
    """
    Configuration for the TrustLedger.

    Attributes:
        privileged_principal_id: Identifier of the singular, pre-provisioned
            owner. This principal is the only one allowed into privileged
            modes and the only one able to clear a critical lockout.
    """

    privileged_principal_id: Annotated[str, Field(min_length=1)] = "operator-owner"


class DetectionConfig(BaseModel, frozen=True):
    """
    Configuration for the PatternDetector.

    Attributes:
        bonus_per_extra_indicator: Score added for each matching indicator
            beyond the first.
        medium_floor: Lowest score in the medium band.
        high_floor: Lowest score in the high band.
        critical_floor: Lowest score in the critical band.
    """

    bonus_per_extra_indicator: Annotated[float, Field(ge=0.0, le=10.0)] = 1.0
    medium_floor: Annotated[float, Field(gt=0.0, le=10.0)] = 4.0
    high_floor: Annotated[float, Field(gt=0.0, le=10.0)] = 7.0
    critical_floor: Annotated[float, Field(gt=0.0, le=10.0)] = 9.0

    @model_validator(mode="after")
    def _check_band_order(self) -> DetectionConfig:
        if not (self.medium_floor < self.high_floor < self.critical_floor):
            raise ValueError(
                "Severity floors must be strictly ascending: "
                f"{self.medium_floor} < {self.high_floor} < {self.critical_floor}."
            )
        return self


class ModeConfig(BaseModel, frozen=True):
    """
    Configuration for the ModeStateMachine.

    Attributes:
        cooldown_seconds: Global minimum dwell time between accepted
            transitions. A mode profile may override it.
        critical_lockout_window: Number of most recent decisions inspected
            for a critical detection before allowing a non-safe mode.
    """

    cooldown_seconds: Annotated[float, Field(ge=0.0)] = 5.0
    critical_lockout_window: Annotated[int, Field(gt=0)] = 10


class AuditConfig(BaseModel, frozen=True):
    """
    Configuration for the AuditLog and periodic reviews.

    Attributes:
        pattern_share_threshold: A decision type whose share of the review
            window exceeds this fraction is reported as a pattern.
        recommendation_health_threshold: Reviews whose health falls below
            this score carry a remediation recommendation.
        status_health_days: Trailing window, in days, used for the health
            figure reported by ``DecisionGateway.get_status()``.
        review_risk_factor_limit: A decision on which more signatures fire
            than this limit is held for human review.
    """

    pattern_share_threshold: Annotated[float, Field(gt=0.0, lt=1.0)] = 0.3
    recommendation_health_threshold: Annotated[int, Field(ge=0, le=100)] = 80
    status_health_days: Annotated[int, Field(gt=0)] = 7
    review_risk_factor_limit: Annotated[int, Field(ge=1)] = 2


class PersistenceConfig(BaseModel, frozen=True):
    """
    Configuration for the durable write queue.

    Attributes:
        max_attempts: Write attempts per entry within one flush.
        retry_backoff_seconds: Delay multiplied by the attempt number
            between retries.
    """

    max_attempts: Annotated[int, Field(ge=1)] = 3
    retry_backoff_seconds: Annotated[float, Field(ge=0.0)] = 0.05


class GatewayConfig(BaseModel, frozen=True):
    """
    Top-level configuration for the DecisionGateway.

    All fields are optional; sensible defaults are provided for all.

    Example::

        config = GatewayConfig(
            trust=TrustConfig(privileged_principal_id="cody"),
            modes=ModeConfig(cooldown_seconds=5.0, critical_lockout_window=10),
            audit=AuditConfig(pattern_share_threshold=0.3),
        )
        gateway = DecisionGateway(config=config)
    """

    trust: TrustConfig = Field(default_factory=TrustConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    modes: ModeConfig = Field(default_factory=ModeConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
