# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from sovereign_gateway.detection.detector import (
    Detection,
    IndicatorCountScoring,
    PatternDetector,
    ScoringStrategy,
    band_floor,
    max_severity,
    severity_for_score,
)
from sovereign_gateway.detection.signatures import (
    DEFAULT_SIGNATURES,
    BehaviorSignature,
    SignatureCatalog,
    default_catalog,
)

__all__ = [
    "PatternDetector",
    "Detection",
    "ScoringStrategy",
    "IndicatorCountScoring",
    "severity_for_score",
    "band_floor",
    "max_severity",
    "BehaviorSignature",
    "SignatureCatalog",
    "DEFAULT_SIGNATURES",
    "default_catalog",
]
