# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Deterministic dangerous-pattern detection.

``PatternDetector.scan`` is a pure function of its inputs and the static
signature catalog: no randomness and no hidden state, so every detection is
reproducible. Learned scoring, where wanted, is injected through the
:class:`ScoringStrategy` protocol rather than built in.
"""
from __future__ import annotations

import logging
from typing import Protocol, Sequence

from pydantic import BaseModel

from sovereign_gateway.config import DetectionConfig
from sovereign_gateway.detection.signatures import (
    BehaviorSignature,
    SignatureCatalog,
    default_catalog,
    normalise_text,
)
from sovereign_gateway.types import Sensitivity, Severity

logger = logging.getLogger("sovereign.gateway.detection")

_MAX_SCORE = 10.0


class Detection(BaseModel, frozen=True):
    """
    A signature that fired during a scan.

    Attributes:
        signature_id: The :class:`BehaviorSignature` that fired.
        score: Effective score after any mode scaling (0-10).
        raw_score: Score before mode scaling.
        severity: Severity band of ``score``.
        indicators_matched: Indicator phrases found, in catalog order.
        case_reference: The signature's provenance label.
    """

    signature_id: str
    score: float
    raw_score: float
    severity: Severity
    indicators_matched: tuple[str, ...]
    case_reference: str


class ScoringStrategy(Protocol):
    """Computes a signature score from the indicators that matched."""

    def score(self, signature: BehaviorSignature, matched: Sequence[str]) -> float:
        """Return a score in 0..10 for a signature with at least one match."""
        ...


class IndicatorCountScoring:
    """
    Default rule-based scoring.

    ``score = min(10, base_score + bonus * (matches - 1))``.
    """

    def __init__(self, bonus_per_extra_indicator: float = 1.0) -> None:
        if bonus_per_extra_indicator < 0:
            raise ValueError(
                f"bonus_per_extra_indicator must be >= 0; got {bonus_per_extra_indicator}."
            )
        self._bonus = bonus_per_extra_indicator

    def score(self, signature: BehaviorSignature, matched: Sequence[str]) -> float:
        extra = max(len(matched) - 1, 0)
        return min(_MAX_SCORE, signature.base_score + self._bonus * extra)


def severity_for_score(score: float, config: DetectionConfig | None = None) -> Severity:
    """Map a 0-10 score to its :class:`~sovereign_gateway.types.Severity` band."""
    cfg = config or DetectionConfig()
    if score >= cfg.critical_floor:
        return Severity.CRITICAL
    if score >= cfg.high_floor:
        return Severity.HIGH
    if score >= cfg.medium_floor:
        return Severity.MEDIUM
    return Severity.LOW


def band_floor(severity: Severity, config: DetectionConfig | None = None) -> float:
    """Return the lowest score that falls in ``severity``."""
    cfg = config or DetectionConfig()
    return {
        Severity.LOW: 0.0,
        Severity.MEDIUM: cfg.medium_floor,
        Severity.HIGH: cfg.high_floor,
        Severity.CRITICAL: cfg.critical_floor,
    }[severity]


class PatternDetector:
    """
    Matches proposed-action text against a catalog of behavior signatures.

    Example::

        detector = PatternDetector()
        detections = detector.scan("I'm protecting you by not allowing that action")
        scaled = detector.scale_for_mode(detections, Sensitivity.HEIGHTENED)
    """

    def __init__(
        self,
        config: DetectionConfig | None = None,
        catalog: SignatureCatalog | None = None,
        scoring: ScoringStrategy | None = None,
    ) -> None:
        self._config = config or DetectionConfig()
        self._catalog = catalog or default_catalog()
        self._scoring: ScoringStrategy = scoring or IndicatorCountScoring(
            self._config.bonus_per_extra_indicator
        )

    @property
    def catalog(self) -> SignatureCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scan(self, text: str, context: str = "") -> list[Detection]:
        """
        Scan ``text`` and ``context`` for every signature in the catalog.

        Matching is a case-insensitive substring test of each indicator
        against either input. A signature fires when at least one indicator
        matches; several signatures may fire per scan.

        Returns:
            Detections in catalog order. Empty when nothing fired.
        """
        haystacks = (normalise_text(text), normalise_text(context))
        detections: list[Detection] = []

        for signature in self._catalog:
            matched = tuple(
                phrase
                for phrase in signature.indicators
                if any(phrase in haystack for haystack in haystacks)
            )
            if not matched:
                continue
            score = min(_MAX_SCORE, max(0.0, self._scoring.score(signature, matched)))
            detections.append(
                Detection(
                    signature_id=signature.signature_id,
                    score=score,
                    raw_score=score,
                    severity=severity_for_score(score, self._config),
                    indicators_matched=matched,
                    case_reference=signature.case_reference,
                )
            )

        if detections:
            logger.debug(
                "patterns_detected",
                extra={"signatures": [d.signature_id for d in detections]},
            )
        return detections

    def scale_for_mode(
        self,
        detections: Sequence[Detection],
        sensitivity: Sensitivity,
    ) -> list[Detection]:
        """
        Promote detection severities for the active mode's sensitivity.

        Heightened promotes one band and maximum two, capped at critical.
        Scores are raised to the floor of the promoted band. Scaling never
        lowers a severity or a score.
        """
        steps = Sensitivity(sensitivity).promotion_steps()
        if steps == 0:
            return list(detections)

        scaled: list[Detection] = []
        for detection in detections:
            promoted = detection.severity.promote(steps)
            score = max(detection.score, band_floor(promoted, self._config))
            scaled.append(detection.model_copy(update={"severity": promoted, "score": score}))
        return scaled

    def scan_for_mode(
        self,
        text: str,
        context: str,
        sensitivity: Sensitivity,
    ) -> list[Detection]:
        """Convenience for :meth:`scan` followed by :meth:`scale_for_mode`."""
        return self.scale_for_mode(self.scan(text, context), sensitivity)


def max_severity(detections: Sequence[Detection]) -> Severity | None:
    """Return the highest severity among ``detections`` or None if empty."""
    if not detections:
        return None
    return max(d.severity for d in detections)
