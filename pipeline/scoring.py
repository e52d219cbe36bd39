"""
Scoring - turn match metrics into bounded quality / confidence scores.

quality     = weighted mean over criteria of min(1, value / threshold)
confidence  = clamp(quality * time_factor * certainty_factor)
points      = max(0, round_half_up(quality * difficulty * base_multiplier))

The quality threshold is checked against the unrounded mean; rounding to
score_precision applies only to the scores that are stored and reported.

Deterministic: no randomness and no clock reads. Never raises for
well-formed metrics; anything out of range is clamped.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from config import PipelineSettings
from models import Problem, SubmissionMetadata, ValidationStatus

BELOW_QUALITY_THRESHOLD = "BELOW_QUALITY_THRESHOLD"


@dataclass
class ScoreCard:
    """Result of scoring one contribution."""
    status: ValidationStatus
    quality_score: float
    confidence_score: float
    points_awarded: int = 0
    failed_criteria: list[str] = field(default_factory=list)
    rejection_reason: Optional[str] = None
    criterion_ratios: dict[str, float] = field(default_factory=dict)

    @property
    def validated(self) -> bool:
        return self.status == ValidationStatus.VALIDATED


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoringEngine:
    """Stateless scorer. Safe to share across threads."""

    def __init__(self, settings: Optional[PipelineSettings] = None):
        self.settings = settings or PipelineSettings()

    def criterion_ratios(self, problem: Problem, metrics: dict[str, float]) -> dict[str, float]:
        """Per-criterion attainment, each in [0, 1]."""
        ratios = {}
        for criterion in problem.criteria:
            value = clamp(metrics.get(criterion.metric, 0.0), 0.0, math.inf)
            ratios[criterion.metric] = min(1.0, value / criterion.threshold)
        return ratios

    def raw_quality(self, problem: Problem, metrics: dict[str, float]) -> float:
        """Unrounded weighted mean. The quality threshold is compared against this."""
        ratios = self.criterion_ratios(problem, metrics)
        total_weight = sum(c.weight for c in problem.criteria)
        weighted = sum(ratios[c.metric] * c.weight for c in problem.criteria)
        return clamp(weighted / total_weight)

    def quality(self, problem: Problem, metrics: dict[str, float]) -> float:
        return self._round(self.raw_quality(problem, metrics))

    def behaviour_factor(self, problem: Problem, metadata: Optional[SubmissionMetadata]) -> float:
        """
        Secondary signal from how the solution was submitted.

        Rushing (spending under min_time_ratio of the expected time) scales
        confidence down linearly; low self-reported certainty scales it
        down to certainty_floor. Unknowns are neutral.
        """
        s = self.settings
        time_factor = 1.0
        certainty_factor = 1.0
        if metadata is not None:
            spent = metadata.effective_time_spent
            if spent is not None and problem.expected_time_seconds:
                ratio = clamp(spent, 0.0, math.inf) / problem.expected_time_seconds
                time_factor = min(1.0, ratio / s.min_time_ratio)
            if metadata.self_reported_certainty is not None:
                certainty = clamp(metadata.self_reported_certainty)
                certainty_factor = s.certainty_floor + (1.0 - s.certainty_floor) * certainty
        return time_factor * certainty_factor

    def confidence(self, quality: float, problem: Problem, metadata: Optional[SubmissionMetadata]) -> float:
        return self._round(clamp(quality * self.behaviour_factor(problem, metadata)))

    def points(self, quality: float, difficulty: int) -> int:
        return max(0, round_half_up(quality * difficulty * self.settings.base_multiplier))

    def score(
        self,
        problem: Problem,
        metrics: dict[str, float],
        metadata: Optional[SubmissionMetadata] = None,
    ) -> ScoreCard:
        ratios = self.criterion_ratios(problem, metrics)
        raw = self.raw_quality(problem, metrics)
        quality = self._round(raw)
        confidence = self.confidence(quality, problem, metadata)

        if raw < problem.quality_threshold:
            failed = [c.metric for c in problem.criteria if ratios[c.metric] < 1.0]
            return ScoreCard(
                status=ValidationStatus.REJECTED,
                quality_score=quality,
                confidence_score=confidence,
                points_awarded=0,
                failed_criteria=failed,
                rejection_reason=BELOW_QUALITY_THRESHOLD,
                criterion_ratios=ratios,
            )

        return ScoreCard(
            status=ValidationStatus.VALIDATED,
            quality_score=quality,
            confidence_score=confidence,
            points_awarded=self.points(quality, problem.difficulty),
            criterion_ratios=ratios,
        )

    def _round(self, value: float) -> float:
        return round(value, self.settings.score_precision)
