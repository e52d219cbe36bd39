"""
Research problems - the read-only catalogue contributions are scored against.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from .base import BaseEntity


class ProblemType(str, Enum):
    """Kinds of research problem. Also the skill categories users level up in."""
    BIAS_DETECTION = "bias_detection"
    ALIGNMENT = "alignment"
    CONTEXT_EVALUATION = "context_evaluation"


class Criterion(BaseModel):
    """One validation threshold, keyed by metric name."""
    metric: str
    threshold: float = Field(gt=0)
    weight: float = Field(default=1.0, gt=0)
    min_value: float = 0.0  # Declared valid range - values outside are clamped
    max_value: float = 1.0

    @model_validator(mode="after")
    def _check_range(self) -> "Criterion":
        if self.min_value > self.max_value:
            raise ValueError(f"criterion {self.metric}: min_value > max_value")
        return self

    def clamp(self, value: float) -> float:
        return max(self.min_value, min(self.max_value, value))


# Fields that may change after a problem is published
MUTABLE_FIELDS = frozenset({"active", "quality_threshold", "total_contributions"})


class Problem(BaseEntity):
    """
    A published research problem.

    Immutable once published except for `active` and `quality_threshold`.
    `total_contributions` is a read-model value filled in from the
    aggregation ledger, never written by callers.
    """
    problem_id: str
    problem_type: ProblemType
    title: str = ""
    description: str = ""
    institution_name: str = ""

    difficulty: int = Field(ge=1, le=10)
    criteria: list[Criterion] = Field(min_length=1)
    quality_threshold: float = Field(default=0.7, ge=0, le=1)

    # Ground truth: scenario_id -> expected answer (option / variant id)
    answer_key: dict[str, str] = Field(default_factory=dict)
    # Alignment only: reference value ratings (helpfulness, honesty, ...)
    reference_values: dict[str, float] = Field(default_factory=dict)

    expected_time_seconds: Optional[float] = Field(default=None, gt=0)
    tags: list[str] = Field(default_factory=list)

    active: bool = True
    total_contributions: int = 0

    @model_validator(mode="after")
    def _unique_metrics(self) -> "Problem":
        names = [c.metric for c in self.criteria]
        if len(names) != len(set(names)):
            raise ValueError(f"problem {self.problem_id}: duplicate criterion metric")
        return self

    @property
    def criteria_by_metric(self) -> dict[str, Criterion]:
        return {c.metric: c for c in self.criteria}

    def with_updates(self, **changes) -> "Problem":
        """Return a copy with the allowed post-publication changes applied."""
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Problem fields are immutable once published: {sorted(illegal)}")
        updated = self.model_copy(update=changes)
        # model_copy skips validation - run it explicitly
        return Problem.model_validate(updated.model_dump())
