"""
Contributions - one user's solution to one problem plus its outcome.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from errors import InvalidTransition
from .base import BaseEntity
from .problem import ProblemType
from .solution import Solution, SubmissionMetadata


class ValidationStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


# Statuses that block a new submission for the same (user, problem)
OPEN_STATUSES = frozenset({ValidationStatus.PENDING, ValidationStatus.VALIDATED})


class ClampRecord(BaseModel):
    """Audit entry: a metric value pulled back into its declared range."""
    metric: str
    raw: float
    clamped: float


class Contribution(BaseEntity):
    """
    A submitted solution and its validation outcome.

    Status only ever moves Pending -> Validated or Pending -> Rejected.
    Scores stay None while Pending and are bounded to [0, 1] once resolved.
    """
    contribution_id: str
    user_id: str
    problem_id: str
    problem_type: ProblemType

    solution: Solution
    metadata: SubmissionMetadata = Field(default_factory=SubmissionMetadata)

    status: ValidationStatus = ValidationStatus.PENDING
    quality_score: Optional[float] = None
    confidence_score: Optional[float] = None
    points_awarded: int = 0

    # Audit trail from validation
    metrics: dict[str, float] = Field(default_factory=dict)
    clamped: list[ClampRecord] = Field(default_factory=list)
    rejection_reason: Optional[str] = None
    failed_criteria: list[str] = Field(default_factory=list)

    submitted_at: datetime = Field(default_factory=datetime.now)
    validated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _scores_match_status(self) -> "Contribution":
        if self.status == ValidationStatus.PENDING:
            if self.quality_score is not None or self.confidence_score is not None:
                raise ValueError("pending contribution cannot carry scores")
        else:
            for name in ("quality_score", "confidence_score"):
                value = getattr(self, name)
                if value is None or not 0.0 <= value <= 1.0:
                    raise ValueError(f"{name} must be in [0, 1] once resolved, got {value}")
        if self.points_awarded < 0:
            raise ValueError("points_awarded cannot be negative")
        return self

    @property
    def is_resolved(self) -> bool:
        return self.status != ValidationStatus.PENDING

    def resolve(
        self,
        status: ValidationStatus,
        quality_score: float,
        confidence_score: float,
        points_awarded: int = 0,
        rejection_reason: Optional[str] = None,
        failed_criteria: Optional[list[str]] = None,
        at: Optional[datetime] = None,
    ) -> "Contribution":
        """Return the resolved copy. Raises InvalidTransition if already resolved."""
        if self.is_resolved:
            raise InvalidTransition(
                f"Contribution {self.contribution_id} is already {self.status.value}",
                contribution_id=self.contribution_id,
            )
        if status == ValidationStatus.PENDING:
            raise InvalidTransition("Cannot resolve a contribution back to pending")

        data = self.model_dump()
        data.update(
            status=status,
            quality_score=quality_score,
            confidence_score=confidence_score,
            points_awarded=points_awarded if status == ValidationStatus.VALIDATED else 0,
            rejection_reason=rejection_reason,
            failed_criteria=list(failed_criteria or []),
            validated_at=at or datetime.now(),
            updated_at=datetime.now(),
        )
        return Contribution.model_validate(data)


class ContributionResult(BaseModel):
    """What SubmitSolution hands back to the game/session layer."""
    contribution_id: str
    status: ValidationStatus
    quality_score: Optional[float] = None
    confidence_score: Optional[float] = None
    points_awarded: int = 0
    rejection_reason: Optional[str] = None
    failed_criteria: list[str] = Field(default_factory=list)
    unlocked_achievements: list[str] = Field(default_factory=list)

    @classmethod
    def from_contribution(cls, contribution: Contribution, unlocked: Optional[list[str]] = None) -> "ContributionResult":
        return cls(
            contribution_id=contribution.contribution_id,
            status=contribution.status,
            quality_score=contribution.quality_score,
            confidence_score=contribution.confidence_score,
            points_awarded=contribution.points_awarded,
            rejection_reason=contribution.rejection_reason,
            failed_criteria=contribution.failed_criteria,
            unlocked_achievements=list(unlocked or []),
        )
