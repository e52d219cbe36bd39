"""
Domain models - single source of truth for all entities.

Design principles:
- Every entity defined once
- Validation at the boundary (pydantic)
- Invariants enforced by the model, not by callers
- Backend-agnostic (repository handles persistence)
"""

from .base import BaseEntity, TimestampMixin
from .problem import Problem, ProblemType, Criterion
from .solution import (
    Solution,
    BiasAnswer,
    BiasDetectionSolution,
    AlignmentChoice,
    AlignmentSolution,
    ContextJudgement,
    ContextEvaluationSolution,
    SubmissionMetadata,
    parse_solution,
)
from .contribution import (
    Contribution,
    ContributionResult,
    ValidationStatus,
    ClampRecord,
    OPEN_STATUSES,
)
from .progress import UserProgress
from .achievement import AchievementRule, AchievementProgress, Requirement, Rarity
from .events import ContributionValidated, AchievementUnlocked
from .stats import PipelineStats, ContributionStats

__all__ = [
    # Base
    "BaseEntity",
    "TimestampMixin",
    # Problems
    "Problem",
    "ProblemType",
    "Criterion",
    # Solutions
    "Solution",
    "BiasAnswer",
    "BiasDetectionSolution",
    "AlignmentChoice",
    "AlignmentSolution",
    "ContextJudgement",
    "ContextEvaluationSolution",
    "SubmissionMetadata",
    "parse_solution",
    # Contributions
    "Contribution",
    "ContributionResult",
    "ValidationStatus",
    "ClampRecord",
    "OPEN_STATUSES",
    # Progress
    "UserProgress",
    # Achievements
    "AchievementRule",
    "AchievementProgress",
    "Requirement",
    "Rarity",
    # Events
    "ContributionValidated",
    "AchievementUnlocked",
    # Stats
    "PipelineStats",
    "ContributionStats",
]
