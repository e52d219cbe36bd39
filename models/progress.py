"""
UserProgress - a user's level, experience, streak and achievement state.

Only the progression tracker and achievement evaluator write this, always
through a versioned compare-and-swap. Mutators here return new copies with
the version bumped; they never touch storage.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field, model_validator

from .base import BaseEntity


class UserProgress(BaseEntity):
    """Progression state for one user (one-to-one)."""
    user_id: str
    version: int = 0  # Optimistic concurrency token, bumped on every write

    level: int = Field(default=1, ge=1)
    experience: int = Field(default=0, ge=0)
    lifetime_score: int = Field(default=0, ge=0)

    completed_challenges: list[str] = Field(default_factory=list)  # Ordered, unique
    skill_proficiency: dict[str, float] = Field(default_factory=dict)  # category -> 0..1
    achievements: list[str] = Field(default_factory=list)  # Ordered, unique

    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)

    validated_contributions: int = Field(default=0, ge=0)
    quality_scores: list[float] = Field(default_factory=list)  # One per validated contribution
    applied_contributions: list[str] = Field(default_factory=list)

    last_activity: Optional[datetime] = None
    last_validated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "UserProgress":
        if self.best_streak < self.current_streak:
            raise ValueError(
                f"best_streak ({self.best_streak}) < current_streak ({self.current_streak})"
            )
        if len(self.achievements) != len(set(self.achievements)):
            raise ValueError("duplicate achievement id")
        if len(self.completed_challenges) != len(set(self.completed_challenges)):
            raise ValueError("duplicate completed challenge")
        for category, value in self.skill_proficiency.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"proficiency for {category} out of range: {value}")
        return self

    def has_applied(self, contribution_id: str) -> bool:
        return contribution_id in self.applied_contributions

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements

    def proficiency(self, category: str) -> float:
        return self.skill_proficiency.get(category, 0.0)

    def count_quality_at_least(self, min_quality: float) -> int:
        return sum(1 for q in self.quality_scores if q >= min_quality)

    def next_version(self, **changes) -> "UserProgress":
        """Validated copy with `changes` applied and the version bumped."""
        data = self.model_dump()
        data.update(changes)
        data["version"] = self.version + 1
        data["updated_at"] = datetime.now()
        return UserProgress.model_validate(data)

    def with_achievement(self, achievement_id: str) -> "UserProgress":
        """Next version with the achievement added. Caller checks presence first."""
        return self.next_version(achievements=[*self.achievements, achievement_id])

    def to_dict(self) -> dict:
        """Export for API responses."""
        return {
            "user_id": self.user_id,
            "level": self.level,
            "experience": self.experience,
            "lifetime_score": self.lifetime_score,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "validated_contributions": self.validated_contributions,
            "completed_challenges": list(self.completed_challenges),
            "skill_proficiency": dict(self.skill_proficiency),
            "achievements": list(self.achievements),
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
        }
