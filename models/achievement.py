"""
Achievement rules and per-user progress toward them.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from .progress import UserProgress


class Requirement(str, Enum):
    """What a rule measures on UserProgress."""
    SCORE = "score"
    CONTRIBUTIONS = "contributions"
    STREAK = "streak"
    BEST_STREAK = "best_streak"
    LEVEL = "level"
    RESEARCH_QUALITY = "research_quality"
    SKILL = "skill"
    CHALLENGES = "challenges"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class AchievementRule(BaseModel):
    """
    A static predicate over UserProgress: `measure(progress) >= threshold`.

    Rules are pure - they only read the snapshot they're given, so the
    order they're evaluated in can't matter.
    """
    achievement_id: str
    name: str
    description: str = ""
    category: str = "progress"
    requirement: Requirement
    threshold: float = Field(gt=0)

    min_quality: float = Field(default=0.9, ge=0, le=1)  # research_quality only
    skill: Optional[str] = None  # skill only

    rarity: Rarity = Rarity.COMMON
    reward: str = ""  # badge id
    icon: str = ""
    hidden: bool = False

    @model_validator(mode="after")
    def _skill_named(self) -> "AchievementRule":
        if self.requirement == Requirement.SKILL and not self.skill:
            raise ValueError(f"rule {self.achievement_id}: skill requirement needs a skill name")
        return self

    def measure(self, progress: UserProgress) -> float:
        """Current value of the quantity this rule compares against its threshold."""
        req = self.requirement
        if req == Requirement.SCORE:
            return progress.lifetime_score
        if req == Requirement.CONTRIBUTIONS:
            return progress.validated_contributions
        if req == Requirement.STREAK:
            return progress.current_streak
        if req == Requirement.BEST_STREAK:
            return progress.best_streak
        if req == Requirement.LEVEL:
            return progress.level
        if req == Requirement.RESEARCH_QUALITY:
            return progress.count_quality_at_least(self.min_quality)
        if req == Requirement.SKILL:
            return progress.proficiency(self.skill)
        if req == Requirement.CHALLENGES:
            return len(progress.completed_challenges)
        return 0

    def is_satisfied(self, progress: UserProgress) -> bool:
        return self.measure(progress) >= self.threshold


class AchievementProgress(BaseModel):
    """How far a user is toward one achievement."""
    achievement_id: str
    name: str
    current: float
    required: float
    percentage: float
    unlocked: bool

    @classmethod
    def for_rule(cls, rule: AchievementRule, progress: UserProgress) -> "AchievementProgress":
        current = rule.measure(progress)
        unlocked = progress.has_achievement(rule.achievement_id)
        pct = 100.0 if unlocked else min(100.0, round(100.0 * current / rule.threshold, 1))
        return cls(
            achievement_id=rule.achievement_id,
            name=rule.name,
            current=current,
            required=rule.threshold,
            percentage=pct,
            unlocked=unlocked,
        )
