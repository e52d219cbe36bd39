"""
Achievement evaluation - unlock rules newly satisfied by a progress snapshot.

Rules are independent predicates over one UserProgress snapshot. Unlocking
goes through the progression tracker's insert-if-absent, so racing
evaluations for the same user converge on the same set and only the winner
of each insert publishes AchievementUnlocked.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from config import ACHIEVEMENTS_FILE, load_yaml
from models import (
    AchievementRule,
    AchievementProgress,
    AchievementUnlocked,
    UserProgress,
    Requirement,
    Rarity,
)
from .events import EventBus
from .progression import ProgressionTracker


def _rule(achievement_id, name, description, category, requirement, threshold, rarity, reward, **extra):
    return AchievementRule(
        achievement_id=achievement_id,
        name=name,
        description=description,
        category=category,
        requirement=requirement,
        threshold=threshold,
        rarity=rarity,
        reward=reward,
        **extra,
    )


DEFAULT_RULES = [
    # Score
    _rule("first_score", "First Steps", "Score your first points", "progress",
          Requirement.SCORE, 1, Rarity.COMMON, "first_steps"),
    _rule("score_1000", "Rising Researcher", "Reach 1,000 total points", "progress",
          Requirement.SCORE, 1000, Rarity.COMMON, "rising_researcher"),
    _rule("score_10000", "Expert Investigator", "Reach 10,000 total points", "progress",
          Requirement.SCORE, 10000, Rarity.RARE, "expert_investigator"),
    _rule("score_100000", "AI Research Master", "Reach 100,000 total points", "progress",
          Requirement.SCORE, 100000, Rarity.LEGENDARY, "ai_master"),
    # Contributions
    _rule("first_contribution", "Research Contributor", "Get your first contribution validated", "research",
          Requirement.CONTRIBUTIONS, 1, Rarity.COMMON, "first_contributor"),
    _rule("contributions_10", "Dedicated Researcher", "10 validated contributions", "research",
          Requirement.CONTRIBUTIONS, 10, Rarity.RARE, "dedicated_researcher"),
    _rule("contributions_100", "Research Pioneer", "100 validated contributions", "research",
          Requirement.CONTRIBUTIONS, 100, Rarity.EPIC, "research_pioneer"),
    # Streaks
    _rule("streak_3", "Consistent Contributor", "Reach a streak of 3", "engagement",
          Requirement.STREAK, 3, Rarity.COMMON, "consistent"),
    _rule("streak_7", "Week of Rigor", "Reach a streak of 7", "engagement",
          Requirement.STREAK, 7, Rarity.RARE, "week_of_rigor"),
    _rule("streak_30", "Unstoppable Force", "Reach a streak of 30", "engagement",
          Requirement.STREAK, 30, Rarity.EPIC, "unstoppable"),
    # Quality
    _rule("high_quality_10", "Quality Researcher", "10 contributions with quality of at least 0.9", "quality",
          Requirement.RESEARCH_QUALITY, 10, Rarity.RARE, "quality_researcher", min_quality=0.9),
    # Levels
    _rule("level_10", "Experienced Researcher", "Reach level 10", "progress",
          Requirement.LEVEL, 10, Rarity.COMMON, "experienced"),
    _rule("level_25", "Senior Researcher", "Reach level 25", "progress",
          Requirement.LEVEL, 25, Rarity.RARE, "senior_researcher"),
]


def load_rules(path: Path = None) -> list[AchievementRule]:
    """Rules from achievements.yaml if present, else the built-in set."""
    data = load_yaml(path or ACHIEVEMENTS_FILE)
    raw = data.get("achievements")
    if not raw:
        return list(DEFAULT_RULES)
    rules = [AchievementRule.model_validate(r) for r in raw]
    ids = [r.achievement_id for r in rules]
    if len(ids) != len(set(ids)):
        raise ValueError("Duplicate achievement_id in achievement rules")
    return rules


class AchievementEvaluator:
    """Checks every locked rule against a snapshot and unlocks the satisfied ones."""

    def __init__(
        self,
        tracker: ProgressionTracker,
        events: EventBus,
        rules: Optional[list[AchievementRule]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._tracker = tracker
        self._events = events
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        self._clock = clock

    def pending_rules(self, snapshot: UserProgress) -> list[AchievementRule]:
        """Rules satisfied by the snapshot but not yet unlocked."""
        return [
            r for r in self.rules
            if not snapshot.has_achievement(r.achievement_id) and r.is_satisfied(snapshot)
        ]

    def evaluate(self, snapshot: UserProgress) -> list[AchievementUnlocked]:
        """Unlock newly satisfied rules. Returns the events this call emitted."""
        unlocked = []
        for rule in self.pending_rules(snapshot):
            inserted, _ = self._tracker.insert_achievement(snapshot.user_id, rule.achievement_id)
            if not inserted:
                continue  # Someone else got there first
            event = AchievementUnlocked(
                user_id=snapshot.user_id,
                achievement_id=rule.achievement_id,
                occurred_at=self._clock(),
            )
            print(f"[Achievements] {snapshot.user_id} unlocked {rule.achievement_id}")
            self._events.publish(event)
            unlocked.append(event)
        return unlocked

    def progress(self, snapshot: UserProgress, include_hidden: bool = False) -> list[AchievementProgress]:
        return [
            AchievementProgress.for_rule(r, snapshot)
            for r in self.rules
            if include_hidden or not r.hidden or snapshot.has_achievement(r.achievement_id)
        ]

    def get_rule(self, achievement_id: str) -> Optional[AchievementRule]:
        for r in self.rules:
            if r.achievement_id == achievement_id:
                return r
        return None
