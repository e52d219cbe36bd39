"""
Progression - apply a scored contribution to the owner's UserProgress.

All writes are optimistic: read the current version, build the next state,
compare-and-swap. On a version mismatch re-read and try again, up to
max_cas_retries, then raise ProgressionConflict. No lock is held between
the read and the swap.
"""

from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from config import PipelineSettings
from errors import ProgressionConflict
from models import Contribution, Problem, UserProgress, ValidationStatus
from repositories.base import Repository


@dataclass
class ProgressUpdate:
    """Before/after snapshot of one applied contribution."""
    before: UserProgress
    after: UserProgress
    applied: bool  # False if this contribution had already been applied

    @property
    def leveled_up(self) -> bool:
        return self.after.level > self.before.level


def level_for_experience(experience: int, breakpoints: list[int]) -> int:
    """Step function: level 1 at breakpoints[0], +1 per breakpoint reached."""
    return max(1, bisect_right(breakpoints, experience))


def next_streak(progress: UserProgress, at: datetime, window: timedelta) -> int:
    """
    Streak after a validated contribution at `at`.

    Concurrent submissions can be applied out of order, so the gap is
    measured in either direction.
    """
    last = progress.last_validated_at
    if last is not None and abs(at - last) <= window:
        return progress.current_streak + 1
    return 1


def ewma(old: float, sample: float, alpha: float) -> float:
    return old + alpha * (sample - old)


class ProgressionTracker:
    """Owns every write to UserProgress except achievement inserts."""

    def __init__(
        self,
        repo: Repository,
        settings: Optional[PipelineSettings] = None,
        on_conflict: Optional[Callable[[str], None]] = None,
    ):
        self._repo = repo
        self.settings = settings or PipelineSettings()
        self._on_conflict = on_conflict

    def apply(self, contribution: Contribution, problem: Problem) -> ProgressUpdate:
        """Apply a Validated contribution. Idempotent per contribution id."""
        if contribution.status != ValidationStatus.VALIDATED:
            raise ValueError(f"Only validated contributions progress a user (got {contribution.status.value})")

        def build(current: UserProgress) -> Optional[UserProgress]:
            if current.has_applied(contribution.contribution_id):
                return None
            return self._advance(current, contribution, problem)

        return self._swap(contribution.user_id, build)

    def touch(self, user_id: str, at: Optional[datetime] = None) -> ProgressUpdate:
        """Rejected contributions only refresh last_activity."""
        at = at or datetime.now()

        def build(current: UserProgress) -> Optional[UserProgress]:
            if current.last_activity is not None and current.last_activity >= at:
                return None
            return current.next_version(last_activity=at)

        return self._swap(user_id, build)

    def insert_achievement(self, user_id: str, achievement_id: str) -> tuple[bool, UserProgress]:
        """
        Insert-if-absent on the unlocked set, over the same CAS loop.

        Returns (inserted, latest state). Only one racer ever sees True.
        """
        def build(current: UserProgress) -> Optional[UserProgress]:
            if current.has_achievement(achievement_id):
                return None
            return current.with_achievement(achievement_id)

        update = self._swap(user_id, build)
        return update.applied, update.after

    def _advance(self, current: UserProgress, contribution: Contribution, problem: Problem) -> UserProgress:
        s = self.settings
        at = contribution.validated_at or datetime.now()

        experience = current.experience + s.xp_per_difficulty * problem.difficulty
        level = max(current.level, level_for_experience(experience, s.level_breakpoints))

        streak = next_streak(current, at, timedelta(hours=s.streak_window_hours))
        best = max(current.best_streak, streak)

        category = problem.problem_type.value
        proficiency = dict(current.skill_proficiency)
        quality = contribution.quality_score or 0.0
        proficiency[category] = round(ewma(current.proficiency(category), quality, s.proficiency_alpha), 6)

        completed = list(current.completed_challenges)
        if problem.problem_id not in completed:
            completed.append(problem.problem_id)

        # Streaks measure from the latest validation, not from a late-arriving older one
        last_validated = at if current.last_validated_at is None else max(current.last_validated_at, at)
        last_activity = at if current.last_activity is None else max(current.last_activity, at)

        return current.next_version(
            lifetime_score=current.lifetime_score + contribution.points_awarded,
            experience=experience,
            level=level,
            current_streak=streak,
            best_streak=best,
            skill_proficiency=proficiency,
            completed_challenges=completed,
            validated_contributions=current.validated_contributions + 1,
            quality_scores=[*current.quality_scores, quality],
            applied_contributions=[*current.applied_contributions, contribution.contribution_id],
            last_validated_at=last_validated,
            last_activity=last_activity,
        )

    def _swap(self, user_id: str, build: Callable[[UserProgress], Optional[UserProgress]]) -> ProgressUpdate:
        attempts = 0
        while attempts < self.settings.max_cas_retries:
            attempts += 1
            current = self._repo.progress.get(user_id)
            new_state = build(current)
            if new_state is None:
                return ProgressUpdate(before=current, after=current, applied=False)
            if self._repo.progress.compare_and_swap(user_id, current.version, new_state):
                return ProgressUpdate(before=current, after=new_state, applied=True)
            if self._on_conflict:
                self._on_conflict(user_id)
            print(f"[Progression] Version conflict for {user_id} (attempt {attempts})")

        raise ProgressionConflict(user_id, attempts)
