"""
Aggregation - problem and leaderboard counters.

Counters are ledgers keyed by contribution id, so redelivering an update
never double counts. Reads may lag writes but never lose a contribution
that reached Pending or Validated.
"""

from typing import Optional

from models import Contribution, ValidationStatus
from repositories.base import Repository
from .catalog import problem_counter_key

USER_POINTS_PREFIX = "user_points:"
USER_VALIDATED_PREFIX = "user_validated:"


class AggregationService:
    """Maintains Problem.total_contributions and leaderboard totals."""

    def __init__(self, repo: Repository):
        self._repo = repo

    def record_submission(self, contribution: Contribution) -> bool:
        """Count a contribution against its problem. Safe to replay."""
        return self._repo.counters.increment(
            problem_counter_key(contribution.problem_id),
            contribution.contribution_id,
        )

    def record_resolution(self, contribution: Contribution) -> bool:
        """Credit a validated contribution's points to the leaderboard. Safe to replay."""
        if contribution.status != ValidationStatus.VALIDATED:
            return False
        counters = self._repo.counters
        credited = counters.increment(
            f"{USER_POINTS_PREFIX}{contribution.user_id}",
            contribution.contribution_id,
            contribution.points_awarded,
        )
        counters.increment(
            f"{USER_VALIDATED_PREFIX}{contribution.user_id}",
            contribution.contribution_id,
        )
        return credited

    def total_contributions(self, problem_id: str) -> int:
        return self._repo.counters.value(problem_counter_key(problem_id))

    def user_points(self, user_id: str) -> int:
        return self._repo.counters.value(f"{USER_POINTS_PREFIX}{user_id}")

    def leaderboard(self, limit: Optional[int] = 10) -> list[dict]:
        """Users by awarded points, highest first. Ties broken by user id."""
        points = self._repo.counters.values(USER_POINTS_PREFIX)
        validated = self._repo.counters.values(USER_VALIDATED_PREFIX)
        ranked = sorted(points.items(), key=lambda item: (-item[1], item[0]))
        if limit is not None:
            ranked = ranked[:limit]
        return [
            {
                "rank": i,
                "user_id": user_id,
                "points": total,
                "validated_contributions": validated.get(user_id, 0),
            }
            for i, (user_id, total) in enumerate(ranked, 1)
        ]
