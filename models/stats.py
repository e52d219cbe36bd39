"""
Stats models - pipeline health counters and per-user contribution summaries.
"""

import threading
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, PrivateAttr


class PipelineStats(BaseModel):
    """
    Counters for the submission pipeline.

    Refused = stopped by the validator (unknown problem, malformed,
    duplicate); rejected = scored below the quality threshold.
    """
    submissions: int = 0
    validated: int = 0
    rejected: int = 0
    refused: int = 0
    conflicts: int = 0
    errors: int = 0

    last_submission: Optional[datetime] = None
    last_error: Optional[datetime] = None
    last_error_message: Optional[str] = None

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def record_submission(self) -> None:
        with self._lock:
            self.submissions += 1
            self.last_submission = datetime.now()

    def record_outcome(self, validated: bool) -> None:
        with self._lock:
            if validated:
                self.validated += 1
            else:
                self.rejected += 1

    def record_refusal(self) -> None:
        with self._lock:
            self.refused += 1

    def record_conflict(self) -> None:
        with self._lock:
            self.conflicts += 1

    def record_error(self, message: str = None) -> None:
        """Record an error."""
        with self._lock:
            self.errors += 1
            self.last_error = datetime.now()
            self.last_error_message = message

    @property
    def acceptance_rate(self) -> float:
        """Share of scored contributions that validated."""
        scored = self.validated + self.rejected
        if scored == 0:
            return 0.0
        return self.validated / scored

    @property
    def is_healthy(self) -> bool:
        """Healthy unless most recent work is failing."""
        if self.submissions < 3:
            return True  # Not enough data
        return self.errors / self.submissions < 0.5

    def to_dict(self) -> dict:
        """Export for API responses."""
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> dict:
        return {
            "submissions": self.submissions,
            "validated": self.validated,
            "rejected": self.rejected,
            "refused": self.refused,
            "conflicts": self.conflicts,
            "errors": self.errors,
            "acceptance_rate": round(self.acceptance_rate, 4),
            "last_error": self.last_error_message,
            "healthy": self.is_healthy,
        }


class ContributionStats(BaseModel):
    """Summary of one user's contributions."""
    total_contributions: int = 0
    validated_contributions: int = 0
    pending_contributions: int = 0
    rejected_contributions: int = 0
    total_points: int = 0
    average_quality_score: float = 0.0
    contributions_by_type: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_contributions(cls, contributions: list) -> "ContributionStats":
        stats = cls(total_contributions=len(contributions))
        scored = []
        for c in contributions:
            status = c.status.value
            if status == "validated":
                stats.validated_contributions += 1
            elif status == "pending":
                stats.pending_contributions += 1
            else:
                stats.rejected_contributions += 1
            stats.total_points += c.points_awarded
            if c.quality_score is not None:
                scored.append(c.quality_score)
            key = c.problem_type.value
            stats.contributions_by_type[key] = stats.contributions_by_type.get(key, 0) + 1
        if scored:
            stats.average_quality_score = round(sum(scored) / len(scored), 4)
        return stats
