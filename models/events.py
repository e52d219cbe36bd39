"""
Events published to the social / analytics / notification layers.

Delivery is at-least-once. Event ids are derived from what happened, not
generated, so a redelivered event carries the same id and consumers can
deduplicate on it.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .contribution import ValidationStatus


class ContributionValidated(BaseModel):
    """A contribution left Pending (validated or rejected)."""
    kind: Literal["contribution_validated"] = "contribution_validated"
    event_id: str = ""
    contribution_id: str
    user_id: str
    problem_id: str
    status: ValidationStatus
    quality_score: Optional[float] = None
    confidence_score: Optional[float] = None
    points_awarded: int = 0
    occurred_at: datetime = Field(default_factory=datetime.now)

    def model_post_init(self, __context) -> None:
        if not self.event_id:
            self.event_id = f"contribution:{self.contribution_id}"


class AchievementUnlocked(BaseModel):
    """First-time unlock of an achievement. Emitted exactly once per (user, achievement)."""
    kind: Literal["achievement_unlocked"] = "achievement_unlocked"
    event_id: str = ""
    user_id: str
    achievement_id: str
    occurred_at: datetime = Field(default_factory=datetime.now)

    def model_post_init(self, __context) -> None:
        if not self.event_id:
            self.event_id = f"achievement:{self.user_id}:{self.achievement_id}"
