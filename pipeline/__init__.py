"""
Pipeline - turn submitted solutions into scores, progression and counters.

Modules:
- catalog: Active problem lookup, YAML seeding
- validator: Shape / duplicate checks and metric extraction
- scoring: Bounded, deterministic quality and confidence scores
- progression: Versioned compare-and-swap updates to UserProgress
- achievements: Idempotent rule unlocking
- aggregation: Replay-safe problem and leaderboard counters
- service: ContributionPipeline, the SubmitSolution entry point
"""

from typing import Optional

from .catalog import ProblemCatalog, load_problems, problem_counter_key
from .validator import ContributionValidator, ValidationOutcome, extract_metrics
from .scoring import ScoringEngine, ScoreCard, BELOW_QUALITY_THRESHOLD
from .progression import ProgressionTracker, ProgressUpdate, level_for_experience, next_streak
from .achievements import AchievementEvaluator, DEFAULT_RULES, load_rules
from .aggregation import AggregationService
from .events import EventBus, EventLog
from .service import ContributionPipeline

_instance: Optional[ContributionPipeline] = None


def get_pipeline() -> ContributionPipeline:
    """Process-wide pipeline over the configured repository."""
    global _instance
    if _instance is None:
        from config import get_settings
        from repositories import get_repository

        repo = get_repository()
        load_problems(repo)
        _instance = ContributionPipeline(repo, settings=get_settings(), rules=load_rules())
    return _instance


def reset_pipeline(pipeline: Optional[ContributionPipeline] = None) -> None:
    """Replace (or clear) the process-wide pipeline."""
    global _instance
    _instance = pipeline


__all__ = [
    # catalog
    'ProblemCatalog',
    'load_problems',
    'problem_counter_key',
    # validator
    'ContributionValidator',
    'ValidationOutcome',
    'extract_metrics',
    # scoring
    'ScoringEngine',
    'ScoreCard',
    'BELOW_QUALITY_THRESHOLD',
    # progression
    'ProgressionTracker',
    'ProgressUpdate',
    'level_for_experience',
    'next_streak',
    # achievements
    'AchievementEvaluator',
    'DEFAULT_RULES',
    'load_rules',
    # aggregation
    'AggregationService',
    # events
    'EventBus',
    'EventLog',
    # service
    'ContributionPipeline',
    'get_pipeline',
    'reset_pipeline',
]
