"""
ContributionPipeline - SubmitSolution end to end.

    validate -> persist Pending -> count -> score -> progress -> achievements
             -> finalize status -> leaderboard -> ContributionValidated

Validator refusals persist nothing. Any later failure leaves the
contribution Pending with nothing partially applied that a rerun can't
finish: progression is idempotent per contribution id and achievements are
insert-if-absent, so `reprocess()` completes it. Once a contribution is
resolved, reprocessing it is a no-op.
"""

import uuid
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from config import PipelineSettings
from errors import (
    PipelineError,
    MalformedSolution,
    DuplicateSubmission,
    ConflictError,
    InvalidQuery,
    ContributionNotFound,
    ProgressionConflict,
    UnknownOrInactiveProblem,
)
from models import (
    Contribution,
    ContributionResult,
    ContributionStats,
    ContributionValidated,
    PipelineStats,
    Problem,
    SubmissionMetadata,
    UserProgress,
    AchievementProgress,
    ValidationStatus,
)
from repositories.base import Repository
from .achievements import AchievementEvaluator
from .aggregation import AggregationService
from .catalog import ProblemCatalog
from .events import EventBus
from .progression import ProgressionTracker
from .scoring import ScoringEngine
from .validator import ContributionValidator, error_path


def new_contribution_id() -> str:
    return f"contrib_{uuid.uuid4().hex}"


def _check_page(**params: int) -> None:
    for name, value in params.items():
        if value < 0:
            raise InvalidQuery(f"{name} must not be negative (got {value})", field=name)


class ContributionPipeline:
    """
    The one entry point the game/session layer calls.

    Stateless apart from stats; safe to share across worker threads.
    """

    def __init__(
        self,
        repo: Repository,
        settings: Optional[PipelineSettings] = None,
        events: Optional[EventBus] = None,
        rules: Optional[list] = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = new_contribution_id,
    ):
        self.repo = repo
        self.settings = settings or PipelineSettings()
        self.events = events or EventBus()
        self.stats = PipelineStats()
        self._clock = clock
        self._new_id = id_factory

        self.catalog = ProblemCatalog(repo)
        self.validator = ContributionValidator(repo, self.catalog)
        self.scoring = ScoringEngine(self.settings)
        self.tracker = ProgressionTracker(repo, self.settings, on_conflict=lambda _: self.stats.record_conflict())
        self.achievements = AchievementEvaluator(self.tracker, self.events, rules, clock=clock)
        self.aggregation = AggregationService(repo)

    # === Write path ===

    def submit_solution(
        self,
        user_id: str,
        problem_id: str,
        payload,
        metadata=None,
    ) -> ContributionResult:
        """Validate, score and apply one submission."""
        self.stats.record_submission()
        try:
            outcome = self.validator.validate(user_id, problem_id, payload)
            meta = self._parse_metadata(metadata)
        except (UnknownOrInactiveProblem, MalformedSolution, DuplicateSubmission) as e:
            self.stats.record_refusal()
            print(f"[Pipeline] Refused {user_id} -> {problem_id}: {e.code}")
            raise

        contribution = Contribution(
            contribution_id=self._new_id(),
            user_id=user_id,
            problem_id=problem_id,
            problem_type=outcome.problem.problem_type,
            solution=outcome.solution,
            metadata=meta,
            metrics=outcome.metrics,
            clamped=outcome.clamped,
            submitted_at=self._clock(),
        )
        for record in outcome.clamped:
            print(f"[Pipeline] Clamped {record.metric} {record.raw} -> {record.clamped} ({contribution.contribution_id})")

        try:
            self.repo.contributions.persist(contribution)
        except ConflictError as e:
            # Lost a race with a concurrent submission for the same problem
            self.stats.record_refusal()
            raise DuplicateSubmission(user_id, problem_id, e.details.get("existing_contribution_id"))

        return self._run(lambda: self._complete(contribution, outcome.problem))

    def reprocess(self, contribution_id: str) -> ContributionResult:
        """Finish a contribution left Pending by a retryable failure. No-op once resolved."""
        contribution = self.repo.contributions.get(contribution_id)
        if contribution is None:
            raise ContributionNotFound(contribution_id)
        if contribution.is_resolved:
            return ContributionResult.from_contribution(contribution)

        # Accepted while active - deactivation since then doesn't undo that
        problem = self.catalog.get(contribution.problem_id)
        if problem is None:
            raise UnknownOrInactiveProblem(contribution.problem_id)
        return self._run(lambda: self._complete(contribution, problem))

    def _run(self, step: Callable[[], ContributionResult]) -> ContributionResult:
        try:
            return step()
        except ProgressionConflict:
            raise
        except PipelineError as e:
            self.stats.record_error(e.message)
            print(f"[Pipeline] Error: {e.code}: {e.message}")
            raise

    def _complete(self, contribution: Contribution, problem: Problem) -> ContributionResult:
        self.aggregation.record_submission(contribution)

        card = self.scoring.score(problem, contribution.metrics, contribution.metadata)
        resolved = contribution.resolve(
            status=card.status,
            quality_score=card.quality_score,
            confidence_score=card.confidence_score,
            points_awarded=card.points_awarded,
            rejection_reason=card.rejection_reason,
            failed_criteria=card.failed_criteria,
            at=self._clock(),
        )

        unlocked = []
        if card.validated:
            update = self.tracker.apply(resolved, problem)
            unlocked = self.achievements.evaluate(update.after)
        else:
            self.tracker.touch(resolved.user_id, resolved.validated_at)

        if not self.repo.contributions.finalize(resolved):
            # A concurrent reprocess finished first - report what it stored
            stored = self.repo.contributions.get(resolved.contribution_id)
            if stored is None:
                raise ContributionNotFound(resolved.contribution_id)
            return ContributionResult.from_contribution(stored, [e.achievement_id for e in unlocked])

        self.aggregation.record_resolution(resolved)
        self.stats.record_outcome(card.validated)
        self.events.publish(ContributionValidated(
            contribution_id=resolved.contribution_id,
            user_id=resolved.user_id,
            problem_id=resolved.problem_id,
            status=resolved.status,
            quality_score=resolved.quality_score,
            confidence_score=resolved.confidence_score,
            points_awarded=resolved.points_awarded,
            occurred_at=resolved.validated_at,
        ))
        print(
            f"[Pipeline] {resolved.contribution_id} {resolved.status.value} "
            f"q={resolved.quality_score} c={resolved.confidence_score} pts={resolved.points_awarded}"
        )
        return ContributionResult.from_contribution(resolved, [e.achievement_id for e in unlocked])

    def _parse_metadata(self, metadata) -> SubmissionMetadata:
        if metadata is None:
            return SubmissionMetadata()
        if isinstance(metadata, SubmissionMetadata):
            return metadata
        try:
            return SubmissionMetadata.model_validate(metadata)
        except ValidationError as e:
            path = error_path(e)
            raise MalformedSolution(f"Submission metadata is malformed: {path}", field=f"metadata.{path}")

    # === Read path ===

    def get_contribution(self, contribution_id: str) -> Contribution:
        contribution = self.repo.contributions.get(contribution_id)
        if contribution is None:
            raise ContributionNotFound(contribution_id)
        return contribution

    def get_progress(self, user_id: str) -> UserProgress:
        return self.repo.progress.get(user_id)

    def user_contributions(self, user_id: str, limit: int = 50, offset: int = 0) -> list[Contribution]:
        _check_page(limit=limit, offset=offset)
        return self.repo.contributions.for_user(user_id)[offset:offset + limit]

    def problem_contributions(
        self,
        problem_id: str,
        status: Optional[ValidationStatus] = None,
        limit: int = 100,
    ) -> list[Contribution]:
        _check_page(limit=limit)
        return self.repo.contributions.for_problem(problem_id, status)[:limit]

    def contribution_stats(self, user_id: str) -> ContributionStats:
        return ContributionStats.from_contributions(self.repo.contributions.for_user(user_id))

    def achievement_progress(self, user_id: str) -> list[AchievementProgress]:
        return self.achievements.progress(self.get_progress(user_id))

    def leaderboard(self, limit: int = 10) -> list[dict]:
        _check_page(limit=limit)
        return self.aggregation.leaderboard(limit)
