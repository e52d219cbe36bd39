"""
Contribution validation - is this submission acceptable, and what did it score on?

Checks, in order:
1. The problem exists and is active        -> UnknownOrInactiveProblem
2. The payload has the problem's shape     -> MalformedSolution
3. No open contribution for (user, problem) -> DuplicateSubmission

Then extracts the metrics the problem's criteria reference. Values outside
a criterion's declared range are clamped and the clamp is recorded.
Nothing here writes to storage.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError

from errors import MalformedSolution, DuplicateSubmission
from models import (
    Problem,
    ProblemType,
    ClampRecord,
    AlignmentSolution,
    OPEN_STATUSES,
    parse_solution,
)
from repositories.base import Repository
from .catalog import ProblemCatalog


# Metrics the validator derives from answers; anything else must be reported
COMPUTED_METRICS = {
    "accuracy",
    "coverage",
    "calibration",
    "consistency",
}
ALIGNMENT_METRICS = {"value_agreement"}


@dataclass
class ValidationOutcome:
    """Everything scoring needs from an accepted submission."""
    problem: Problem
    solution: object
    metrics: dict[str, float] = field(default_factory=dict)
    clamped: list[ClampRecord] = field(default_factory=list)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def error_path(error: ValidationError) -> Optional[str]:
    errors = error.errors()
    if not errors:
        return None
    loc = [str(part) for part in errors[0].get("loc", ())]
    return ".".join(loc) or None


def computable_metrics(problem_type: ProblemType) -> set[str]:
    if problem_type == ProblemType.ALIGNMENT:
        return COMPUTED_METRICS | ALIGNMENT_METRICS
    return set(COMPUTED_METRICS)


def extract_metrics(problem: Problem, solution) -> dict[str, float]:
    """
    Compute raw answer metrics against the problem's answer key.

    The first answer given for a scenario is the one graded.
    """
    responses = solution.responses()
    key = problem.answer_key

    first: dict[str, object] = {}
    answers_by_scenario: dict[str, set[str]] = {}
    for r in responses:
        first.setdefault(r.scenario_id, r)
        answers_by_scenario.setdefault(r.scenario_id, set()).add(r.answer)

    metrics: dict[str, float] = {}

    if key:
        answered = [sid for sid in key if sid in first]
        correct = [sid for sid in answered if first[sid].answer == key[sid]]
        metrics["accuracy"] = len(correct) / len(key)
        metrics["coverage"] = len(answered) / len(key)
    else:
        metrics["accuracy"] = 0.0
        metrics["coverage"] = 0.0

    # Confidence should be high when right and low when wrong
    graded = [r for r in first.values() if r.scenario_id in key]
    if graded:
        total = 0.0
        for r in graded:
            c = _clamp01(r.confidence)
            total += c if r.answer == key[r.scenario_id] else 1.0 - c
        metrics["calibration"] = total / len(graded)
    else:
        metrics["calibration"] = 0.0

    conflicting = sum(1 for answers in answers_by_scenario.values() if len(answers) > 1)
    metrics["consistency"] = 1.0 - conflicting / len(answers_by_scenario)

    if isinstance(solution, AlignmentSolution):
        metrics["value_agreement"] = _value_agreement(problem, solution)

    return metrics


def _value_agreement(problem: Problem, solution: AlignmentSolution) -> float:
    """1 - mean absolute gap between the user's value ratings and the reference."""
    reference = problem.reference_values
    if not reference:
        return 0.0
    gaps = []
    for choice in solution.choices:
        for name, ref in reference.items():
            rating = _clamp01(choice.value_ratings.get(name, 0.0))
            gaps.append(abs(rating - _clamp01(ref)))
    if not gaps:
        return 0.0
    return 1.0 - sum(gaps) / len(gaps)


class ContributionValidator:
    """Pure validation over the catalogue and the submitted payload."""

    def __init__(self, repo: Repository, catalog: Optional[ProblemCatalog] = None):
        self._repo = repo
        self._catalog = catalog or ProblemCatalog(repo)

    def validate(self, user_id: str, problem_id: str, payload) -> ValidationOutcome:
        problem = self._catalog.get_active_problem(problem_id)
        solution = self._parse(problem, payload)
        self._check_duplicate(user_id, problem_id)

        raw = extract_metrics(problem, solution)
        metrics, clamped = self._select_and_clamp(problem, solution, raw)
        return ValidationOutcome(problem=problem, solution=solution, metrics=metrics, clamped=clamped)

    def _parse(self, problem: Problem, payload):
        if isinstance(payload, dict) and "problem_type" not in payload:
            # The problem knows its own type - callers may omit the tag
            payload = {**payload, "problem_type": problem.problem_type.value}
        try:
            solution = parse_solution(payload)
        except ValidationError as e:
            field_path = error_path(e)
            raise MalformedSolution(f"Solution does not match expected shape: {field_path}", field=field_path)

        if solution.problem_type != problem.problem_type.value:
            raise MalformedSolution(
                f"{solution.problem_type} solution submitted to a {problem.problem_type.value} problem",
                field="problem_type",
            )

        computed = computable_metrics(problem.problem_type)
        for criterion in problem.criteria:
            if criterion.metric not in computed and criterion.metric not in solution.reported_metrics:
                raise MalformedSolution(
                    f"Missing reported metric: {criterion.metric}",
                    field=f"reported_metrics.{criterion.metric}",
                )
        return solution

    def _check_duplicate(self, user_id: str, problem_id: str) -> None:
        existing = self._repo.contributions.find_existing(user_id, problem_id)
        if existing is not None and existing.status in OPEN_STATUSES:
            raise DuplicateSubmission(user_id, problem_id, existing.contribution_id)

    def _select_and_clamp(self, problem: Problem, solution, raw: dict[str, float]):
        metrics: dict[str, float] = {}
        clamped: list[ClampRecord] = []
        for criterion in problem.criteria:
            # Computed metrics win over anything the client reports under the same name
            value = raw.get(criterion.metric, solution.reported_metrics.get(criterion.metric))
            bounded = criterion.clamp(value)
            if bounded != value:
                clamped.append(ClampRecord(metric=criterion.metric, raw=value, clamped=bounded))
            metrics[criterion.metric] = bounded
        return metrics, clamped
