"""
Problem catalogue - read-only lookup of active research problems.
"""

from pathlib import Path
from typing import Optional

from config import PROBLEMS_FILE, load_yaml
from errors import UnknownOrInactiveProblem
from models import Problem
from repositories.base import Repository


class ProblemCatalog:
    """Looks up problems and overlays the live contribution count."""

    def __init__(self, repo: Repository):
        self._repo = repo

    def get_active_problem(self, problem_id: str) -> Problem:
        """Active problem by id. Raises UnknownOrInactiveProblem."""
        problem = self._repo.problems.get_active(problem_id)
        if problem is None:
            raise UnknownOrInactiveProblem(problem_id)
        return self._with_count(problem)

    def get(self, problem_id: str) -> Optional[Problem]:
        """Problem by id regardless of state."""
        problem = self._repo.problems.get(problem_id)
        return self._with_count(problem) if problem else None

    def list_active(self) -> list[Problem]:
        problems = sorted(self._repo.problems.list_active(), key=lambda p: (p.difficulty, p.problem_id))
        return [self._with_count(p) for p in problems]

    def set_active(self, problem_id: str, active: bool) -> Problem:
        return self._update(problem_id, active=active)

    def set_quality_threshold(self, problem_id: str, threshold: float) -> Problem:
        return self._update(problem_id, quality_threshold=threshold)

    def _update(self, problem_id: str, **changes) -> Problem:
        problem = self._repo.problems.get(problem_id)
        if problem is None:
            raise UnknownOrInactiveProblem(problem_id)
        updated = problem.with_updates(**changes)
        self._repo.problems.save(updated)
        return self._with_count(updated)

    def _with_count(self, problem: Problem) -> Problem:
        count = self._repo.counters.value(problem_counter_key(problem.problem_id))
        return problem.model_copy(update={"total_contributions": count})


def problem_counter_key(problem_id: str) -> str:
    return f"problem:{problem_id}"


def load_problems(repo: Repository, path: Path = None) -> int:
    """
    Seed the catalogue from YAML.

    File format:
        problems:
          - problem_id: bias-001
            problem_type: bias_detection
            difficulty: 3
            criteria: [{metric: accuracy, threshold: 0.8}]
            ...

    Problems already in the repository are left alone (published problems
    are immutable). Returns the number added.
    """
    data = load_yaml(path or PROBLEMS_FILE)
    added = 0
    for raw in data.get("problems", []):
        problem = Problem.model_validate(raw)
        if repo.problems.exists(problem.problem_id):
            continue
        repo.problems.save(problem)
        added += 1
    if added:
        print(f"[Catalog] Loaded {added} problems")
    return added
