"""
In-memory backend - thread-safe dicts.

Used by default and by tests. Every stored object is copied on the way in
and on the way out so callers can't mutate shared state by accident.
"""

from __future__ import annotations

import threading
from typing import Optional

from errors import ConflictError
from models import (
    Problem,
    Contribution,
    UserProgress,
    ValidationStatus,
    OPEN_STATUSES,
)
from .base import (
    Repository,
    ProblemRepository,
    ContributionRepository,
    ProgressRepository,
    CounterRepository,
)


def _newest_first(items: list[Contribution]) -> list[Contribution]:
    return sorted(items, key=lambda c: c.submitted_at, reverse=True)


class MemoryProblemRepository(ProblemRepository):

    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, Problem] = {}

    def get(self, id: str) -> Optional[Problem]:
        with self._lock:
            problem = self._items.get(id)
            return problem.model_copy(deep=True) if problem else None

    def save(self, entity: Problem) -> None:
        entity.touch()
        with self._lock:
            self._items[entity.problem_id] = entity.model_copy(deep=True)

    def delete(self, id: str) -> bool:
        with self._lock:
            return self._items.pop(id, None) is not None

    def list(self) -> list[Problem]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._items.values()]

    def exists(self, id: str) -> bool:
        with self._lock:
            return id in self._items


class MemoryContributionRepository(ContributionRepository):

    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, Contribution] = {}

    def get(self, id: str) -> Optional[Contribution]:
        with self._lock:
            c = self._items.get(id)
            return c.model_copy(deep=True) if c else None

    def save(self, entity: Contribution) -> None:
        raise NotImplementedError("Use persist or finalize")

    def delete(self, id: str) -> bool:
        with self._lock:
            return self._items.pop(id, None) is not None

    def list(self) -> list[Contribution]:
        with self._lock:
            return _newest_first([c.model_copy(deep=True) for c in self._items.values()])

    def exists(self, id: str) -> bool:
        with self._lock:
            return id in self._items

    def persist(self, contribution: Contribution) -> None:
        with self._lock:
            if contribution.contribution_id in self._items:
                raise ConflictError(f"Contribution id {contribution.contribution_id} already exists")
            for c in self._items.values():
                if (c.user_id == contribution.user_id
                        and c.problem_id == contribution.problem_id
                        and c.status in OPEN_STATUSES):
                    raise ConflictError(
                        f"Open contribution {c.contribution_id} exists for this user and problem",
                        existing_contribution_id=c.contribution_id,
                    )
            self._items[contribution.contribution_id] = contribution.model_copy(deep=True)

    def finalize(self, contribution: Contribution) -> bool:
        with self._lock:
            stored = self._items.get(contribution.contribution_id)
            if stored is None or stored.is_resolved:
                return False
            self._items[contribution.contribution_id] = contribution.model_copy(deep=True)
            return True

    def find_existing(self, user_id: str, problem_id: str) -> Optional[Contribution]:
        matches = [c for c in self.for_user(user_id) if c.problem_id == problem_id]
        for c in matches:
            if c.status in OPEN_STATUSES:
                return c
        return matches[0] if matches else None

    def for_user(self, user_id: str) -> list[Contribution]:
        with self._lock:
            items = [c.model_copy(deep=True) for c in self._items.values() if c.user_id == user_id]
        return _newest_first(items)

    def for_problem(self, problem_id: str, status: Optional[ValidationStatus] = None) -> list[Contribution]:
        with self._lock:
            items = [
                c.model_copy(deep=True) for c in self._items.values()
                if c.problem_id == problem_id and (status is None or c.status == status)
            ]
        return _newest_first(items)


class MemoryProgressRepository(ProgressRepository):

    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, UserProgress] = {}

    def get(self, user_id: str) -> UserProgress:
        with self._lock:
            stored = self._items.get(user_id)
            return stored.model_copy(deep=True) if stored else UserProgress(user_id=user_id)

    def compare_and_swap(self, user_id: str, expected_version: int, new_state: UserProgress) -> bool:
        with self._lock:
            stored = self._items.get(user_id)
            current_version = stored.version if stored else 0
            if current_version != expected_version:
                return False
            self._items[user_id] = new_state.model_copy(deep=True)
            return True

    def list(self) -> list[UserProgress]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._items.values()]


class MemoryCounterRepository(CounterRepository):

    def __init__(self):
        self._lock = threading.Lock()
        self._ledger: dict[str, dict[str, int]] = {}  # key -> contribution_id -> amount

    def increment(self, key: str, contribution_id: str, amount: int = 1) -> bool:
        with self._lock:
            entries = self._ledger.setdefault(key, {})
            if contribution_id in entries:
                return False
            entries[contribution_id] = amount
            return True

    def value(self, key: str) -> int:
        with self._lock:
            return sum(self._ledger.get(key, {}).values())

    def values(self, prefix: str) -> dict[str, int]:
        with self._lock:
            return {
                key[len(prefix):]: sum(entries.values())
                for key, entries in self._ledger.items()
                if key.startswith(prefix)
            }


class MemoryRepository(Repository):
    """In-memory backend implementation."""

    def __init__(self):
        self._problems = MemoryProblemRepository()
        self._contributions = MemoryContributionRepository()
        self._progress = MemoryProgressRepository()
        self._counters = MemoryCounterRepository()

    @property
    def problems(self) -> ProblemRepository:
        return self._problems

    @property
    def contributions(self) -> ContributionRepository:
        return self._contributions

    @property
    def progress(self) -> ProgressRepository:
        return self._progress

    @property
    def counters(self) -> CounterRepository:
        return self._counters
