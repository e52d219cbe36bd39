"""
Repository base classes - define the storage contracts the pipeline consumes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional

from models import Problem, Contribution, UserProgress, ValidationStatus

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Abstract base for entity repositories."""

    @abstractmethod
    def get(self, id: str) -> Optional[T]:
        """Get entity by ID."""
        pass

    @abstractmethod
    def save(self, entity: T) -> None:
        """Save entity."""
        pass

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Delete entity by ID. Returns True if deleted."""
        pass

    @abstractmethod
    def list(self) -> list[T]:
        """List all entities."""
        pass

    @abstractmethod
    def exists(self, id: str) -> bool:
        """Check if entity exists."""
        pass


class ProblemRepository(BaseRepository[Problem]):
    """Repository for the research problem catalogue."""

    def get_active(self, problem_id: str) -> Optional[Problem]:
        """Problem if it exists and is active, else None."""
        problem = self.get(problem_id)
        if problem is None or not problem.active:
            return None
        return problem

    def list_active(self) -> list[Problem]:
        return [p for p in self.list() if p.active]


class ContributionRepository(BaseRepository[Contribution]):
    """
    Repository for contributions.

    `persist` is the only way a contribution is created; `finalize` is the
    only way its status changes. Both are atomic with respect to their
    checks.
    """

    @abstractmethod
    def persist(self, contribution: Contribution) -> None:
        """
        Insert a new Pending contribution.

        Raises ConflictError if the id is taken or the user already has a
        Pending/Validated contribution for the same problem.
        """
        pass

    @abstractmethod
    def finalize(self, contribution: Contribution) -> bool:
        """
        Store a resolved contribution if the stored copy is still Pending.

        Returns False (and writes nothing) if it was already resolved.
        """
        pass

    @abstractmethod
    def find_existing(self, user_id: str, problem_id: str) -> Optional[Contribution]:
        """
        The user's contribution for a problem: the open one (Pending or
        Validated) if any, otherwise the most recent rejected one.
        """
        pass

    @abstractmethod
    def for_user(self, user_id: str) -> list[Contribution]:
        """All contributions by a user, newest first."""
        pass

    @abstractmethod
    def for_problem(self, problem_id: str, status: Optional[ValidationStatus] = None) -> list[Contribution]:
        """Contributions to a problem, newest first, optionally by status."""
        pass


class ProgressRepository(ABC):
    """Repository for UserProgress with optimistic concurrency."""

    @abstractmethod
    def get(self, user_id: str) -> UserProgress:
        """Stored progress, or a fresh version-0 record if none exists."""
        pass

    @abstractmethod
    def compare_and_swap(self, user_id: str, expected_version: int, new_state: UserProgress) -> bool:
        """
        Replace the stored state iff its version still equals expected_version.

        Returns False on version mismatch (nothing written).
        """
        pass

    @abstractmethod
    def list(self) -> list[UserProgress]:
        pass


class CounterRepository(ABC):
    """
    Idempotent counters.

    Each increment is keyed by contribution id; a key counts a given
    contribution at most once no matter how often the increment is replayed.
    """

    @abstractmethod
    def increment(self, key: str, contribution_id: str, amount: int = 1) -> bool:
        """Add `amount` to `key` once per contribution. Returns False on replay."""
        pass

    @abstractmethod
    def value(self, key: str) -> int:
        pass

    @abstractmethod
    def values(self, prefix: str) -> dict[str, int]:
        """All counters whose key starts with prefix (prefix stripped)."""
        pass


class Repository:
    """
    Aggregate repository - provides access to all entity repositories.

    This is what consumers use. Backend implementations provide
    concrete versions of each sub-repository.
    """

    @property
    @abstractmethod
    def problems(self) -> ProblemRepository:
        pass

    @property
    @abstractmethod
    def contributions(self) -> ContributionRepository:
        pass

    @property
    @abstractmethod
    def progress(self) -> ProgressRepository:
        pass

    @property
    @abstractmethod
    def counters(self) -> CounterRepository:
        pass
