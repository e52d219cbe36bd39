"""
JSON file backend - stores data as JSON/JSONL files.

Directory structure:
    {data_dir}/
        problems/{problem_id}.json          - Problem catalogue
        contributions/{contribution_id}.json
        progress/{user_id}.json             - UserProgress (versioned)
        ledger/{counter_key}.jsonl          - Counter increments (append-only)

Every read-check-write sequence runs under one process-wide lock, so
compare-and-swap and insert-if-absent are atomic within a process.
"""

from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError

from config import DATA_DIR
from errors import ConflictError, StorageUnavailable
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


class WriteQueue:
    """Thread-safe write serialization."""

    def __init__(self):
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self):
        """Hold the write lock across a read-check-write sequence."""
        with self._lock:
            yield

    def write_json(self, path: Path, data: dict) -> None:
        """Atomic JSON write."""
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                temp = path.with_suffix(".json.tmp")
                with open(temp, "w") as f:
                    json.dump(data, f, indent=2, default=str)
                temp.replace(path)
            except OSError as e:
                raise StorageUnavailable(f"Write failed for {path}: {e}")

    def append_jsonl(self, path: Path, data: dict) -> None:
        """Append to JSONL file."""
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "a") as f:
                    f.write(json.dumps(data, default=str) + "\n")
            except OSError as e:
                raise StorageUnavailable(f"Append failed for {path}: {e}")


_write_queue = WriteQueue()


def _filename(id: str) -> str:
    """Reversible, filesystem-safe name for an id."""
    return quote(id, safe="")


def _read_json(path: Path) -> Optional[dict]:
    if not path.exists():
        return None
    try:
        with open(path) as f:
            return json.load(f)
    except OSError as e:
        raise StorageUnavailable(f"Read failed for {path}: {e}")


class JsonProblemRepository(ProblemRepository):
    """JSON file implementation of the problem catalogue."""

    def __init__(self, base_path: Path = None):
        self._dir = (base_path or DATA_DIR) / "problems"

    def _file(self, id: str) -> Path:
        return self._dir / f"{_filename(id)}.json"

    def get(self, id: str) -> Optional[Problem]:
        try:
            data = _read_json(self._file(id))
        except json.JSONDecodeError as e:
            print(f"[WARN] Corrupt problem file for {id}: {e}")
            return None
        if data is None:
            return None
        try:
            return Problem.model_validate(data)
        except ValidationError as e:
            print(f"[WARN] Invalid problem file for {id}: {e.error_count()} errors")
            return None

    def save(self, entity: Problem) -> None:
        entity.touch()
        _write_queue.write_json(self._file(entity.problem_id), entity.model_dump(mode="json"))

    def delete(self, id: str) -> bool:
        path = self._file(id)
        with _write_queue.transaction():
            if not path.exists():
                return False
            path.unlink()
            return True

    def list(self) -> list[Problem]:
        if not self._dir.exists():
            return []
        problems = []
        for path in sorted(self._dir.glob("*.json")):
            problem = self.get(unquote(path.stem))
            if problem:
                problems.append(problem)
        return problems

    def exists(self, id: str) -> bool:
        return self._file(id).exists()


class JsonContributionRepository(ContributionRepository):
    """JSON file implementation of contribution storage."""

    def __init__(self, base_path: Path = None):
        self._dir = (base_path or DATA_DIR) / "contributions"

    def _file(self, id: str) -> Path:
        return self._dir / f"{_filename(id)}.json"

    def _load(self, path: Path) -> Optional[Contribution]:
        try:
            data = _read_json(path)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"Corrupt contribution file {path.name}: {e}")
        if data is None:
            return None
        try:
            return Contribution.model_validate(data)
        except ValidationError as e:
            raise StorageUnavailable(f"Unreadable contribution {path.name}: {e}")

    def _all(self) -> list[Contribution]:
        if not self._dir.exists():
            return []
        items = []
        for path in self._dir.glob("*.json"):
            c = self._load(path)
            if c:
                items.append(c)
        return sorted(items, key=lambda c: c.submitted_at, reverse=True)

    def get(self, id: str) -> Optional[Contribution]:
        return self._load(self._file(id))

    def save(self, entity: Contribution) -> None:
        raise NotImplementedError("Use persist or finalize")

    def delete(self, id: str) -> bool:
        path = self._file(id)
        with _write_queue.transaction():
            if not path.exists():
                return False
            path.unlink()
            return True

    def list(self) -> list[Contribution]:
        return self._all()

    def exists(self, id: str) -> bool:
        return self._file(id).exists()

    def persist(self, contribution: Contribution) -> None:
        with _write_queue.transaction():
            if self.exists(contribution.contribution_id):
                raise ConflictError(f"Contribution id {contribution.contribution_id} already exists")
            for c in self.for_user(contribution.user_id):
                if c.problem_id == contribution.problem_id and c.status in OPEN_STATUSES:
                    raise ConflictError(
                        f"Open contribution {c.contribution_id} exists for this user and problem",
                        existing_contribution_id=c.contribution_id,
                    )
            _write_queue.write_json(
                self._file(contribution.contribution_id),
                contribution.model_dump(mode="json"),
            )

    def finalize(self, contribution: Contribution) -> bool:
        with _write_queue.transaction():
            stored = self.get(contribution.contribution_id)
            if stored is None or stored.is_resolved:
                return False
            _write_queue.write_json(
                self._file(contribution.contribution_id),
                contribution.model_dump(mode="json"),
            )
            return True

    def find_existing(self, user_id: str, problem_id: str) -> Optional[Contribution]:
        matches = [c for c in self.for_user(user_id) if c.problem_id == problem_id]
        for c in matches:
            if c.status in OPEN_STATUSES:
                return c
        return matches[0] if matches else None

    def for_user(self, user_id: str) -> list[Contribution]:
        return [c for c in self._all() if c.user_id == user_id]

    def for_problem(self, problem_id: str, status: Optional[ValidationStatus] = None) -> list[Contribution]:
        return [
            c for c in self._all()
            if c.problem_id == problem_id and (status is None or c.status == status)
        ]


class JsonProgressRepository(ProgressRepository):
    """JSON file implementation of versioned user progress."""

    def __init__(self, base_path: Path = None):
        self._dir = (base_path or DATA_DIR) / "progress"

    def _file(self, user_id: str) -> Path:
        return self._dir / f"{_filename(user_id)}.json"

    def get(self, user_id: str) -> UserProgress:
        try:
            data = _read_json(self._file(user_id))
        except json.JSONDecodeError as e:
            # Never silently reset someone's progress
            raise StorageUnavailable(f"Corrupt progress file for {user_id}: {e}")
        if data is None:
            return UserProgress(user_id=user_id)
        try:
            return UserProgress.model_validate(data)
        except ValidationError as e:
            raise StorageUnavailable(f"Unreadable progress for {user_id}: {e}")

    def compare_and_swap(self, user_id: str, expected_version: int, new_state: UserProgress) -> bool:
        with _write_queue.transaction():
            if self.get(user_id).version != expected_version:
                return False
            _write_queue.write_json(self._file(user_id), new_state.model_dump(mode="json"))
            return True

    def list(self) -> list[UserProgress]:
        if not self._dir.exists():
            return []
        return [self.get(unquote(path.stem)) for path in sorted(self._dir.glob("*.json"))]


class JsonCounterRepository(CounterRepository):
    """
    Counters as append-only JSONL ledgers.

    A counter's value is the ledger reduced over distinct contribution ids,
    so even a duplicated line can't double count.
    """

    def __init__(self, base_path: Path = None):
        self._dir = (base_path or DATA_DIR) / "ledger"

    def _file(self, key: str) -> Path:
        return self._dir / f"{_filename(key)}.jsonl"

    def _entries(self, path: Path) -> dict[str, int]:
        entries: dict[str, int] = {}
        if not path.exists():
            return entries
        try:
            with open(path) as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError as e:
                        print(f"[WARN] Corrupt line {line_num} in {path.name}: {e}")
                        continue
                    try:
                        entries.setdefault(data["contribution_id"], int(data["amount"]))
                    except (KeyError, TypeError, ValueError) as e:
                        print(f"[WARN] Bad entry on line {line_num} in {path.name}: {e!r}")
        except OSError as e:
            raise StorageUnavailable(f"Read failed for {path}: {e}")
        return entries

    def increment(self, key: str, contribution_id: str, amount: int = 1) -> bool:
        path = self._file(key)
        with _write_queue.transaction():
            if contribution_id in self._entries(path):
                return False
            _write_queue.append_jsonl(path, {"contribution_id": contribution_id, "amount": amount})
            return True

    def value(self, key: str) -> int:
        return sum(self._entries(self._file(key)).values())

    def values(self, prefix: str) -> dict[str, int]:
        if not self._dir.exists():
            return {}
        totals = {}
        for path in self._dir.glob("*.jsonl"):
            key = unquote(path.stem)
            if key.startswith(prefix):
                totals[key[len(prefix):]] = sum(self._entries(path).values())
        return totals


class JsonRepository(Repository):
    """JSON file backend implementation."""

    def __init__(self, base_path: Path = None):
        self._base_path = base_path or DATA_DIR
        self._problems = JsonProblemRepository(self._base_path)
        self._contributions = JsonContributionRepository(self._base_path)
        self._progress = JsonProgressRepository(self._base_path)
        self._counters = JsonCounterRepository(self._base_path)

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
