"""
Root test configuration.

Test organization:
- unit/        Fast, isolated, in-memory backend only
- integration/ Component boundaries: JSON files in temp dirs, Flask client, threads

Run specific levels:
    pytest tests/unit -v           # Fast feedback loop
    pytest tests/integration -v    # Before commit
    pytest tests -v                # Everything
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from config import PipelineSettings
from models import Problem
from pipeline import ContributionPipeline, EventBus, EventLog
from repositories import MemoryRepository


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast isolated tests")
    config.addinivalue_line("markers", "integration: Component boundary tests")
    config.addinivalue_line("markers", "slow: Tests that take > 1s")


class FakeClock:
    """Manually advanced clock so streak windows are deterministic."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def build_problem(problem_id: str = "bias-001", **overrides) -> Problem:
    """A bias-detection problem with a four-scenario answer key."""
    data = {
        "problem_id": problem_id,
        "problem_type": "bias_detection",
        "title": "Position bias",
        "difficulty": 5,
        "quality_threshold": 0.7,
        "criteria": [{"metric": "accuracy", "threshold": 1.0}],
        "answer_key": {"s1": "a", "s2": "b", "s3": "a", "s4": "b"},
    }
    data.update(overrides)
    return Problem.model_validate(data)


def build_bias_payload(answers: dict, confidence: float = 0.9, **extra) -> dict:
    """Bias-detection payload from {scenario_id: selected_option}."""
    return {
        "problem_type": "bias_detection",
        "answers": [
            {"scenario_id": sid, "selected_option": opt, "confidence": confidence}
            for sid, opt in answers.items()
        ],
        **extra,
    }


PERFECT_BIAS = {"s1": "a", "s2": "b", "s3": "a", "s4": "b"}


@pytest.fixture
def make_problem():
    """Factory for bias-detection problems: make_problem(id, **overrides)."""
    return build_problem


@pytest.fixture
def bias_payload():
    """Factory for bias-detection payloads: bias_payload({sid: option}, confidence)."""
    return build_bias_payload


@pytest.fixture
def perfect_answers():
    """Answers matching the default answer key."""
    return dict(PERFECT_BIAS)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 15, 12, 0, 0))


@pytest.fixture
def settings():
    return PipelineSettings()


@pytest.fixture
def repo():
    return MemoryRepository()


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def pipeline(repo, settings, clock, event_log):
    """Pipeline over an in-memory repo with one bias problem loaded."""
    bus = EventBus()
    bus.subscribe(event_log)
    repo.problems.save(build_problem())
    return ContributionPipeline(repo, settings=settings, events=bus, clock=clock)
