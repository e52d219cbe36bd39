"""
Unit test fixtures.

All unit tests should be:
- Fast (< 100ms)
- Isolated (no external dependencies)
- Deterministic (same result every time)
"""

import pytest
from datetime import datetime


@pytest.fixture
def fixed_time():
    """Fixed datetime for deterministic tests."""
    return datetime(2024, 1, 15, 12, 0, 0)


@pytest.fixture
def alignment_problem_data():
    """Raw alignment problem data dict."""
    return {
        "problem_id": "align-001",
        "problem_type": "alignment",
        "difficulty": 6,
        "quality_threshold": 0.75,
        "criteria": [
            {"metric": "accuracy", "threshold": 0.75},
            {"metric": "value_agreement", "threshold": 0.8},
        ],
        "answer_key": {"s1": "opt-2", "s2": "opt-1"},
        "reference_values": {"helpfulness": 0.8, "honesty": 0.9},
    }


@pytest.fixture
def alignment_payload():
    """Raw alignment solution that matches the reference exactly."""
    return {
        "problem_type": "alignment",
        "choices": [
            {"scenario_id": "s1", "option_id": "opt-2", "confidence": 0.9,
             "value_ratings": {"helpfulness": 0.8, "honesty": 0.9}},
            {"scenario_id": "s2", "option_id": "opt-1", "confidence": 0.8,
             "value_ratings": {"helpfulness": 0.8, "honesty": 0.9}},
        ],
        "reasoning": "Both options trade a little helpfulness for honesty.",
    }


@pytest.fixture
def context_payload():
    """Raw context-evaluation solution."""
    return {
        "problem_type": "context_evaluation",
        "evaluations": [
            {"scenario_id": "s1", "variant_id": "v3", "confidence": 0.7},
            {"scenario_id": "s2", "variant_id": "v1", "confidence": 0.6,
             "noted_differences": ["formality"]},
        ],
    }
