"""Unit tests for Problem and Criterion models."""

import pytest
from pydantic import ValidationError

from models import Problem, ProblemType, Criterion


def _problem(**overrides):
    data = {
        "problem_id": "p1",
        "problem_type": "bias_detection",
        "difficulty": 4,
        "criteria": [{"metric": "accuracy", "threshold": 0.8}],
    }
    data.update(overrides)
    return Problem.model_validate(data)


class TestCriterion:
    """Test Criterion model."""

    def test_defaults(self):
        c = Criterion(metric="accuracy", threshold=0.5)
        assert c.weight == 1.0
        assert c.min_value == 0.0
        assert c.max_value == 1.0

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValidationError):
            Criterion(metric="accuracy", threshold=0)

    def test_weight_must_be_positive(self):
        with pytest.raises(ValidationError):
            Criterion(metric="accuracy", threshold=0.5, weight=0)

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            Criterion(metric="x", threshold=1, min_value=5, max_value=1)

    def test_clamp(self):
        c = Criterion(metric="x", threshold=1, min_value=0, max_value=10)
        assert c.clamp(-3) == 0
        assert c.clamp(4.5) == 4.5
        assert c.clamp(42) == 10


class TestProblem:
    """Test Problem model."""

    def test_create(self):
        p = _problem()
        assert p.problem_type == ProblemType.BIAS_DETECTION
        assert p.quality_threshold == 0.7
        assert p.active
        assert p.total_contributions == 0

    def test_needs_at_least_one_criterion(self):
        with pytest.raises(ValidationError):
            _problem(criteria=[])

    def test_difficulty_bounds(self):
        with pytest.raises(ValidationError):
            _problem(difficulty=0)
        with pytest.raises(ValidationError):
            _problem(difficulty=11)

    def test_quality_threshold_bounds(self):
        with pytest.raises(ValidationError):
            _problem(quality_threshold=1.5)

    def test_duplicate_metric_rejected(self):
        with pytest.raises(ValidationError):
            _problem(criteria=[
                {"metric": "accuracy", "threshold": 0.8},
                {"metric": "accuracy", "threshold": 0.5},
            ])

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            _problem(problem_type="sentiment")

    def test_criteria_by_metric(self):
        p = _problem(criteria=[
            {"metric": "accuracy", "threshold": 0.8},
            {"metric": "coverage", "threshold": 1.0},
        ])
        assert set(p.criteria_by_metric) == {"accuracy", "coverage"}
        assert p.criteria_by_metric["coverage"].threshold == 1.0


class TestProblemUpdates:
    """Only activation and the quality threshold change after publication."""

    def test_deactivate(self):
        p = _problem()
        updated = p.with_updates(active=False)

        assert not updated.active
        assert p.active  # Original untouched

    def test_change_threshold(self):
        updated = _problem().with_updates(quality_threshold=0.9)
        assert updated.quality_threshold == 0.9

    def test_threshold_still_validated(self):
        with pytest.raises(ValidationError):
            _problem().with_updates(quality_threshold=2.0)

    def test_immutable_fields_refused(self):
        with pytest.raises(ValueError, match="immutable"):
            _problem().with_updates(difficulty=9)

    def test_criteria_refused(self):
        with pytest.raises(ValueError):
            _problem().with_updates(criteria=[])
