"""Unit tests for PipelineStats and ContributionStats."""

import threading

import pytest

from models import PipelineStats, ContributionStats, Contribution, ValidationStatus


class TestPipelineStats:
    """Test PipelineStats model."""

    def test_create_default(self):
        stats = PipelineStats()
        assert stats.submissions == 0
        assert stats.validated == 0
        assert stats.errors == 0
        assert stats.last_submission is None

    def test_record_submission(self):
        stats = PipelineStats()
        stats.record_submission()

        assert stats.submissions == 1
        assert stats.last_submission is not None

    def test_record_outcome(self):
        stats = PipelineStats()
        stats.record_outcome(True)
        stats.record_outcome(False)

        assert stats.validated == 1
        assert stats.rejected == 1

    def test_record_error(self):
        stats = PipelineStats()
        stats.record_error("Something failed")

        assert stats.errors == 1
        assert stats.last_error is not None
        assert stats.last_error_message == "Something failed"

    def test_acceptance_rate_nothing_scored(self):
        assert PipelineStats().acceptance_rate == 0.0

    def test_acceptance_rate_calculated(self):
        stats = PipelineStats(validated=3, rejected=1)
        assert stats.acceptance_rate == 0.75

    def test_is_healthy_not_enough_data(self):
        assert PipelineStats(submissions=2, errors=2).is_healthy

    def test_is_healthy_bad_rate(self):
        assert not PipelineStats(submissions=10, errors=6).is_healthy

    def test_concurrent_updates_not_lost(self):
        stats = PipelineStats()
        barrier = threading.Barrier(8)

        def work():
            barrier.wait()
            for _ in range(2000):
                stats.record_submission()
                stats.record_outcome(True)
                stats.record_conflict()

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert stats.submissions == 16000
        assert stats.validated == 16000
        assert stats.conflicts == 16000

    def test_to_dict(self):
        d = PipelineStats(submissions=5, validated=3, rejected=1, refused=1).to_dict()

        assert d["submissions"] == 5
        assert d["refused"] == 1
        assert d["acceptance_rate"] == 0.75
        assert "healthy" in d


class TestContributionStats:
    """Summary over a user's contributions."""

    def _contribution(self, cid, status, quality=None, points=0, problem_type="bias_detection"):
        c = Contribution.model_validate({
            "contribution_id": cid,
            "user_id": "alice",
            "problem_id": f"p-{cid}",
            "problem_type": problem_type,
            "solution": {
                "problem_type": "bias_detection",
                "answers": [{"scenario_id": "s1", "selected_option": "a"}],
            },
        })
        if status == ValidationStatus.PENDING:
            return c
        return c.resolve(status, quality, quality, points_awarded=points)

    def test_empty(self):
        stats = ContributionStats.from_contributions([])
        assert stats.total_contributions == 0
        assert stats.average_quality_score == 0.0

    def test_summary(self):
        stats = ContributionStats.from_contributions([
            self._contribution("1", ValidationStatus.VALIDATED, 0.9, 450),
            self._contribution("2", ValidationStatus.REJECTED, 0.3),
            self._contribution("3", ValidationStatus.PENDING),
            self._contribution("4", ValidationStatus.VALIDATED, 0.8, 300, problem_type="alignment"),
        ])

        assert stats.total_contributions == 4
        assert stats.validated_contributions == 2
        assert stats.rejected_contributions == 1
        assert stats.pending_contributions == 1
        assert stats.total_points == 750
        assert stats.average_quality_score == pytest.approx(0.6667, abs=1e-4)
        assert stats.contributions_by_type == {"bias_detection": 3, "alignment": 1}
