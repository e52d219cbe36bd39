"""Unit tests for AggregationService, EventBus and EventLog."""

import pytest

from models import (
    Contribution,
    ContributionValidated,
    AchievementUnlocked,
    ValidationStatus,
    parse_solution,
)
from pipeline import AggregationService, EventBus, EventLog, ProblemCatalog


@pytest.fixture
def aggregation(repo):
    return AggregationService(repo)


@pytest.fixture
def contribution(bias_payload, perfect_answers):
    def _contribution(cid, user="alice", problem_id="bias-001", points=None):
        c = Contribution(
            contribution_id=cid,
            user_id=user,
            problem_id=problem_id,
            problem_type="bias_detection",
            solution=parse_solution(bias_payload(perfect_answers)),
        )
        if points is None:
            return c
        return c.resolve(ValidationStatus.VALIDATED, 0.9, 0.9, points_awarded=points)
    return _contribution


class TestProblemCounter:

    def test_counts_distinct_contributions(self, aggregation, contribution):
        for cid in ("c1", "c2", "c3"):
            aggregation.record_submission(contribution(cid, user=cid))
        assert aggregation.total_contributions("bias-001") == 3

    def test_replay_not_double_counted(self, aggregation, contribution):
        c = contribution("c1")
        assert aggregation.record_submission(c)
        assert not aggregation.record_submission(c)
        assert not aggregation.record_submission(c)
        assert aggregation.total_contributions("bias-001") == 1

    def test_catalog_overlays_count(self, repo, aggregation, contribution, make_problem):
        repo.problems.save(make_problem())
        aggregation.record_submission(contribution("c1"))
        aggregation.record_submission(contribution("c2", user="bob"))

        problem = ProblemCatalog(repo).get_active_problem("bias-001")

        assert problem.total_contributions == 2


class TestLeaderboard:

    def test_pending_not_credited(self, aggregation, contribution):
        assert not aggregation.record_resolution(contribution("c1"))
        assert aggregation.user_points("alice") == 0

    def test_points_credited_once(self, aggregation, contribution):
        c = contribution("c1", points=450)
        aggregation.record_resolution(c)
        aggregation.record_resolution(c)
        assert aggregation.user_points("alice") == 450

    def test_ranking(self, aggregation, contribution):
        aggregation.record_resolution(contribution("c1", user="alice", points=300))
        aggregation.record_resolution(contribution("c2", user="bob", problem_id="p2", points=500))
        aggregation.record_resolution(contribution("c3", user="alice", problem_id="p3", points=200))
        aggregation.record_resolution(contribution("c4", user="carol", points=100))

        board = aggregation.leaderboard()

        assert [row["user_id"] for row in board] == ["alice", "bob", "carol"]
        assert board[0] == {"rank": 1, "user_id": "alice", "points": 500, "validated_contributions": 2}

    def test_ties_by_user_id(self, aggregation, contribution):
        aggregation.record_resolution(contribution("c1", user="zed", points=100))
        aggregation.record_resolution(contribution("c2", user="amy", points=100))
        assert [row["user_id"] for row in aggregation.leaderboard()] == ["amy", "zed"]

    def test_limit(self, aggregation, contribution):
        for i in range(5):
            aggregation.record_resolution(contribution(f"c{i}", user=f"u{i}", points=10 * i))
        assert len(aggregation.leaderboard(limit=3)) == 3


class TestEvents:

    def _validated_event(self):
        return ContributionValidated(
            contribution_id="c1", user_id="alice", problem_id="p1",
            status=ValidationStatus.VALIDATED, quality_score=0.9, confidence_score=0.9,
        )

    def test_deterministic_ids(self):
        assert self._validated_event().event_id == "contribution:c1"
        unlocked = AchievementUnlocked(user_id="alice", achievement_id="streak_3")
        assert unlocked.event_id == "achievement:alice:streak_3"

    def test_log_deduplicates_redelivery(self):
        log = EventLog()
        bus = EventBus()
        bus.subscribe(log)

        bus.publish(self._validated_event())
        bus.publish(self._validated_event())

        assert log.deliveries == 2
        assert len(log.events) == 1

    def test_failing_subscriber_isolated(self):
        log = EventLog()
        bus = EventBus()

        def broken(event):
            raise RuntimeError("downstream is down")

        bus.subscribe(broken)
        bus.subscribe(log)
        bus.publish(self._validated_event())

        assert len(log.events) == 1

    def test_unsubscribe(self):
        log = EventLog()
        bus = EventBus()
        bus.subscribe(log)
        bus.unsubscribe(log)

        bus.publish(self._validated_event())

        assert log.events == []
