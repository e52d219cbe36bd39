"""
Integration test: App startup and HTTP API.

Verifies the app imports, its blueprints register, and the endpoints map
pipeline results and errors onto HTTP correctly.
"""

import pytest

from pipeline import reset_pipeline


@pytest.fixture
def client(pipeline):
    """Flask test client over the in-memory test pipeline."""
    import app

    reset_pipeline(pipeline)
    yield app.app.test_client()
    reset_pipeline(None)


def _submit(client, payload, user="alice", problem_id="bias-001", metadata=None):
    body = {"solution": payload}
    if metadata is not None:
        body["metadata"] = metadata
    headers = {"X-User-Id": user} if user else {}
    return client.post(f"/api/problems/{problem_id}/contributions", json=body, headers=headers)


class TestAppStartup:
    """Verify app can start."""

    def test_app_imports(self):
        """App module imports without error."""
        import app
        assert app.app is not None

    def test_flask_app_configured(self):
        """Flask app has required configuration."""
        import app

        blueprint_names = list(app.app.blueprints.keys())
        assert "problems" in blueprint_names
        assert "contributions" in blueprint_names
        assert "users" in blueprint_names

    def test_routes_exist(self):
        """Core routes are registered."""
        import app

        rules = [rule.rule for rule in app.app.url_map.iter_rules()]

        assert "/api/health" in rules
        assert "/api/problems" in rules
        assert "/api/problems/<problem_id>/contributions" in rules
        assert "/api/leaderboard" in rules

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"


class TestProblemsApi:

    def test_list(self, client):
        response = client.get("/api/problems")

        assert response.status_code == 200
        assert response.content_type == "application/json"
        assert [p["problem_id"] for p in response.get_json()] == ["bias-001"]

    def test_detail_withholds_answer_key(self, client):
        data = client.get("/api/problems/bias-001").get_json()

        assert data["scenarios"] == ["s1", "s2", "s3", "s4"]
        assert data["criteria"][0]["metric"] == "accuracy"
        assert "answer_key" not in data

    def test_unknown_problem(self, client):
        response = client.get("/api/problems/nope")

        assert response.status_code == 404
        assert response.get_json()["code"] == "UNKNOWN_OR_INACTIVE_PROBLEM"

    def test_contributions_filter(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers))

        validated = client.get("/api/problems/bias-001/contributions?status=validated").get_json()
        rejected = client.get("/api/problems/bias-001/contributions?status=rejected").get_json()

        assert len(validated) == 1
        assert rejected == []
        assert "solution" not in validated[0]

    def test_contributions_bad_status(self, client):
        response = client.get("/api/problems/bias-001/contributions?status=maybe")

        assert response.status_code == 400
        data = response.get_json()
        assert data["code"] == "INVALID_QUERY"
        assert data["field"] == "status"
        assert data["retryable"] is False

    def test_contributions_negative_limit(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers))

        response = client.get("/api/problems/bias-001/contributions?limit=-1")

        assert response.status_code == 400
        assert response.get_json()["field"] == "limit"


class TestContributionsApi:

    def test_submit(self, client, bias_payload, perfect_answers):
        response = _submit(client, bias_payload(perfect_answers), metadata={"time_spent_seconds": 200})

        assert response.status_code == 201
        data = response.get_json()
        assert data["status"] == "validated"
        assert data["points_awarded"] == 500
        assert "first_score" in data["unlocked_achievements"]

    def test_requires_user(self, client, bias_payload, perfect_answers):
        response = _submit(client, bias_payload(perfect_answers), user=None)
        assert response.status_code == 401

    def test_requires_solution(self, client):
        response = client.post(
            "/api/problems/bias-001/contributions", json={"metadata": {}}, headers={"X-User-Id": "alice"},
        )
        assert response.status_code == 422
        assert response.get_json()["field"] == "solution"

    def test_malformed(self, client):
        response = _submit(client, {"problem_type": "bias_detection", "answers": [{"scenario_id": "s1"}]})

        assert response.status_code == 422
        data = response.get_json()
        assert data["code"] == "MALFORMED_SOLUTION"
        assert "selected_option" in data["field"]
        assert data["retryable"] is False

    def test_duplicate(self, client, bias_payload, perfect_answers):
        first = _submit(client, bias_payload(perfect_answers)).get_json()
        response = _submit(client, bias_payload(perfect_answers))

        assert response.status_code == 409
        data = response.get_json()
        assert data["code"] == "DUPLICATE_SUBMISSION"
        assert data["existing_contribution_id"] == first["contribution_id"]

    def test_get_contribution(self, client, bias_payload, perfect_answers):
        cid = _submit(client, bias_payload(perfect_answers)).get_json()["contribution_id"]

        data = client.get(f"/api/contributions/{cid}").get_json()

        assert data["status"] == "validated"
        assert data["metrics"] == {"accuracy": 1.0}
        assert "solution" not in data

    def test_get_unknown_contribution(self, client):
        response = client.get("/api/contributions/nope")
        assert response.status_code == 404
        assert response.get_json()["code"] == "CONTRIBUTION_NOT_FOUND"

    def test_reprocess_resolved(self, client, bias_payload, perfect_answers):
        cid = _submit(client, bias_payload(perfect_answers)).get_json()["contribution_id"]

        response = client.post(f"/api/contributions/{cid}/reprocess")

        assert response.status_code == 200
        assert response.get_json()["status"] == "validated"

    def test_conflict_is_retryable(self, client, repo, bias_payload, perfect_answers, monkeypatch):
        monkeypatch.setattr(repo.progress, "compare_and_swap", lambda *args: False)

        response = _submit(client, bias_payload(perfect_answers))

        assert response.status_code == 409
        data = response.get_json()
        assert data["code"] == "PROGRESSION_CONFLICT"
        assert data["retryable"] is True


class TestUsersApi:

    def test_progress(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers))

        data = client.get("/api/users/alice/progress").get_json()

        assert data["lifetime_score"] == 500
        assert data["completed_challenges"] == ["bias-001"]

    def test_progress_new_user(self, client):
        data = client.get("/api/users/nobody/progress").get_json()
        assert data["level"] == 1
        assert data["achievements"] == []

    def test_achievements(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers))

        data = client.get("/api/users/alice/achievements").get_json()
        unlocked = {a["achievement_id"] for a in data if a["unlocked"]}

        assert unlocked == {"first_score", "first_contribution"}

    def test_stats_and_contributions(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers))

        stats = client.get("/api/users/alice/stats").get_json()
        listing = client.get("/api/users/alice/contributions?limit=5").get_json()

        assert stats["validated_contributions"] == 1
        assert len(listing) == 1
        assert listing[0]["problem_id"] == "bias-001"

    def test_leaderboard(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers), user="alice")
        _submit(client, bias_payload({"s1": "a", "s2": "b", "s3": "a"}), user="bob")

        board = client.get("/api/leaderboard").get_json()

        assert [row["user_id"] for row in board] == ["alice", "bob"]
        assert board[1]["points"] == 375

    def test_contributions_paging(self, client, bias_payload, perfect_answers):
        _submit(client, bias_payload(perfect_answers))

        assert len(client.get("/api/users/alice/contributions?limit=1&offset=0").get_json()) == 1
        assert client.get("/api/users/alice/contributions?offset=1").get_json() == []
        assert client.get("/api/users/alice/contributions?limit=0").get_json() == []

    @pytest.mark.parametrize("query, field", [
        ("limit=-1", "limit"),
        ("offset=-2", "offset"),
        ("limit=ten", "limit"),
    ])
    def test_contributions_bad_paging(self, client, bias_payload, perfect_answers, query, field):
        _submit(client, bias_payload(perfect_answers))

        response = client.get(f"/api/users/alice/contributions?{query}")

        assert response.status_code == 400
        data = response.get_json()
        assert data["code"] == "INVALID_QUERY"
        assert data["field"] == field

    def test_leaderboard_negative_limit(self, client):
        response = client.get("/api/leaderboard?limit=-1")

        assert response.status_code == 400
        assert response.get_json()["code"] == "INVALID_QUERY"
