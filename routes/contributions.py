"""
Contribution API routes - the HTTP face of SubmitSolution.

Authentication lives upstream; the caller's user id arrives in the
X-User-Id header set by the gateway.
"""

from flask import jsonify, request

from pipeline import get_pipeline
from . import contributions_bp


def _current_user():
    user_id = (request.headers.get("X-User-Id") or "").strip()
    return user_id or None


@contributions_bp.route("/api/problems/<problem_id>/contributions", methods=["POST"])
def submit_contribution(problem_id):
    """Submit a solution. Body: {"solution": {...}, "metadata": {...}}"""
    user_id = _current_user()
    if not user_id:
        return jsonify({"error": "X-User-Id header required", "code": "UNAUTHENTICATED"}), 401

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "solution" not in data:
        return jsonify({
            "error": "Request body must be a JSON object with a solution",
            "code": "MALFORMED_SOLUTION",
            "field": "solution",
        }), 422

    result = get_pipeline().submit_solution(
        user_id,
        problem_id,
        data["solution"],
        data.get("metadata"),
    )
    return jsonify(result.model_dump(mode="json")), 201


@contributions_bp.route("/api/contributions/<contribution_id>")
def get_contribution(contribution_id):
    """A contribution with its audit trail."""
    contribution = get_pipeline().get_contribution(contribution_id)
    return jsonify(contribution.model_dump(mode="json", exclude={"solution"}))


@contributions_bp.route("/api/contributions/<contribution_id>/reprocess", methods=["POST"])
def reprocess_contribution(contribution_id):
    """Finish a contribution left pending by a retryable error."""
    result = get_pipeline().reprocess(contribution_id)
    return jsonify(result.model_dump(mode="json"))
