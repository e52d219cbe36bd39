"""
User progression API routes.
"""

from flask import jsonify

from pipeline import get_pipeline
from . import users_bp
from .query import int_arg


@users_bp.route("/api/users/<user_id>/progress")
def get_progress(user_id):
    return jsonify(get_pipeline().get_progress(user_id).to_dict())


@users_bp.route("/api/users/<user_id>/achievements")
def get_achievements(user_id):
    """Progress toward every visible achievement."""
    progress = get_pipeline().achievement_progress(user_id)
    return jsonify([p.model_dump() for p in progress])


@users_bp.route("/api/users/<user_id>/stats")
def get_stats(user_id):
    return jsonify(get_pipeline().contribution_stats(user_id).model_dump())


@users_bp.route("/api/users/<user_id>/contributions")
def list_user_contributions(user_id):
    contributions = get_pipeline().user_contributions(user_id, int_arg("limit", 50), int_arg("offset", 0))
    return jsonify([
        c.model_dump(mode="json", include={
            "contribution_id", "problem_id", "status", "quality_score",
            "confidence_score", "points_awarded", "rejection_reason",
            "failed_criteria", "submitted_at",
        })
        for c in contributions
    ])


@users_bp.route("/api/leaderboard")
def leaderboard():
    return jsonify(get_pipeline().leaderboard(int_arg("limit", 10)))
