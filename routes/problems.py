"""
Problem catalogue API routes.
"""

from flask import jsonify

from errors import UnknownOrInactiveProblem
from pipeline import get_pipeline
from . import problems_bp
from .query import int_arg, status_arg


def _problem_summary(problem) -> dict:
    return {
        "problem_id": problem.problem_id,
        "problem_type": problem.problem_type.value,
        "title": problem.title,
        "institution_name": problem.institution_name,
        "difficulty": problem.difficulty,
        "quality_threshold": problem.quality_threshold,
        "total_contributions": problem.total_contributions,
        "tags": problem.tags,
    }


@problems_bp.route("/api/problems")
def list_problems():
    """List active problems."""
    problems = get_pipeline().catalog.list_active()
    return jsonify([_problem_summary(p) for p in problems])


@problems_bp.route("/api/problems/<problem_id>")
def get_problem(problem_id):
    """One active problem with its criteria (answer key withheld)."""
    problem = get_pipeline().catalog.get_active_problem(problem_id)
    data = _problem_summary(problem)
    data["description"] = problem.description
    data["criteria"] = [c.model_dump() for c in problem.criteria]
    data["expected_time_seconds"] = problem.expected_time_seconds
    data["scenarios"] = sorted(problem.answer_key)
    return jsonify(data)


@problems_bp.route("/api/problems/<problem_id>/contributions")
def list_problem_contributions(problem_id):
    """Contributions to a problem, optionally filtered by ?status=."""
    pipeline = get_pipeline()
    if pipeline.catalog.get(problem_id) is None:
        raise UnknownOrInactiveProblem(problem_id)

    contributions = pipeline.problem_contributions(problem_id, status_arg(), int_arg("limit", 100))
    return jsonify([
        c.model_dump(mode="json", include={
            "contribution_id", "user_id", "status", "quality_score",
            "confidence_score", "points_awarded", "submitted_at", "validated_at",
        })
        for c in contributions
    ])
