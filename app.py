#!/usr/bin/env python3
"""
Contribution Pipeline Web API

Flask app exposing SubmitSolution and the progression read models.
"""

from flask import Flask, jsonify

from errors import PipelineError
from pipeline import get_pipeline
from routes import problems_bp, contributions_bp, users_bp

app = Flask(__name__)

app.register_blueprint(problems_bp)
app.register_blueprint(contributions_bp)
app.register_blueprint(users_bp)


@app.errorhandler(PipelineError)
def handle_pipeline_error(error: PipelineError):
    """Every pipeline error becomes {error, code, retryable, ...} with its status."""
    return jsonify(error.to_dict()), error.http_status


@app.route("/api/health")
def health():
    stats = get_pipeline().stats
    return jsonify({"status": "ok" if stats.is_healthy else "degraded", **stats.to_dict()})


if __name__ == "__main__":
    print("\n" + "="*60)
    print("  Contribution Pipeline API")
    print("="*60)
    print("  Listening on http://localhost:5001")
    print("="*60 + "\n")
    app.run(debug=True, port=5001)
