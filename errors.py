"""
Error taxonomy for the contribution pipeline.

Every error carries a stable `code` callers can switch on, whether it is
worth retrying, and the HTTP status the API layer maps it to.
"""

from typing import Optional


class PipelineError(Exception):
    """Base for all errors surfaced by the pipeline."""

    code = "PIPELINE_ERROR"
    retryable = False
    http_status = 500

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> dict:
        """Export for API responses."""
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
            **self.details,
        }


class UnknownOrInactiveProblem(PipelineError):
    code = "UNKNOWN_OR_INACTIVE_PROBLEM"
    http_status = 404

    def __init__(self, problem_id: str):
        super().__init__(f"Problem {problem_id} does not exist or is not active", problem_id=problem_id)
        self.problem_id = problem_id


class MalformedSolution(PipelineError):
    code = "MALFORMED_SOLUTION"
    http_status = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.field = field


class DuplicateSubmission(PipelineError):
    code = "DUPLICATE_SUBMISSION"
    http_status = 409

    def __init__(self, user_id: str, problem_id: str, existing_id: Optional[str] = None):
        super().__init__(
            f"User {user_id} already has an open or validated contribution for {problem_id}",
            existing_contribution_id=existing_id,
        )
        self.user_id = user_id
        self.problem_id = problem_id
        self.existing_id = existing_id


class ProgressionConflict(PipelineError):
    """Concurrent modification outlasted the bounded retry loop."""
    code = "PROGRESSION_CONFLICT"
    retryable = True
    http_status = 409

    def __init__(self, user_id: str, attempts: int):
        super().__init__(
            f"Progress for {user_id} kept changing underneath us ({attempts} attempts)",
            attempts=attempts,
        )
        self.user_id = user_id
        self.attempts = attempts


class StorageUnavailable(PipelineError):
    code = "STORAGE_UNAVAILABLE"
    retryable = True
    http_status = 503


class ConflictError(PipelineError):
    """Storage refused a write that would violate a uniqueness rule."""
    code = "STORAGE_CONFLICT"
    http_status = 409


class ContributionNotFound(PipelineError):
    code = "CONTRIBUTION_NOT_FOUND"
    http_status = 404

    def __init__(self, contribution_id: str):
        super().__init__(f"Contribution {contribution_id} not found", contribution_id=contribution_id)


class InvalidTransition(PipelineError):
    """A resolved contribution can't change status again."""
    code = "INVALID_TRANSITION"
    http_status = 409


class InvalidQuery(PipelineError):
    """A read query parameter is out of range or unparseable."""
    code = "INVALID_QUERY"
    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.field = field
