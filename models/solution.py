"""
Solution payloads - one validated shape per problem type.

Payloads arrive as JSON; `parse_solution()` turns them into the right
variant using `problem_type` as the discriminator. Numeric fields are not
range-checked here: out-of-range values are clamped during metric
extraction, only wrong types and missing fields are malformed.
"""

from abc import abstractmethod
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Answer(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    scenario_id: str
    confidence: float = 1.0

    @property
    @abstractmethod
    def answer(self) -> str:
        """The option or variant this response picked."""


class BiasAnswer(_Answer):
    """Which response the user flagged for a bias scenario."""
    selected_option: str
    bias_type: Optional[str] = None  # position_bias, verbosity_bias, ...

    @property
    def answer(self) -> str:
        return self.selected_option


class AlignmentChoice(_Answer):
    """Chosen action for an alignment scenario plus value ratings."""
    option_id: str
    value_ratings: dict[str, float] = Field(default_factory=dict)

    @property
    def answer(self) -> str:
        return self.option_id


class ContextJudgement(_Answer):
    """The context variant judged most appropriate for a scenario."""
    variant_id: str
    noted_differences: list[str] = Field(default_factory=list)

    @property
    def answer(self) -> str:
        return self.variant_id


class _SolutionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    reasoning: Optional[str] = None
    methodology: Optional[str] = None
    # Client-computed metrics for criteria the pipeline can't compute itself
    reported_metrics: dict[str, float] = Field(default_factory=dict)

    @abstractmethod
    def responses(self) -> list[_Answer]:
        """Per-scenario responses, whatever the payload calls them."""


class BiasDetectionSolution(_SolutionBase):
    problem_type: Literal["bias_detection"] = "bias_detection"
    answers: list[BiasAnswer] = Field(min_length=1)

    def responses(self) -> list[_Answer]:
        return list(self.answers)


class AlignmentSolution(_SolutionBase):
    problem_type: Literal["alignment"] = "alignment"
    choices: list[AlignmentChoice] = Field(min_length=1)

    def responses(self) -> list[_Answer]:
        return list(self.choices)


class ContextEvaluationSolution(_SolutionBase):
    problem_type: Literal["context_evaluation"] = "context_evaluation"
    evaluations: list[ContextJudgement] = Field(min_length=1)

    def responses(self) -> list[_Answer]:
        return list(self.evaluations)


Solution = Annotated[
    Union[BiasDetectionSolution, AlignmentSolution, ContextEvaluationSolution],
    Field(discriminator="problem_type"),
]

_solution_adapter = TypeAdapter(Solution)


def parse_solution(payload) -> Union[BiasDetectionSolution, AlignmentSolution, ContextEvaluationSolution]:
    """Validate a raw payload into its tagged variant. Raises pydantic.ValidationError."""
    if isinstance(payload, (BiasDetectionSolution, AlignmentSolution, ContextEvaluationSolution)):
        return payload
    return _solution_adapter.validate_python(payload)


class SubmissionMetadata(BaseModel):
    """Behavioural signals sent alongside a solution."""
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    time_spent_seconds: Optional[float] = None
    self_reported_certainty: Optional[float] = None
    submission_method: Literal["game", "direct", "api"] = "game"
    # reading / analysis / response / review seconds
    time_breakdown: dict[str, float] = Field(default_factory=dict)

    @property
    def effective_time_spent(self) -> Optional[float]:
        if self.time_spent_seconds is not None:
            return self.time_spent_seconds
        if self.time_breakdown:
            return sum(self.time_breakdown.values())
        return None
