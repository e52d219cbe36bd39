"""
Configuration for the contribution pipeline.

Defaults live in PipelineSettings. A YAML file (pipeline.yaml, or the path
in PIPELINE_CONFIG) overrides them, and PIPELINE_* environment variables
override the storage selection on top of that.
"""

import os
import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Paths
CONFIG_FILE = Path(os.environ.get("PIPELINE_CONFIG", "pipeline.yaml"))
PROBLEMS_FILE = Path("problems.yaml")
ACHIEVEMENTS_FILE = Path("achievements.yaml")
DATA_DIR = Path(os.environ.get("PIPELINE_DATA_DIR", "data"))

DEFAULT_LEVEL_BREAKPOINTS = [0, 100, 250, 500, 1000, 2000, 3500, 5500, 8000, 11000, 15000, 20000]


class PipelineSettings(BaseModel):
    """
    Tunable parameters.

    Level curve, streak window and EWMA alpha are plain configuration;
    change them here or in pipeline.yaml, not in code.
    """
    # Progression
    streak_window_hours: float = Field(default=24.0, gt=0)
    proficiency_alpha: float = Field(default=0.2, gt=0, le=1)
    xp_per_difficulty: int = Field(default=10, ge=0)
    level_breakpoints: list[int] = Field(default_factory=lambda: list(DEFAULT_LEVEL_BREAKPOINTS))

    # Scoring
    base_multiplier: float = Field(default=100.0, ge=0)
    min_time_ratio: float = Field(default=0.25, gt=0)  # time_spent/expected for full confidence
    certainty_floor: float = Field(default=0.5, ge=0, le=1)  # confidence factor at zero certainty
    score_precision: int = Field(default=4, ge=1, le=10)

    # Concurrency
    max_cas_retries: int = Field(default=5, ge=1)

    # Storage
    backend: str = "memory"  # 'memory' | 'json'
    data_dir: Path = DATA_DIR

    @field_validator("level_breakpoints")
    @classmethod
    def _strictly_increasing(cls, v: list[int]) -> list[int]:
        if not v or v[0] != 0:
            raise ValueError("level_breakpoints must start at 0")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("level_breakpoints must be strictly increasing")
        return v

    @field_validator("backend")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "json"):
            raise ValueError(f"Unknown backend: {v}")
        return v


def load_yaml(path: Path) -> dict:
    """Load a YAML mapping, empty dict if the file is missing or blank."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[Path] = None) -> PipelineSettings:
    """Build settings from YAML overrides plus environment."""
    data = load_yaml(path or CONFIG_FILE)
    if os.environ.get("PIPELINE_BACKEND"):
        data["backend"] = os.environ["PIPELINE_BACKEND"]
    if os.environ.get("PIPELINE_DATA_DIR"):
        data["data_dir"] = os.environ["PIPELINE_DATA_DIR"]
    return PipelineSettings.model_validate(data)


_settings: Optional[PipelineSettings] = None


def get_settings() -> PipelineSettings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings(settings: Optional[PipelineSettings] = None) -> None:
    """Replace (or clear) the cached settings. Used by tests and the CLI."""
    global _settings
    _settings = settings
