"""
Repository layer - abstracts persistence.

Usage:
    from repositories import get_repository

    repo = get_repository()  # Returns configured backend
    problem = repo.problems.get_active("bias-001")
    progress = repo.progress.get("user-1")

Backends are swappable via config (PIPELINE_BACKEND=memory|json).
"""

from pathlib import Path
from typing import Optional

from .base import Repository
from .memory_backend import MemoryRepository
from .json_backend import JsonRepository

# Default backend - can be changed via config
_backend: Optional[str] = None
_base_path: Optional[Path] = None
_instance: Repository = None


def get_repository() -> Repository:
    """Get the configured repository instance."""
    global _instance

    if _instance is None:
        from config import get_settings
        settings = get_settings()
        backend = _backend or settings.backend

        if backend == "memory":
            _instance = MemoryRepository()
        elif backend == "json":
            _instance = JsonRepository(base_path=_base_path or settings.data_dir)
        else:
            raise ValueError(f"Unknown backend: {backend}")

    return _instance


def configure_backend(backend: str, base_path: Optional[Path] = None) -> None:
    """Configure the repository backend."""
    global _backend, _base_path, _instance
    _backend = backend
    _base_path = base_path
    _instance = None  # Force re-initialization


__all__ = [
    "get_repository",
    "configure_backend",
    "Repository",
    "MemoryRepository",
    "JsonRepository",
]
