"""
Repository layer - abstracts persistence.

Usage:
    from repositories import get_repository

    repo = get_repository()  # Returns configured backend
    entity = repo.entities.get(entity_id)
    repo.entities.save(entity)

Backends are swappable via config.
"""

from pathlib import Path

from .base import Repository
from .memory_backend import MemoryRepository
from .json_backend import JsonRepository

# Default backend - can be changed via config
_backend: str = "memory"
_options: dict = {}
_instance: Repository = None


def get_repository() -> Repository:
    """Get the configured repository instance."""
    global _instance

    if _instance is None:
        if _backend == "memory":
            _instance = MemoryRepository()
        elif _backend == "json":
            _instance = JsonRepository(_options.get("data_dir"))
        else:
            raise ValueError(f"Unknown backend: {_backend}")

    return _instance


def configure_backend(backend: str, data_dir: Path = None) -> None:
    """Configure the repository backend."""
    global _backend, _options, _instance
    _backend = backend
    _options = {"data_dir": data_dir}
    _instance = None  # Force re-initialization


__all__ = ["get_repository", "configure_backend", "Repository", "MemoryRepository", "JsonRepository"]
