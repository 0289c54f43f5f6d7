"""Remote document stores and the local cache."""

from typing import Optional

from .base import BasePersistence
from .cache import LocalCache
from .memory import InMemoryPersistence
from .duckdb_store import DuckDBPersistence
from .http_store import HttpPersistence
from ..config import ConfigManager, config as default_config


def build_persistence(settings: Optional[ConfigManager] = None,
                      backend: Optional[str] = None) -> BasePersistence:
    """
    Create the persistence backend named in the configuration.

    Args:
        settings: Configuration to read (defaults to the global config)
        backend: Override for ``persistence.backend``

    Returns:
        The configured backend

    Raises:
        ValueError: If the backend name is unknown
    """
    settings = settings or default_config
    backend = backend or settings.persistence_backend

    if backend == "duckdb":
        return DuckDBPersistence(settings.database_filename)
    if backend == "http":
        return HttpPersistence(
            settings.get("persistence.base_url", "http://localhost:8080/api"),
            timeout=float(settings.get("persistence.timeout", 30.0))
        )
    if backend == "memory":
        return InMemoryPersistence()

    raise ValueError(f"Unknown persistence backend: {backend}")


__all__ = [
    "BasePersistence",
    "LocalCache",
    "InMemoryPersistence",
    "DuckDBPersistence",
    "HttpPersistence",
    "build_persistence"
]
