"""
Configuration management for Folio.

This module handles loading and accessing configuration values from config.yaml.
Editing limits, history depth, sync timing and the persistence backend are all
tunable here without touching code.
"""

import copy
import yaml
from pathlib import Path
from typing import Any, Dict
import logging


DEFAULT_CONFIG: Dict[str, Any] = {
    "sync": {
        "debounce_ms": 5000,
        "failure_policy": "log",
        "max_retries": 3,
        "retry_backoff_ms": 500,
        "flush_on_close": True
    },
    "history": {
        "limit": 50
    },
    "editor": {
        "max_blocks": 1800,
        "warn_blocks": 1500
    },
    "persistence": {
        "backend": "duckdb",
        "database": "folio.db",
        "base_url": "http://localhost:8080/api",
        "timeout": 30.0
    },
    "paths": {
        "cache_dir": ".folio_cache",
        "log_file": "folio.log"
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    }
}


class ConfigManager:
    """
    Manages configuration loading and access for Folio.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file, layered over the defaults."""
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}

            if not isinstance(loaded, dict):
                raise ValueError(f"Configuration root must be a mapping, got {type(loaded).__name__}")

            self._config = _merge(self._get_default_config(), loaded)
            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, ValueError, yaml.YAMLError) as e:
            logging.warning(f"Failed to load configuration, using defaults: {e}")
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return copy.deepcopy(DEFAULT_CONFIG)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "sync.debounce_ms")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("sync.debounce_ms")  # Returns 5000
            config.get("editor.max_blocks")  # Returns 1800
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def debounce_ms(self) -> int:
        """Get the quiet period before a content edit is written remotely."""
        return int(self.get("sync.debounce_ms", 5000))

    @property
    def flush_on_close(self) -> bool:
        return bool(self.get("sync.flush_on_close", True))

    @property
    def history_limit(self) -> int:
        """Get the maximum number of undo snapshots kept."""
        return int(self.get("history.limit", 50))

    @property
    def max_blocks(self) -> int:
        """Get the hard per-page block ceiling."""
        return int(self.get("editor.max_blocks", 1800))

    @property
    def warn_blocks(self) -> int:
        """Get the block count at which the editor shows an advisory."""
        return int(self.get("editor.warn_blocks", 1500))

    @property
    def persistence_backend(self) -> str:
        return self.get("persistence.backend", "duckdb")

    @property
    def database_filename(self) -> str:
        """Get the DuckDB document store filename."""
        return self.get("persistence.database", "folio.db")

    @property
    def cache_directory(self) -> str:
        """Get the local cache directory."""
        return self.get("paths.cache_dir", ".folio_cache")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "folio.log")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(base[key], value)
        else:
            base[key] = value
    return base


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config
