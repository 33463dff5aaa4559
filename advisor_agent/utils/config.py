"""Configuration loading from YAML and environment."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "agent_config.yaml"

# (env var, config section, key, cast)
_ENV_OVERRIDES: list[tuple[str, str, str, type]] = [
    ("OPENAI_API_KEY", "embedding", "api_key", str),
    ("OPENAI_EMBEDDING_MODEL", "embedding", "model", str),
    ("EMBEDDING_DIMENSIONS", "embedding", "dimensions", int),
    ("VECTOR_INDEX_HOST", "vector_index", "host", str),
    ("VECTOR_INDEX_PORT", "vector_index", "port", int),
    ("VECTOR_INDEX_NAME", "vector_index", "collection", str),
    ("VECTOR_INDEX_API_KEY", "vector_index", "api_key", str),
    ("AGENT_LOG_LEVEL", "logging", "level", str),
]


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load the tool-core config from a YAML file with env var overrides.

    Missing sections or keys fall back to the built-in defaults, so callers
    can always index ``config["embedding"]["dimensions"]``.

    Args:
        config_path: Path to agent_config.yaml. Defaults to config/agent_config.yaml.

    Returns:
        Nested config dict.

    Example:
        >>> cfg = load_config()
        >>> cfg["embedding"]["dimensions"]
        768
    """
    path = get_config_path(config_path)
    config = _default_config()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        _merge(config, loaded)
    for env_name, section, key, cast in _ENV_OVERRIDES:
        if (value := os.getenv(env_name)) is not None and value != "":
            config.setdefault(section, {})[key] = cast(value)
    return config


def get_config_path(config_path: str | Path | None = None) -> Path:
    """Return the path to the config file used for load."""
    if config_path is None:
        config_path = os.getenv("AGENT_CONFIG_PATH") or _DEFAULT_CONFIG_PATH
    return Path(config_path)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _default_config() -> dict[str, Any]:
    """Default config when no file is present."""
    return copy.deepcopy(
        {
            "embedding": {
                "provider": "openai",
                "model": "text-embedding-3-small",
                "dimensions": 768,
                "timeout_seconds": 30.0,
            },
            "vector_index": {
                "host": "localhost",
                "port": 8000,
                "collection": "knowledge_base",
                "metadata_content_limit": 40000,
            },
            "retry": {"max_attempts": 1, "base_delay_seconds": 0.5},
            "tools": {
                "timeout_seconds": 30.0,
                "vector_search": {"top_k": 10, "min_similarity": 0.7},
            },
            "logging": {"level": "INFO", "json": False},
            "api": {"host": "0.0.0.0", "port": 8080},
            "metrics": {"enabled": False, "port": 9090},
            "titles": {"model": "gpt-4o-mini", "max_messages": 4},
        }
    )
