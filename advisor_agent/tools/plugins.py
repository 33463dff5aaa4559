"""Plugin loading: extra tool modules and the orchestrator, named in config."""

from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path
from typing import Any

from advisor_agent.errors import ToolConfigurationError
from advisor_agent.tools.registry import ToolRegistry
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)


def _import_module(module_path: str | Path) -> Any:
    path = Path(module_path)
    if path.suffix == ".py" and path.exists():
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ToolConfigurationError(f"Cannot load plugin file: {path}")
        mod = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(mod)
        return mod
    return importlib.import_module(str(module_path))


def load_object(reference: str) -> Any:
    """Resolve ``"package.module:attribute"`` to the named object."""
    module_name, _, attr = reference.partition(":")
    if not attr:
        raise ToolConfigurationError(f"Expected 'module:attribute', got {reference!r}")
    try:
        return getattr(_import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ToolConfigurationError(f"Cannot load {reference}: {e}") from e


def load_plugin_module(module_path: str | Path, registry: ToolRegistry, config: dict[str, Any]) -> None:
    """
    Import a plugin and let it add tools.

    The module must define ``register_tools(registry, config)``. Import
    failures are configuration errors and stop startup.
    """
    try:
        mod = _import_module(module_path)
    except ImportError as e:
        raise ToolConfigurationError(f"Cannot import plugin {module_path}: {e}") from e
    register = getattr(mod, "register_tools", None)
    if register is None:
        raise ToolConfigurationError(f"Plugin {module_path} has no register_tools(registry, config)")
    register(registry, config)
    logger.info("plugin_loaded", module=str(module_path))


def load_plugins_from_config(registry: ToolRegistry, config: dict[str, Any]) -> None:
    """Load all plugin modules listed in config.tools.plugins (paths or dotted names)."""
    for plugin in config.get("tools", {}).get("plugins", []) or []:
        load_plugin_module(plugin, registry, config)
