"""Startup wiring: build clients once and inject them into the tool registry."""

from __future__ import annotations

from typing import Any

from advisor_agent.retrieval.embeddings import EmbeddingClient
from advisor_agent.retrieval.vector_index import VectorIndexClient
from advisor_agent.tools.plugins import load_plugins_from_config
from advisor_agent.tools.registry import ToolRegistry
from advisor_agent.tools.vector_search import VectorSearchTool
from advisor_agent.utils.config import load_config
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)


def build_vector_search_tool(
    config: dict[str, Any],
    embedding_client: EmbeddingClient | None = None,
    index_client: VectorIndexClient | None = None,
) -> VectorSearchTool:
    defaults = config.get("tools", {}).get("vector_search", {})
    return VectorSearchTool(
        embedding_client=embedding_client or EmbeddingClient.from_config(config),
        index_client=index_client or VectorIndexClient.from_config(config),
        default_top_k=int(defaults.get("top_k", 10)),
        default_min_similarity=float(defaults.get("min_similarity", 0.7)),
    )


def build_tool_registry(
    config: dict[str, Any] | None = None,
    *,
    embedding_client: EmbeddingClient | None = None,
    index_client: VectorIndexClient | None = None,
) -> ToolRegistry:
    """
    Construct the process-wide registry from config.

    Clients are shared by every request; they hold no per-request state.
    """
    config = config or load_config()
    registry = ToolRegistry(default_timeout=float(config.get("tools", {}).get("timeout_seconds", 30.0)))
    registry.register(build_vector_search_tool(config, embedding_client, index_client))
    load_plugins_from_config(registry, config)
    logger.info("tool_registry_ready", tools=[d.name for d in registry.list_tools()])
    return registry
