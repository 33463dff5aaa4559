"""Shared fixtures: fake embedding/index clients and a wired registry."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from advisor_agent.retrieval.embeddings import EmbeddingClient
from advisor_agent.retrieval.vector_index import SearchMatch, VectorIndexClient
from advisor_agent.tools.registry import ToolRegistry
from advisor_agent.tools.vector_search import VectorSearchTool

DIMENSIONS = 768


def make_match(match_id: str, score: float, **metadata) -> SearchMatch:
    meta = {"title": f"Doc {match_id}", "source_type": "proposal", "content": f"content {match_id}"}
    meta.update(metadata)
    return SearchMatch(id=match_id, score=score, content=meta["content"], metadata=meta)


@pytest.fixture
def embedding_client() -> AsyncMock:
    client = AsyncMock(spec=EmbeddingClient)
    client.dimensions = DIMENSIONS
    client.embed.return_value = [0.01] * DIMENSIONS
    return client


@pytest.fixture
def index_client() -> AsyncMock:
    client = AsyncMock(spec=VectorIndexClient)
    client.dimensions = DIMENSIONS
    client.query.return_value = []
    return client


@pytest.fixture
def search_tool(embedding_client, index_client) -> VectorSearchTool:
    return VectorSearchTool(embedding_client=embedding_client, index_client=index_client)


@pytest.fixture
def registry(search_tool) -> ToolRegistry:
    return ToolRegistry(tools=[search_tool])
