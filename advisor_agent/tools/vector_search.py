"""Semantic search over the knowledge base (proposals, methodologies, past work)."""

from __future__ import annotations

import time
from typing import Any

from advisor_agent.errors import ToolConfigurationError
from advisor_agent.retrieval.embeddings import EmbeddingClient
from advisor_agent.retrieval.vector_index import SearchMatch, VectorIndexClient
from advisor_agent.tools.base import (
    ParameterSpec,
    Tool,
    ToolDefinition,
    ToolExecutionContext,
    ToolResult,
)
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)

SOURCE_TYPE = "vector_search"
UNAVAILABLE_MESSAGE = "Knowledge base search unavailable - continuing without it"

VECTOR_SEARCH_PARAMETERS = {
    "query": ParameterSpec(type="string", required=True, description="Search query (natural language)"),
    "top_k": ParameterSpec(
        type="integer",
        description="Number of results to return (default: 10)",
        default=10,
    ),
    "min_similarity": ParameterSpec(
        type="number",
        description="Minimum similarity score 0-1 (default: 0.7)",
        default=0.7,
    ),
    "filter": ParameterSpec(
        type="object",
        description=(
            'Metadata filters (e.g. {"source_type": "proposal"} or '
            '{"$and": [{"source_type": "data_upload"}, {"client_id": 5}]}). '
            "Applied exactly as given; no implicit user or client scoping."
        ),
    ),
}


def calculate_confidence(scores: list[float]) -> float:
    """
    Scale the mean similarity of surviving matches into [0.5, 0.9].

    Capped below 1.0 since similarity is not verified certainty; 0 when
    nothing survived the cutoff.
    """
    if not scores:
        return 0.0
    avg_score = sum(scores) / len(scores)
    return max(0.0, min(0.5 + avg_score * 0.4, 0.9))


def format_match(match: SearchMatch) -> dict[str, Any]:
    meta = match.metadata
    return {
        "id": match.id,
        "score": match.score,
        "content": match.content or meta.get("content") or "",
        "source_type": meta.get("source_type") or "unknown",
        "source_id": meta.get("source_id"),
        "title": meta.get("title") or "Untitled",
        "summary": meta.get("summary") or "",
        "created_at": meta.get("created_at"),
    }


class VectorSearchTool(Tool):
    """
    Embedding search with a hard similarity cutoff and capped confidence.

    Dependency failures never abort the caller's turn: they come back as a
    successful, empty, ``degraded`` result carrying a ``warning``.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        index_client: VectorIndexClient,
        default_top_k: int = 10,
        default_min_similarity: float = 0.7,
    ) -> None:
        self.embedding_client = embedding_client
        self.index_client = index_client
        params = dict(VECTOR_SEARCH_PARAMETERS)
        params["top_k"] = params["top_k"].model_copy(update={"default": default_top_k})
        params["min_similarity"] = params["min_similarity"].model_copy(update={"default": default_min_similarity})
        self._definition = ToolDefinition(
            name="vector_search",
            description=(
                "OPTIONAL: Semantic search across the knowledge base (proposals, methodologies, "
                "past projects, best practices). If unavailable, other tools can still complete "
                "the task. Returns relevant content with similarity scores."
            ),
            category="knowledge",
            requires_approval=False,
            parameters=params,
        )

    def describe(self) -> ToolDefinition:
        return self._definition

    async def execute(self, params: dict[str, Any], context: ToolExecutionContext) -> ToolResult:
        query: str = params["query"]
        top_k = params.get("top_k")
        if top_k is None:
            top_k = self._definition.parameters["top_k"].default
        min_similarity = params.get("min_similarity")
        if min_similarity is None:
            min_similarity = self._definition.parameters["min_similarity"].default
        query_filter = dict(params.get("filter") or {})

        if top_k < 1:
            return ToolResult.failure("top_k must be >= 1", source_type=SOURCE_TYPE)
        if not 0.0 <= float(min_similarity) <= 1.0:
            return ToolResult.failure("min_similarity must be between 0 and 1", source_type=SOURCE_TYPE)

        start = time.perf_counter()
        try:
            vector = await self.embedding_client.embed(query)
            matches = await self.index_client.query(
                vector,
                top_k=top_k,
                include_metadata=True,
                filter=query_filter or None,
            )
        except ToolConfigurationError:
            raise
        except Exception as e:
            logger.exception("vector_search_failed", query=query, error=str(e))
            return ToolResult(
                success=True,
                data={"results": [], "count": 0, "query": query},
                confidence=0.0,
                source_type=SOURCE_TYPE,
                data_points=[],
                message=UNAVAILABLE_MESSAGE,
                warning=str(e) or e.__class__.__name__,
                degraded=True,
                execution_time_ms=(time.perf_counter() - start) * 1000,
            )

        results = [format_match(m) for m in matches if m.score >= min_similarity]
        logger.info(
            "vector_search_completed",
            query=query,
            matched=len(matches),
            kept=len(results),
            min_similarity=min_similarity,
            user_id=context.user_id,
        )
        return ToolResult(
            success=True,
            data={"results": results, "count": len(results), "query": query},
            confidence=calculate_confidence([r["score"] for r in results]),
            source_type=SOURCE_TYPE,
            data_points=[
                {"title": r["title"], "source": r["source_type"], "relevance": r["score"]} for r in results
            ],
            execution_time_ms=(time.perf_counter() - start) * 1000,
        )

    async def upsert_content(self, id: str, content: str, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Embed ``content`` and write it to the index (ingestion side).

        Returns ``{"success": True, "id": id}`` or ``{"success": False, "error": ...}``.
        """
        try:
            vector = await self.embedding_client.embed(content)
            await self.index_client.upsert(id, vector, content, metadata or {})
            return {"success": True, "id": id}
        except ToolConfigurationError:
            raise
        except Exception as e:
            logger.exception("vector_upsert_failed", id=id, error=str(e))
            return {"success": False, "id": id, "error": str(e)}
