"""Remote Chroma vector index: upsert and nearest-neighbour query with metadata filters."""

from __future__ import annotations

import asyncio
from typing import Any

from pydantic import BaseModel, Field

from advisor_agent.errors import EmbeddingDimensionMismatch
from advisor_agent.retrieval.retry import RetryPolicy
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)


class SearchMatch(BaseModel):
    """One nearest-neighbour hit; ``score`` is a similarity, higher is better."""

    id: str
    score: float
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


def _to_index_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    """Chroma only stores scalar metadata; lists become comma-separated tags, None is dropped."""
    out: dict[str, str | int | float | bool] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set)):
            out[key] = ",".join(str(v) for v in value)
        elif isinstance(value, (str, int, float, bool)):
            out[key] = value
        else:
            out[key] = str(value)
    return out


class VectorIndexClient:
    """
    Similarity search over a Chroma collection reached through ``chromadb.HttpClient``.

    The collection uses cosine space, so provider-native distances are
    mapped to similarities with ``score = 1 - distance``. Chroma's client
    is synchronous; calls run in a worker thread so the event loop is
    never blocked.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8000,
        collection: str = "knowledge_base",
        dimensions: int = 768,
        api_key: str | None = None,
        metadata_content_limit: int = 40000,
        retry_policy: RetryPolicy | None = None,
        client: Any = None,
    ) -> None:
        self.host = host
        self.port = port
        self.collection_name = collection
        self.dimensions = dimensions
        self.api_key = api_key
        self.metadata_content_limit = metadata_content_limit
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = client
        self._coll: Any = None

    @classmethod
    def from_config(cls, config: dict[str, Any], client: Any = None) -> VectorIndexClient:
        idx = config.get("vector_index", {})
        return cls(
            host=idx.get("host", "localhost"),
            port=int(idx.get("port", 8000)),
            collection=idx.get("collection", "knowledge_base"),
            dimensions=int(config.get("embedding", {}).get("dimensions", 768)),
            api_key=idx.get("api_key"),
            metadata_content_limit=int(idx.get("metadata_content_limit", 40000)),
            retry_policy=RetryPolicy.from_config(config),
            client=client,
        )

    def _get_client(self) -> Any:
        if self._client is None:
            import chromadb
            from chromadb.config import Settings

            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
            self._client = chromadb.HttpClient(
                host=self.host,
                port=self.port,
                headers=headers,
                settings=Settings(anonymized_telemetry=False),
            )
        return self._client

    def _collection(self) -> Any:
        if self._coll is None:
            coll = self._get_client().get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine", "dimension": self.dimensions},
            )
            declared = (coll.metadata or {}).get("dimension")
            if declared is not None and int(declared) != self.dimensions:
                raise EmbeddingDimensionMismatch(self.dimensions, int(declared), where="vector index")
            self._coll = coll
        return self._coll

    async def query(
        self,
        vector: list[float],
        top_k: int = 10,
        include_metadata: bool = True,
        filter: dict[str, Any] | None = None,
    ) -> list[SearchMatch]:
        """
        Return up to ``top_k`` nearest matches, best first.

        ``filter`` is passed to Chroma's ``where`` verbatim; an empty filter means none.
        """
        if len(vector) != self.dimensions:
            raise EmbeddingDimensionMismatch(self.dimensions, len(vector), where="query vector")
        include = ["distances", "documents"]
        if include_metadata:
            include.append("metadatas")

        def _query() -> dict[str, Any]:
            return self._collection().query(
                query_embeddings=[vector],
                n_results=top_k,
                where=filter or None,
                include=include,
            )

        raw = await self.retry_policy.run(lambda: asyncio.to_thread(_query), name="vector_query")
        return self._parse_query_result(raw)

    @staticmethod
    def _parse_query_result(raw: dict[str, Any]) -> list[SearchMatch]:
        ids = (raw.get("ids") or [[]])[0]
        distances = (raw.get("distances") or [[]])[0] or []
        metadatas = (raw.get("metadatas") or [[]])[0] or []
        documents = (raw.get("documents") or [[]])[0] or []
        matches: list[SearchMatch] = []
        for i, match_id in enumerate(ids):
            metadata = dict(metadatas[i] or {}) if i < len(metadatas) else {}
            document = documents[i] if i < len(documents) else None
            distance = distances[i] if i < len(distances) else 1.0
            matches.append(
                SearchMatch(
                    id=str(match_id),
                    score=1.0 - float(distance),
                    content=metadata.get("content") or document or "",
                    metadata=metadata,
                )
            )
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    async def upsert(self, id: str, vector: list[float], content: str, metadata: dict[str, Any] | None = None) -> None:
        """Insert or replace one vector; stored content is cut to the metadata size limit."""
        if len(vector) != self.dimensions:
            raise EmbeddingDimensionMismatch(self.dimensions, len(vector), where="upsert vector")
        truncated = content[: self.metadata_content_limit]
        meta = _to_index_metadata({**(metadata or {}), "content": truncated})

        def _upsert() -> None:
            self._collection().upsert(ids=[id], embeddings=[vector], metadatas=[meta], documents=[truncated])

        await self.retry_policy.run(lambda: asyncio.to_thread(_upsert), name="vector_upsert")
        logger.info("vector_index_upsert", id=id, content_len=len(truncated))
