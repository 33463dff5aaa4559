"""Tests for the embedding client, vector index client and retry policy."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from advisor_agent.errors import EmbeddingDimensionMismatch
from advisor_agent.retrieval.embeddings import EmbeddingClient
from advisor_agent.retrieval.retry import RetryPolicy
from advisor_agent.retrieval.vector_index import VectorIndexClient


def _openai_client(vector):
    client = MagicMock()
    client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(embedding=vector)]))
    return client


def _chroma_client(collection_metadata=None, query_result=None):
    collection = MagicMock()
    collection.metadata = collection_metadata if collection_metadata is not None else {"hnsw:space": "cosine", "dimension": 4}
    collection.query.return_value = query_result or {"ids": [[]], "distances": [[]], "metadatas": [[]], "documents": [[]]}
    client = MagicMock()
    client.get_or_create_collection.return_value = collection
    return client, collection


@pytest.mark.asyncio
async def test_embedding_request_shape():
    openai_client = _openai_client([0.1, 0.2, 0.3, 0.4])
    client = EmbeddingClient(model="text-embedding-3-small", dimensions=4, client=openai_client)
    vector = await client.embed("hello")
    assert vector == [0.1, 0.2, 0.3, 0.4]
    openai_client.embeddings.create.assert_awaited_once_with(model="text-embedding-3-small", dimensions=4, input="hello")


@pytest.mark.asyncio
async def test_embedding_dimension_mismatch():
    client = EmbeddingClient(dimensions=768, client=_openai_client([0.1, 0.2]))
    with pytest.raises(EmbeddingDimensionMismatch):
        await client.embed("hello")


@pytest.mark.asyncio
async def test_index_query_maps_distances_to_scores():
    chroma, collection = _chroma_client(
        query_result={
            "ids": [["a", "b"]],
            "distances": [[0.4, 0.1]],
            "metadatas": [[{"title": "A"}, {"title": "B", "content": "body b"}]],
            "documents": [["doc a", "doc b"]],
        }
    )
    index = VectorIndexClient(dimensions=4, client=chroma)
    matches = await index.query([0.0] * 4, top_k=2, filter={"source_type": "proposal"})
    assert [m.id for m in matches] == ["b", "a"]
    assert matches[0].score == pytest.approx(0.9)
    assert matches[0].content == "body b"
    assert matches[1].content == "doc a"
    kwargs = collection.query.call_args.kwargs
    assert kwargs["n_results"] == 2
    assert kwargs["where"] == {"source_type": "proposal"}
    assert "metadatas" in kwargs["include"]


@pytest.mark.asyncio
async def test_index_empty_filter_is_omitted():
    chroma, collection = _chroma_client()
    index = VectorIndexClient(dimensions=4, client=chroma)
    assert await index.query([0.0] * 4, filter={}) == []
    assert collection.query.call_args.kwargs["where"] is None


@pytest.mark.asyncio
async def test_index_dimension_mismatch_on_collection():
    chroma, _ = _chroma_client(collection_metadata={"dimension": 1536})
    index = VectorIndexClient(dimensions=4, client=chroma)
    with pytest.raises(EmbeddingDimensionMismatch):
        await index.query([0.0] * 4)


@pytest.mark.asyncio
async def test_index_upsert_truncates_content_and_flattens_metadata():
    chroma, collection = _chroma_client()
    index = VectorIndexClient(dimensions=4, metadata_content_limit=5, client=chroma)
    await index.upsert("id-1", [0.0] * 4, "abcdefghij", {"tags": ["sales", "proposal"], "client_id": None})
    kwargs = collection.upsert.call_args.kwargs
    assert kwargs["ids"] == ["id-1"]
    assert kwargs["documents"] == ["abcde"]
    assert kwargs["metadatas"] == [{"tags": "sales,proposal", "content": "abcde"}]


@pytest.mark.asyncio
async def test_retry_policy_default_makes_single_attempt():
    op = AsyncMock(side_effect=ConnectionError("down"))
    with pytest.raises(ConnectionError):
        await RetryPolicy().run(op)
    assert op.await_count == 1


@pytest.mark.asyncio
async def test_retry_policy_retries_transient_errors():
    op = AsyncMock(side_effect=[ConnectionError("down"), "ok"])
    policy = RetryPolicy(max_attempts=3, base_delay=0)
    assert await policy.run(op) == "ok"
    assert op.await_count == 2


@pytest.mark.asyncio
async def test_retry_policy_never_retries_configuration_errors():
    op = AsyncMock(side_effect=EmbeddingDimensionMismatch(4, 8))
    with pytest.raises(EmbeddingDimensionMismatch):
        await RetryPolicy(max_attempts=3, base_delay=0).run(op)
    assert op.await_count == 1
