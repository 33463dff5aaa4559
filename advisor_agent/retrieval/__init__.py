"""Embedding and vector-index clients used by the semantic search tool."""

from advisor_agent.retrieval.embeddings import EmbeddingClient
from advisor_agent.retrieval.retry import RetryPolicy
from advisor_agent.retrieval.vector_index import SearchMatch, VectorIndexClient

__all__ = ["EmbeddingClient", "RetryPolicy", "SearchMatch", "VectorIndexClient"]
