"""OpenAI embedding client with a fixed model/dimension pair per deployment."""

from __future__ import annotations

import os
from typing import Any

from openai import AsyncOpenAI

from advisor_agent.errors import EmbeddingDimensionMismatch
from advisor_agent.retrieval.retry import RetryPolicy
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)


class EmbeddingClient:
    """
    Converts text to a fixed-dimension vector via the OpenAI embeddings API.

    The model and dimension are chosen once; a provider response of any
    other length is a configuration error, not a per-call failure.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        dimensions: int = 768,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        client: Any = None,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"), timeout=timeout)
        self.model = model
        self.dimensions = dimensions
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_config(cls, config: dict[str, Any], client: Any = None) -> EmbeddingClient:
        emb = config.get("embedding", {})
        return cls(
            api_key=emb.get("api_key"),
            model=emb.get("model", "text-embedding-3-small"),
            dimensions=int(emb.get("dimensions", 768)),
            timeout=float(emb.get("timeout_seconds", 30.0)),
            retry_policy=RetryPolicy.from_config(config),
            client=client,
        )

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single input string.

        Raises:
            EmbeddingDimensionMismatch: provider returned a vector of the wrong size.
        """

        async def _call() -> Any:
            return await self.client.embeddings.create(
                model=self.model,
                dimensions=self.dimensions,
                input=text,
            )

        response = await self.retry_policy.run(_call, name="embedding")
        embedding = list(response.data[0].embedding)
        if len(embedding) != self.dimensions:
            raise EmbeddingDimensionMismatch(self.dimensions, len(embedding), where="embedding")
        logger.debug("embedding_created", model=self.model, text_len=len(text))
        return embedding
