"""OpenAI chat-completions provider."""

from __future__ import annotations

import os
from typing import Any

from openai import AsyncOpenAI

from advisor_agent.llm.base import LLMProvider, LLMResponse
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI API provider using chat completions."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 100,
        timeout: float = 30.0,
        client: Any = None,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> LLMResponse:
        request: dict[str, Any] = {
            "model": kwargs.get("model") or self.model,
            "messages": messages,
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }
        try:
            response = await self.client.chat.completions.create(**request, timeout=kwargs.get("timeout", self.timeout))
        except Exception as e:
            logger.exception("openai_generate_failed", model=request["model"], error=str(e))
            raise
        choice = response.choices[0] if response.choices else None
        if not choice:
            return LLMResponse(content="", finish_reason="error")
        return LLMResponse(content=(choice.message.content or "").strip(), finish_reason=choice.finish_reason)
