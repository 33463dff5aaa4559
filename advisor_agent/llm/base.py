"""LLM provider abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """Structured response from an LLM provider."""

    content: str
    finish_reason: str | None = None


class LLMProvider(ABC):
    """Abstract base for chat-completion providers."""

    @abstractmethod
    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> LLMResponse:
        """Generate a single completion for the given chat messages."""
        pass
