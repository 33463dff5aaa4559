"""Chat-completion provider used for auxiliary generations (session titles)."""

from advisor_agent.llm.base import LLMProvider, LLMResponse

__all__ = ["LLMProvider", "LLMResponse"]
