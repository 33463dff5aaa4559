"""Retry policy wrapping calls to the embedding and vector-index services."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from advisor_agent.errors import ToolConfigurationError
from advisor_agent.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Exponential-backoff retry for transient dependency failures.

    ``max_attempts=1`` (the default) means a single call with no retry.
    Configuration errors are never retried.
    """

    def __init__(self, max_attempts: int = 1, base_delay: float = 0.5, max_delay: float = 8.0) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay

    @classmethod
    def from_config(cls, config: dict) -> RetryPolicy:
        retry_cfg = config.get("retry", {})
        return cls(
            max_attempts=int(retry_cfg.get("max_attempts", 1)),
            base_delay=float(retry_cfg.get("base_delay_seconds", 0.5)),
        )

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]], *, name: str = "operation") -> T:
        attempt = 1
        while True:
            try:
                return await operation()
            except ToolConfigurationError:
                raise
            except Exception as e:
                if attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning("dependency_retry", operation=name, attempt=attempt, delay=delay, error=str(e))
                await asyncio.sleep(delay)
                attempt += 1
