"""Cancellation token threaded through tool execution and stream delivery."""

from __future__ import annotations

import asyncio


class CancellationToken:
    """
    One-shot cancellation signal for a single logical request.

    The HTTP layer cancels it when the subscriber disconnects; the registry
    checks it before dispatch and aborts tools still running when it fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
