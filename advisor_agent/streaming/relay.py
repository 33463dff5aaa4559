"""Single-writer relay delivering one request's events to one subscriber."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable

from advisor_agent.errors import RelayClosedError
from advisor_agent.streaming.events import (
    ChunkEvent,
    CompleteEvent,
    ErrorEvent,
    encode_frame,
    is_terminal,
)
from advisor_agent.utils.cancellation import CancellationToken
from advisor_agent.utils.logging import get_logger
from advisor_agent.utils.monitoring import record_stream_event

logger = get_logger(__name__)

SideEffect = Callable[[], Awaitable[Any]]
Producer = Callable[[Callable[[Any], Awaitable[None]]], Awaitable[Any]]

# Strong references to fire-and-forget side-effect tasks until they finish
_background_tasks: set[asyncio.Task[Any]] = set()


class RelayState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class StreamRelay:
    """
    Ordered event channel: ``OPEN -> chunk* -> (complete | error) -> CLOSED``.

    Each emitted event is framed and handed to the transport immediately.
    Emitting after the terminal event raises RelayClosedError. Callers must
    keep to a single producer per relay.

    Example:
        >>> relay = StreamRelay()
        >>> await relay.chunk({"type": "thinking"})
        >>> await relay.complete({"response": "done"})
        >>> frames = [f async for f in relay.frames()]
    """

    def __init__(
        self,
        request_id: str | int | None = None,
        cancellation: CancellationToken | None = None,
        sink: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self.request_id = request_id
        self.cancellation = cancellation or CancellationToken()
        self.state = RelayState.OPEN
        self.events_sent = 0
        self._sink = sink
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._side_effect: SideEffect | None = None
        self._side_effect_task: asyncio.Task[Any] | None = None
        self._terminal_type: str | None = None

    @property
    def closed(self) -> bool:
        return self.state is RelayState.CLOSED

    async def emit(self, event: ChunkEvent | CompleteEvent | ErrorEvent) -> None:
        if self.closed:
            raise RelayClosedError(f"Stream {self.request_id} already closed; cannot emit {event.type}")
        terminal = is_terminal(event)
        if terminal:
            self.state = RelayState.CLOSED
            self._terminal_type = event.type

        try:
            if self.cancellation.cancelled:
                logger.debug("stream_event_dropped", request_id=self.request_id, event_type=event.type)
            else:
                frame = encode_frame(event)
                if self._sink is not None:
                    await self._sink(frame)
                else:
                    self._queue.put_nowait(frame)
                self.events_sent += 1
                record_stream_event(event.type)
        finally:
            # A failing sink must not leave the subscriber waiting for the end of stream.
            if terminal:
                self._queue.put_nowait(None)
                logger.info(
                    "stream_closed",
                    request_id=self.request_id,
                    terminal=event.type,
                    events_sent=self.events_sent,
                )
                if event.type == "complete":
                    self._start_side_effect()

    async def chunk(self, data: Any) -> None:
        await self.emit(ChunkEvent(data=data))

    async def complete(self, data: Any) -> None:
        await self.emit(CompleteEvent(data=data))

    async def fail(self, error: str) -> None:
        await self.emit(ErrorEvent(error=error))

    async def frames(self) -> AsyncIterator[str]:
        """Yield encoded frames in emission order until the terminal frame."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    def after_close(self, side_effect: SideEffect) -> None:
        """
        Register the one out-of-band task to run after a successful terminal event.

        It never delays the terminal frame, and its failures are logged only.
        """
        if self._side_effect is not None:
            raise RelayClosedError("A post-close side effect is already registered")
        self._side_effect = side_effect
        if self.closed and self._terminal_type == "complete":
            self._start_side_effect()

    def _start_side_effect(self) -> None:
        if self._side_effect is None or self._side_effect_task is not None:
            return
        task = asyncio.get_running_loop().create_task(self._run_side_effect(self._side_effect))
        self._side_effect_task = task
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def _run_side_effect(self, side_effect: SideEffect) -> None:
        try:
            await side_effect()
        except Exception as e:
            logger.exception("stream_side_effect_failed", request_id=self.request_id, error=str(e))

    async def wait_side_effect(self) -> None:
        """Await the post-close task if one was started (tests and graceful shutdown)."""
        if self._side_effect_task is not None:
            await self._side_effect_task


async def run_streamed(relay: StreamRelay, producer: Producer) -> None:
    """
    Drive one request through the relay.

    ``producer`` receives the relay's chunk callback; its return value is
    sent as the ``complete`` payload, an exception becomes the ``error``
    event. Exactly one terminal event is emitted either way.
    """
    try:
        result = await producer(relay.chunk)
    except RelayClosedError:
        raise
    except Exception as e:
        logger.exception("stream_producer_failed", request_id=relay.request_id, error=str(e))
        await relay.fail(str(e) or e.__class__.__name__)
        return
    await relay.complete(result)
