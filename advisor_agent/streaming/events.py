"""Stream event types and the ``data: <json>\\n\\n`` frame codec."""

from __future__ import annotations

import codecs
import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

FRAME_DELIMITER = "\n\n"
DATA_PREFIX = "data:"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
SSE_MEDIA_TYPE = "text/event-stream"


class ChunkEvent(BaseModel):
    type: Literal["chunk"] = "chunk"
    data: Any = None


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    data: Any = None


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


StreamEvent = Annotated[Union[ChunkEvent, CompleteEvent, ErrorEvent], Field(discriminator="type")]

_event_adapter: TypeAdapter[Any] = TypeAdapter(StreamEvent)

TERMINAL_TYPES = frozenset({"complete", "error"})


def is_terminal(event: ChunkEvent | CompleteEvent | ErrorEvent) -> bool:
    return event.type in TERMINAL_TYPES


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def encode_frame(event: ChunkEvent | CompleteEvent | ErrorEvent) -> str:
    """Serialize one event as a single SSE data frame."""
    if isinstance(event, ErrorEvent):
        payload: dict[str, Any] = {"type": event.type, "error": event.error}
    else:
        payload = {"type": event.type, "data": event.data}
    return f"{DATA_PREFIX} {json.dumps(payload, default=_json_default, ensure_ascii=False)}{FRAME_DELIMITER}"


def decode_event(payload: str | bytes) -> ChunkEvent | CompleteEvent | ErrorEvent:
    """Parse the JSON body of one frame into a typed event."""
    return _event_adapter.validate_json(payload)


class SSEFrameDecoder:
    """
    Incremental consumer-side parser.

    Reads may split frames, and even multi-byte UTF-8 characters, at any
    point; complete frames are returned as soon as their delimiter arrives.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: str | bytes) -> list[ChunkEvent | CompleteEvent | ErrorEvent]:
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk.replace("\r\n", "\n")
        events = []
        while FRAME_DELIMITER in self._buffer:
            frame, self._buffer = self._buffer.split(FRAME_DELIMITER, 1)
            data_lines = [
                line[len(DATA_PREFIX):].removeprefix(" ")
                for line in frame.split("\n")
                if line.startswith(DATA_PREFIX)
            ]
            if data_lines:
                events.append(decode_event("\n".join(data_lines)))
        return events

    @property
    def pending(self) -> str:
        """Bytes received but not yet terminated by a frame delimiter."""
        return self._buffer
