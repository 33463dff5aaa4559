"""Streaming delivery of orchestrator progress over SSE frames."""

from advisor_agent.streaming.events import (
    ChunkEvent,
    CompleteEvent,
    ErrorEvent,
    SSEFrameDecoder,
    StreamEvent,
    encode_frame,
)
from advisor_agent.streaming.relay import RelayState, StreamRelay, run_streamed

__all__ = [
    "ChunkEvent",
    "CompleteEvent",
    "ErrorEvent",
    "RelayState",
    "SSEFrameDecoder",
    "StreamEvent",
    "StreamRelay",
    "encode_frame",
    "run_streamed",
]
