"""Tests for SSE framing, the stream relay, and post-close title generation."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from advisor_agent.errors import RelayClosedError
from advisor_agent.llm.base import LLMResponse
from advisor_agent.llm.openai import OpenAIProvider
from advisor_agent.streaming import (
    ChunkEvent,
    CompleteEvent,
    ErrorEvent,
    SSEFrameDecoder,
    StreamRelay,
    encode_frame,
    run_streamed,
)
from advisor_agent.streaming.titles import clean_title, derive_chat_title, make_title_hook
from advisor_agent.utils.cancellation import CancellationToken


async def _collect(relay: StreamRelay) -> list[str]:
    return [frame async for frame in relay.frames()]


def _payload(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):-2])


def test_frame_format():
    assert encode_frame(ChunkEvent(data={"type": "thinking"})) == 'data: {"type": "chunk", "data": {"type": "thinking"}}\n\n'
    assert encode_frame(ErrorEvent(error="boom")) == 'data: {"type": "error", "error": "boom"}\n\n'


def test_decoder_handles_split_frames_and_utf8():
    frames = encode_frame(ChunkEvent(data="héllo ✓")) + encode_frame(CompleteEvent(data={"n": 1}))
    raw = frames.encode("utf-8")
    decoder = SSEFrameDecoder()
    events = []
    for i in range(len(raw)):
        events.extend(decoder.feed(raw[i:i + 1]))
    assert events == [ChunkEvent(data="héllo ✓"), CompleteEvent(data={"n": 1})]
    assert decoder.pending == ""


def test_decoder_keeps_partial_frame_pending():
    decoder = SSEFrameDecoder()
    assert decoder.feed('data: {"type": "chunk", "da') == []
    assert decoder.feed('ta": 1}\r\n\r\n') == [ChunkEvent(data=1)]


@pytest.mark.asyncio
async def test_relay_delivers_in_order_with_one_terminal():
    relay = StreamRelay(request_id="s1")
    await relay.chunk({"type": "thinking"})
    await relay.chunk({"type": "tool_call", "tool": "vector_search"})
    await relay.complete({"response": "done"})
    frames = await _collect(relay)
    assert [_payload(f)["type"] for f in frames] == ["chunk", "chunk", "complete"]
    assert _payload(frames[1])["data"]["tool"] == "vector_search"
    assert relay.closed


@pytest.mark.asyncio
async def test_emit_after_terminal_raises():
    relay = StreamRelay()
    await relay.fail("boom")
    with pytest.raises(RelayClosedError):
        await relay.chunk("late")
    with pytest.raises(RelayClosedError):
        await relay.complete("late")
    assert [_payload(f) for f in await _collect(relay)] == [{"type": "error", "error": "boom"}]


@pytest.mark.asyncio
async def test_sink_receives_frames_directly():
    sent = []

    async def sink(frame: str) -> None:
        sent.append(frame)

    relay = StreamRelay(sink=sink)
    await relay.chunk(1)
    await relay.complete(2)
    assert [_payload(f)["data"] for f in sent] == [1, 2]


@pytest.mark.asyncio
async def test_cancelled_relay_drops_frames_but_closes():
    token = CancellationToken()
    relay = StreamRelay(cancellation=token)
    await relay.chunk("before")
    token.cancel("client_disconnected")
    await relay.chunk("after")
    await relay.complete("done")
    assert relay.closed
    assert [_payload(f)["data"] for f in await _collect(relay)] == ["before"]


@pytest.mark.asyncio
async def test_side_effect_runs_after_complete():
    order = []
    relay = StreamRelay(sink=AsyncMock(side_effect=lambda frame: order.append("frame")))

    async def side_effect():
        order.append("side_effect")

    relay.after_close(side_effect)
    await relay.complete("done")
    await relay.wait_side_effect()
    assert order == ["frame", "side_effect"]


@pytest.mark.asyncio
async def test_side_effect_skipped_after_error():
    side_effect = AsyncMock()
    relay = StreamRelay()
    relay.after_close(side_effect)
    await relay.fail("boom")
    await relay.wait_side_effect()
    side_effect.assert_not_awaited()


@pytest.mark.asyncio
async def test_side_effect_failure_is_swallowed():
    relay = StreamRelay()
    relay.after_close(AsyncMock(side_effect=RuntimeError("title service down")))
    await relay.complete("done")
    await relay.wait_side_effect()
    assert [_payload(f)["type"] for f in await _collect(relay)] == ["complete"]


@pytest.mark.asyncio
async def test_only_one_side_effect():
    relay = StreamRelay()
    relay.after_close(AsyncMock())
    with pytest.raises(RelayClosedError):
        relay.after_close(AsyncMock())


@pytest.mark.asyncio
async def test_run_streamed_success():
    relay = StreamRelay()

    async def producer(emit):
        await emit({"type": "thinking"})
        return {"response": "answer"}

    consumer = asyncio.create_task(_collect(relay))
    await run_streamed(relay, producer)
    frames = await consumer
    assert [_payload(f) for f in frames] == [
        {"type": "chunk", "data": {"type": "thinking"}},
        {"type": "complete", "data": {"response": "answer"}},
    ]


@pytest.mark.asyncio
async def test_run_streamed_failure_becomes_error_event():
    relay = StreamRelay()

    async def producer(emit):
        await emit("partial")
        raise ValueError("orchestrator crashed")

    await run_streamed(relay, producer)
    frames = [_payload(f) for f in await _collect(relay)]
    assert frames == [{"type": "chunk", "data": "partial"}, {"type": "error", "error": "orchestrator crashed"}]


@pytest.mark.parametrize(
    "raw,expected",
    [
        ('"Pricing strategy for Acme"', "Pricing strategy for Acme"),
        ("Title: Quarterly review", "Quarterly review"),
        ("  ", "Chat"),
        ("x" * 80, "x" * 57 + "..."),
    ],
)
def test_clean_title(raw, expected):
    assert clean_title(raw) == expected


@pytest.mark.asyncio
async def test_derive_chat_title_truncates_messages():
    llm = AsyncMock()
    llm.generate.return_value = LLMResponse(content="Onboarding plan")
    title = await derive_chat_title([{"role": "user", "content": "a" * 900}, {"role": "assistant", "content": "ok"}], llm)
    assert title == "Onboarding plan"
    prompt = llm.generate.await_args.args[0][0]["content"]
    assert "User: " + "a" * 500 + "\n\nAssistant: ok" in prompt
    assert "a" * 501 not in prompt


@pytest.mark.asyncio
async def test_derive_chat_title_provider_failure():
    llm = AsyncMock()
    llm.generate.side_effect = RuntimeError("rate limited")
    assert await derive_chat_title([{"role": "user", "content": "hi"}], llm) is None


@pytest.mark.asyncio
async def test_title_hook_saves_title():
    llm = AsyncMock()
    llm.generate.return_value = LLMResponse(content="Title: Budget review")
    save_title = AsyncMock()
    hook = make_title_hook(llm, save_title)
    await hook("s1", [{"role": "user", "content": "Let's review the budget"}])
    save_title.assert_awaited_once_with("s1", "Budget review")


@pytest.mark.asyncio
async def test_openai_provider_builds_title_request():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="  Budget review \n"), finish_reason="stop")]
        )
    )
    provider = OpenAIProvider(model="gpt-4o-mini", client=client)
    response = await provider.generate([{"role": "user", "content": "hi"}])
    assert response.content == "Budget review"
    assert response.finish_reason == "stop"
    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 100


@pytest.mark.asyncio
async def test_failing_sink_still_ends_stream_and_runs_side_effect():
    side_effect = AsyncMock()
    relay = StreamRelay(sink=AsyncMock(side_effect=ConnectionResetError("peer gone")))
    relay.after_close(side_effect)
    with pytest.raises(ConnectionResetError):
        await relay.complete("done")
    assert relay.closed
    assert await _collect(relay) == []
    await relay.wait_side_effect()
    side_effect.assert_awaited_once()
