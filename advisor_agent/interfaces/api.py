"""FastAPI surface: tool discovery and streamed message handling over SSE."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from advisor_agent import __version__
from advisor_agent.streaming.events import SSE_HEADERS, SSE_MEDIA_TYPE
from advisor_agent.streaming.relay import StreamRelay, run_streamed
from advisor_agent.tools.base import ToolExecutionContext
from advisor_agent.tools.registry import ToolRegistry
from advisor_agent.utils.cancellation import CancellationToken
from advisor_agent.utils.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger(__name__)

_project_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_project_root / ".env")

StreamCallback = Callable[[Any], Awaitable[None]]
TitleHook = Callable[[str, list[dict[str, Any]]], Awaitable[None]]

# Producer tasks outlive a disconnected response; keep them referenced until done
_running: set[asyncio.Task[Any]] = set()


class Orchestrator(Protocol):
    """Boundary of the external planner that decides which tools to call."""

    async def process_query(
        self,
        *,
        user_message: str,
        conversation_history: list[dict[str, Any]],
        context: ToolExecutionContext,
        registry: ToolRegistry,
        stream_callback: StreamCallback,
    ) -> Any: ...


class MessageRequest(BaseModel):
    message: str = Field(min_length=1)
    conversation_history: list[dict[str, Any]] = Field(default_factory=list)
    user_id: str | int | None = None
    client_id: str | int | None = None
    project_id: str | int | None = None


def create_app(
    registry: ToolRegistry,
    orchestrator: Orchestrator | None = None,
    title_hook: TitleHook | None = None,
) -> FastAPI:
    """
    Build the API app around an already-populated registry.

    Authentication and session persistence sit in front of this app; the
    caller identity arrives in the request body.
    """
    app = FastAPI(title="Advisor Agent Tool Core", version=__version__)
    app.state.registry = registry
    app.state.orchestrator = orchestrator
    app.state.title_hook = title_hook

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/tools")
    async def list_tools() -> dict[str, Any]:
        return {"tools": registry.get_tool_descriptions()}

    @app.post("/sessions/{session_id}/message")
    async def send_message(session_id: str, req: MessageRequest) -> StreamingResponse:
        if app.state.orchestrator is None:
            raise HTTPException(status_code=503, detail="No orchestrator configured")
        orch: Orchestrator = app.state.orchestrator

        token = CancellationToken()
        relay = StreamRelay(request_id=session_id, cancellation=token)
        context = ToolExecutionContext(
            user_id=req.user_id,
            client_id=req.client_id,
            project_id=req.project_id,
            session_id=session_id,
            cancellation=token,
        )

        async def producer(emit: StreamCallback) -> Any:
            return await orch.process_query(
                user_message=req.message,
                conversation_history=req.conversation_history,
                context=context,
                registry=registry,
                stream_callback=emit,
            )

        if title_hook is not None:
            conversation = [*req.conversation_history, {"role": "user", "content": req.message}]
            relay.after_close(lambda: title_hook(session_id, conversation))

        # The producer task copies the bound context for its log lines
        bind_request_context(session_id=session_id, user_id=req.user_id)
        try:
            task = asyncio.create_task(run_streamed(relay, producer))
        finally:
            clear_request_context()
        _running.add(task)
        task.add_done_callback(_running.discard)
        logger.info("stream_started", session_id=session_id, user_id=req.user_id)

        async def body():
            try:
                async for frame in relay.frames():
                    yield frame
            finally:
                if not relay.closed:
                    logger.info("stream_client_disconnected", session_id=session_id)
                    token.cancel("client_disconnected")

        return StreamingResponse(body(), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)

    return app


def build_app_from_config(
    config: dict[str, Any] | None = None,
    *,
    embedding_client: Any = None,
    index_client: Any = None,
    title_llm: Any = None,
) -> FastAPI:
    """
    Wire registry, optional orchestrator plugin, and title hook from config.

    ``api.title_hook`` names a custom hook factory; otherwise the built-in
    title hook is used when ``titles.save_title`` is configured.
    """
    from advisor_agent.streaming.titles import build_title_hook
    from advisor_agent.tools.factory import build_tool_registry
    from advisor_agent.tools.plugins import load_object
    from advisor_agent.utils.config import load_config

    config = config or load_config()
    registry = build_tool_registry(config, embedding_client=embedding_client, index_client=index_client)
    api_cfg = config.get("api", {})
    orchestrator = None
    if ref := api_cfg.get("orchestrator"):
        factory = load_object(ref)
        orchestrator = factory(config) if callable(factory) else factory
    if api_cfg.get("title_hook"):
        title_hook = load_object(api_cfg["title_hook"])(config)
    else:
        title_hook = build_title_hook(config, llm=title_llm)
    return create_app(registry, orchestrator=orchestrator, title_hook=title_hook)


def run_api(host: str | None = None, port: int | None = None) -> None:
    """Run the API with uvicorn. Entry point for the advisor-agent-api script."""
    import uvicorn

    from advisor_agent.utils.config import load_config
    from advisor_agent.utils.logging import configure_logging
    from advisor_agent.utils.monitoring import start_metrics_server

    config = load_config()
    configure_logging(config)
    metrics_cfg = config.get("metrics", {})
    if metrics_cfg.get("enabled"):
        start_metrics_server(int(metrics_cfg.get("port", 9090)))
    api_cfg = config.get("api", {})
    host = host or api_cfg.get("host", "0.0.0.0")
    port = int(os.getenv("AGENT_API_PORT", port or api_cfg.get("port", 8080)))
    uvicorn.run(build_app_from_config(config), host=host, port=port)
