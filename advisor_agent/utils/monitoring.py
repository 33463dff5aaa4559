"""Prometheus metrics for tool execution and stream delivery."""

from __future__ import annotations

from prometheus_client import Counter, start_http_server

# Tool executions: total by tool name and status
TOOL_EXECUTIONS = Counter(
    "advisor_tool_executions_total",
    "Total tool executions",
    ["tool_name", "status"],
)

# Tool results that succeeded only because a dependency failure was absorbed
TOOL_DEGRADED = Counter(
    "advisor_tool_degraded_total",
    "Tool results returned in degraded mode",
    ["tool_name"],
)

STREAM_EVENTS = Counter(
    "advisor_stream_events_total",
    "Stream events emitted to subscribers",
    ["event_type"],
)


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus HTTP server for scraping. Call from main when enabled."""
    start_http_server(port)


def record_tool_execution(tool_name: str, status: str) -> None:
    TOOL_EXECUTIONS.labels(tool_name=tool_name, status=status).inc()


def record_tool_degraded(tool_name: str) -> None:
    TOOL_DEGRADED.labels(tool_name=tool_name).inc()


def record_stream_event(event_type: str) -> None:
    STREAM_EVENTS.labels(event_type=event_type).inc()
