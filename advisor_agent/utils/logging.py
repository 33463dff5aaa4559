"""Structured logging for the tool core, built on structlog.

Every module logs through ``get_logger(__name__)`` with event-style keys.
Request-scoped values (session, user) are bound once per request with
``bind_request_context`` and merged into each line from contextvars.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

SERVICE_NAME = "advisor-agent"

# Queries, transcripts and model output can be arbitrarily long.
MAX_LOGGED_VALUE_LENGTH = 500


def _truncate_long_values(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if key != "exception" and isinstance(value, str) and len(value) > MAX_LOGGED_VALUE_LENGTH:
            event_dict[key] = f"{value[:MAX_LOGGED_VALUE_LENGTH]}... ({len(value)} chars)"
    return event_dict


def _add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger (used by uvicorn and chromadb).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        json_logs: Emit one JSON object per line; otherwise a console renderer,
            coloured only when stdout is a terminal.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            _truncate_long_values,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(config: dict[str, Any]) -> None:
    """Apply the ``logging`` config section (``level``, ``json``)."""
    log_cfg = config.get("logging", {})
    setup_logging(level=str(log_cfg.get("level", "INFO")), json_logs=bool(log_cfg.get("json", False)))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(**values: Any) -> None:
    """Attach request-scoped values (session_id, user_id) to every log line of the current task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
