"""Tests for the structlog processors added by the tool core."""

from advisor_agent.utils.logging import (
    MAX_LOGGED_VALUE_LENGTH,
    SERVICE_NAME,
    _add_service,
    _truncate_long_values,
)


def test_long_values_are_truncated():
    transcript = "x" * (MAX_LOGGED_VALUE_LENGTH + 100)
    event = _truncate_long_values(None, "info", {"event": "analysis", "transcript": transcript, "count": 3})
    assert event["transcript"] == "x" * MAX_LOGGED_VALUE_LENGTH + f"... ({len(transcript)} chars)"
    assert event["count"] == 3


def test_tracebacks_are_kept_whole():
    trace = "Traceback\n" * 200
    event = _truncate_long_values(None, "error", {"event": "failed", "exception": trace})
    assert event["exception"] == trace


def test_service_name_added_once():
    assert _add_service(None, "info", {"event": "x"})["service"] == SERVICE_NAME
    assert _add_service(None, "info", {"event": "x", "service": "worker"})["service"] == "worker"
