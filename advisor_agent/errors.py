"""Exception types for the tool core.

Only configuration defects and protocol misuse are raised. Caller mistakes
and dependency outages are reported as ``ToolResult`` data instead.
"""

from __future__ import annotations

from typing import Any


class AgentCoreError(Exception):
    """Base class for errors raised by the tool core."""


class ToolConfigurationError(AgentCoreError):
    """The registry or a tool was wired up incorrectly at startup."""


class ToolNotFound(ToolConfigurationError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class EmbeddingDimensionMismatch(ToolConfigurationError):
    """Query embeddings and the vector index disagree on dimensionality."""

    def __init__(self, expected: int, actual: int, where: str = "embedding") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{where} dimension mismatch: expected {expected}, got {actual}")


class ApprovalRequired(AgentCoreError):
    """
    Raised instead of executing a tool that needs human confirmation.

    The orchestrator resolves it (e.g. by asking the user) and calls
    ``execute_tool(..., approved=True)``.
    """

    def __init__(self, tool_name: str, params: dict[str, Any]) -> None:
        self.tool_name = tool_name
        self.params = dict(params)
        super().__init__(f"Tool {tool_name} requires approval before execution")


class RelayClosedError(AgentCoreError):
    """An event was emitted on a stream that already sent its terminal event."""
