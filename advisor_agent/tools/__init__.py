"""Tool contract, registry, and built-in tools."""

from advisor_agent.tools.base import (
    ParameterSpec,
    Tool,
    ToolDefinition,
    ToolExecutionContext,
    ToolResult,
)
from advisor_agent.tools.registry import FunctionTool, ToolRegistry

__all__ = [
    "FunctionTool",
    "ParameterSpec",
    "Tool",
    "ToolDefinition",
    "ToolExecutionContext",
    "ToolRegistry",
    "ToolResult",
]
