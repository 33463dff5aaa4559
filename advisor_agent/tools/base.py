"""Tool contract: definitions, execution context, and result schema."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from advisor_agent.utils.cancellation import CancellationToken

ParameterType = Literal["string", "number", "integer", "boolean", "object", "array"]

# JSON-level primitive checks; bool is excluded from the numeric types explicitly
_TYPE_CHECKS: dict[str, Any] = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
}


class ParameterSpec(BaseModel):
    """Declared type and requiredness of one tool parameter."""

    model_config = ConfigDict(frozen=True)

    type: ParameterType
    required: bool = False
    description: str = ""
    default: Any = None

    def accepts(self, value: Any) -> bool:
        return _TYPE_CHECKS[self.type](value)


class ToolDefinition(BaseModel):
    """
    Immutable descriptor a tool publishes to the registry and the model.

    Attributes:
        name: Unique name within a registry.
        description: Shown to the model for tool selection.
        category: Free-form grouping tag (e.g. "knowledge").
        requires_approval: A human must confirm before side effects occur.
        parameters: Parameter name -> declared spec.
        idempotency_key: Parameter whose value identifies a side effect;
            two calls with the same value never run concurrently.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = "No description provided"
    category: str = "general"
    requires_approval: bool = False
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)
    idempotency_key: str | None = None

    def to_openai_schema(self) -> dict[str, Any]:
        """Return the OpenAI function-calling shape for this tool."""
        properties: dict[str, Any] = {}
        for pname, spec in self.parameters.items():
            prop: dict[str, Any] = {"type": spec.type, "description": spec.description}
            if spec.default is not None:
                prop["default"] = spec.default
            properties[pname] = prop
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [n for n, s in self.parameters.items() if s.required],
                },
            },
        }


class ToolExecutionContext(BaseModel):
    """Request-scoped values passed to every tool invocation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_id: str | int | None = None
    client_id: str | int | None = None
    project_id: str | int | None = None
    session_id: str | int | None = None
    extras: dict[str, Any] = Field(default_factory=dict)
    cancellation: CancellationToken = Field(default_factory=CancellationToken)


class ToolResult(BaseModel):
    """
    Structured result from any tool execution.

    Attributes:
        success: False only when the caller's request was malformed or the tool itself broke.
        data: Result payload (tool-specific).
        confidence: Retrieval quality in [0, 1]; meaningful only when success is True.
        source_type: Tag identifying the producing tool.
        data_points: Human-readable evidence summaries, in order.
        warning: Dependency problem that was absorbed.
        message: Human-facing note accompanying a warning.
        degraded: True when success was kept despite a dependency failure.
        error: Error message if success is False.
        metadata: Optional execution metadata.
        execution_time_ms: Duration in milliseconds.
    """

    success: bool
    data: Any = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source_type: str = ""
    data_points: list[dict[str, Any]] = Field(default_factory=list)
    warning: str | None = None
    message: str | None = None
    degraded: bool = False
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    execution_time_ms: float = 0.0

    @classmethod
    def failure(cls, error: str, *, source_type: str = "", data: Any = None) -> ToolResult:
        return cls(success=False, data=data, error=error, source_type=source_type)


class Tool(ABC):
    """Capability every tool implements: describe itself, execute a call."""

    @abstractmethod
    def describe(self) -> ToolDefinition:
        """Return the tool's immutable definition."""

    @abstractmethod
    async def execute(self, params: dict[str, Any], context: ToolExecutionContext) -> ToolResult:
        """Run the tool with already-validated params."""

    @property
    def name(self) -> str:
        return self.describe().name
