"""Tool registry: startup registration, parameter validation, and guarded dispatch."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable

from advisor_agent.errors import ApprovalRequired, ToolConfigurationError, ToolNotFound
from advisor_agent.tools.base import (
    ParameterSpec,
    Tool,
    ToolDefinition,
    ToolExecutionContext,
    ToolResult,
)
from advisor_agent.utils.logging import get_logger
from advisor_agent.utils.monitoring import record_tool_degraded, record_tool_execution

logger = get_logger(__name__)

ToolHandler = Callable[[dict[str, Any], ToolExecutionContext], Awaitable[ToolResult]]


class FunctionTool(Tool):
    """Adapts a plain async function to the Tool contract."""

    def __init__(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        self._definition = definition
        self._handler = handler

    def describe(self) -> ToolDefinition:
        return self._definition

    async def execute(self, params: dict[str, Any], context: ToolExecutionContext) -> ToolResult:
        return await self._handler(params, context)


class ToolRegistry:
    """
    Name -> tool mapping, populated at startup and read-only afterwards.

    Example:
        >>> registry = ToolRegistry()
        >>> @registry.register_function("echo", "Echo back", "test",
        ...     parameters={"msg": ParameterSpec(type="string", required=True)})
        ... async def echo(params, context) -> ToolResult:
        ...     return ToolResult(success=True, data=params["msg"])
    """

    def __init__(self, tools: Iterable[Tool] = (), default_timeout: float = 30.0) -> None:
        self._tools: dict[str, Tool] = {}
        self._in_flight: set[tuple[str, Any]] = set()
        self.default_timeout = default_timeout
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> Tool:
        definition = tool.describe()
        if not definition.name:
            raise ToolConfigurationError("Tool must have a name")
        if definition.name in self._tools:
            raise ToolConfigurationError(f"Duplicate tool name: {definition.name}")
        if definition.idempotency_key and definition.idempotency_key not in definition.parameters:
            raise ToolConfigurationError(
                f"Tool {definition.name} declares undeclared idempotency key {definition.idempotency_key}"
            )
        self._tools[definition.name] = tool
        logger.info("tool_registered", tool_name=definition.name, category=definition.category)
        return tool

    def register_function(
        self,
        name: str,
        description: str,
        category: str,
        parameters: dict[str, ParameterSpec] | None = None,
        requires_approval: bool = False,
        idempotency_key: str | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator to register an async ``(params, context)`` function as a tool."""

        def decorator(fn: ToolHandler) -> ToolHandler:
            definition = ToolDefinition(
                name=name,
                description=description,
                category=category,
                requires_approval=requires_approval,
                parameters=parameters or {},
                idempotency_key=idempotency_key,
            )
            self.register(FunctionTool(definition, fn))
            return fn

        return decorator

    def get_tool(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFound(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[ToolDefinition]:
        return [tool.describe() for tool in self._tools.values()]

    def list_tools_by_category(self, category: str) -> list[ToolDefinition]:
        return [d for d in self.list_tools() if d.category == category]

    def get_tool_descriptions(self) -> list[dict[str, Any]]:
        """Compact descriptions for the orchestrator's planning prompt."""
        return [
            {
                "name": d.name,
                "description": d.description,
                "parameters": {n: s.model_dump(exclude_none=True) for n, s in d.parameters.items()},
                "category": d.category,
            }
            for d in self.list_tools()
        ]

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """Return OpenAI function-calling tool schemas."""
        return [d.to_openai_schema() for d in self.list_tools()]

    def validate_parameters(self, name: str, params: dict[str, Any]) -> list[str]:
        """
        Check ``params`` against the tool's declared parameters.

        Returns every violation found; an empty list means the call may be
        dispatched. Raises ToolNotFound for unknown tools.
        """
        definition = self.get_tool(name).describe()
        if not isinstance(params, dict):
            return [f"Parameters for tool {name} must be an object"]
        errors: list[str] = []
        for pname, spec in definition.parameters.items():
            if pname not in params or params[pname] is None:
                if spec.required:
                    errors.append(f"Missing required parameter: {pname} for tool {name}")
                continue
            if not spec.accepts(params[pname]):
                errors.append(f"Parameter {pname} for tool {name} must be of type {spec.type}")
        for pname in params:
            if pname not in definition.parameters:
                errors.append(f"Unknown parameter: {pname} for tool {name}")
        return errors

    async def execute_tool(
        self,
        name: str,
        params: dict[str, Any],
        context: ToolExecutionContext | None = None,
        *,
        approved: bool = False,
        timeout: float | None = None,
    ) -> ToolResult:
        """
        Execute a tool by name with validation, approval gating and timeout.

        ToolNotFound and ApprovalRequired propagate; every other failure is
        returned as a ToolResult so a model-driven caller can react to it.
        """
        tool = self.get_tool(name)
        definition = tool.describe()
        context = context or ToolExecutionContext()

        errors = self.validate_parameters(name, params)
        if errors:
            logger.warning("tool_parameters_invalid", tool_name=name, errors=errors)
            record_tool_execution(name, "invalid")
            return ToolResult.failure(
                "; ".join(errors),
                source_type=name,
                data={"errors": errors, "tool": name},
            )

        if definition.requires_approval and not approved:
            logger.info("tool_approval_required", tool_name=name)
            raise ApprovalRequired(name, params)

        if context.cancellation.cancelled:
            record_tool_execution(name, "cancelled")
            return ToolResult.failure("Request cancelled before tool execution", source_type=name)

        call_params = self._apply_defaults(definition, params)
        lock_key = self._idempotency_slot(definition, call_params)
        if lock_key is not None:
            if lock_key in self._in_flight:
                logger.warning("tool_duplicate_in_flight", tool_name=name, key=lock_key[1])
                record_tool_execution(name, "duplicate")
                return ToolResult.failure(
                    f"Tool {name} is already running for {definition.idempotency_key}={lock_key[1]}",
                    source_type=name,
                )
            self._in_flight.add(lock_key)

        timeout = self.default_timeout if timeout is None else timeout
        start = time.perf_counter()
        try:
            result = await self._run_cancellable(tool, call_params, context, timeout)
            if result is None:
                logger.info("tool_cancelled", tool_name=name, reason=context.cancellation.reason)
                record_tool_execution(name, "cancelled")
                return ToolResult.failure("Request cancelled during tool execution", source_type=name)
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning("tool_timeout", tool_name=name, timeout=timeout)
            record_tool_execution(name, "timeout")
            return ToolResult(
                success=False,
                error=f"Tool timed out after {timeout}s",
                source_type=name,
                execution_time_ms=elapsed_ms,
            )
        except ToolConfigurationError:
            record_tool_execution(name, "configuration_error")
            raise
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.exception("tool_error", tool_name=name, error=str(e))
            record_tool_execution(name, "failure")
            return ToolResult(
                success=False,
                error=str(e),
                source_type=name,
                execution_time_ms=elapsed_ms,
            )
        finally:
            if lock_key is not None:
                self._in_flight.discard(lock_key)

        elapsed_ms = (time.perf_counter() - start) * 1000
        if result.execution_time_ms == 0.0:
            result = result.model_copy(update={"execution_time_ms": elapsed_ms})
        logger.info(
            "tool_executed",
            tool_name=name,
            success=result.success,
            degraded=result.degraded,
            execution_time_ms=elapsed_ms,
        )
        record_tool_execution(name, "success" if result.success else "failure")
        if result.degraded:
            record_tool_degraded(name)
        return result

    async def execute_many(
        self,
        calls: list[tuple[str, dict[str, Any]]],
        context: ToolExecutionContext | None = None,
    ) -> list[ToolResult]:
        """Run several tool calls for the same turn concurrently, results in call order."""
        context = context or ToolExecutionContext()
        return list(await asyncio.gather(*(self.execute_tool(n, p, context) for n, p in calls)))

    @staticmethod
    def _apply_defaults(definition: ToolDefinition, params: dict[str, Any]) -> dict[str, Any]:
        merged = {n: s.default for n, s in definition.parameters.items() if s.default is not None}
        merged.update({k: v for k, v in params.items() if v is not None})
        return merged

    @staticmethod
    def _idempotency_slot(definition: ToolDefinition, params: dict[str, Any]) -> tuple[str, Any] | None:
        if definition.idempotency_key is None or definition.idempotency_key not in params:
            return None
        value = params[definition.idempotency_key]
        try:
            hash(value)
        except TypeError:
            value = repr(value)
        return (definition.name, value)

    @staticmethod
    async def _run_cancellable(
        tool: Tool,
        params: dict[str, Any],
        context: ToolExecutionContext,
        timeout: float,
    ) -> ToolResult | None:
        """Await the tool, or return None if the request is cancelled first."""
        task = asyncio.ensure_future(tool.execute(params, context))
        watcher = asyncio.ensure_future(context.cancellation.wait())
        try:
            done, _ = await asyncio.wait({task, watcher}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if task in done:
                return task.result()
            if watcher in done:
                return None
            raise asyncio.TimeoutError()
        finally:
            watcher.cancel()
            if not task.done():
                task.cancel()
