"""Decorators turning plain functions into agent tools."""

import asyncio
import functools
import inspect
import json
from typing import Any, Callable, Optional

from ..core.types import ToolResult, ToolSpec, ToolUse
from ..logging import get_logger
from .base import AgentTool
from .schema import TypeHintParsingException, generate_tool_schema

logger = get_logger(__name__)

# A parameter with this name receives the ToolContext instead of model input.
CONTEXT_PARAM = "tool_context"


def format_tool_return(tool_use_id: str, value: Any) -> ToolResult:
    """Shape an arbitrary return value into a ToolResult.

    Only a ToolResult instance is taken as already shaped; it is re-keyed to
    ``tool_use_id``. Strings become a single text item; anything else,
    including dicts, is serialized to indented JSON text.
    """
    if isinstance(value, ToolResult):
        return ToolResult(tool_use_id=tool_use_id, status=value.status, content=value.content)
    if isinstance(value, str):
        return ToolResult.success(tool_use_id, value)
    return ToolResult.success(tool_use_id, json.dumps(value, indent=2, default=str))


class FunctionTool(AgentTool):
    """An AgentTool backed by a Python function.

    Coroutine functions are awaited; plain functions run in a worker thread
    via ``asyncio.to_thread`` so they never block the event loop. The wrapped
    function stays directly callable.
    """

    def __init__(self, func: Callable[..., Any], schema: dict[str, Any]):
        self.func = func
        self.__tool_schema__ = schema
        self._spec = ToolSpec(
            name=schema["name"],
            description=schema["description"],
            input_schema=schema["input_schema"],
        )
        self._signature = inspect.signature(func)
        self._wants_context = CONTEXT_PARAM in self._signature.parameters
        functools.update_wrapper(self, func)

    @property
    def tool_name(self) -> str:
        return self._spec.name

    @property
    def tool_spec(self) -> ToolSpec:
        return self._spec

    @property
    def tool_type(self) -> str:
        return "function"

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)

    async def invoke(self, tool_use: ToolUse, context: Any = None) -> ToolResult:
        if tool_use.input is not None and not isinstance(tool_use.input, dict):
            return ToolResult.error(
                tool_use.tool_use_id,
                f"Error: tool input must be an object, got {type(tool_use.input).__name__}",
            )
        arguments = dict(tool_use.input or {})
        if self._wants_context:
            arguments[CONTEXT_PARAM] = context

        try:
            bound = self._signature.bind(**arguments)
        except TypeError as e:
            return ToolResult.error(tool_use.tool_use_id, f"Error: invalid input for {self.tool_name}: {e}")

        try:
            if inspect.iscoroutinefunction(self.func):
                value = await self.func(*bound.args, **bound.kwargs)
            else:
                value = await asyncio.to_thread(self.func, *bound.args, **bound.kwargs)
        except Exception as e:
            logger.warning("Function tool raised", tool_name=self.tool_name, error=str(e))
            return ToolResult.error(tool_use.tool_use_id, f"Error: {e}")

        return format_tool_return(tool_use.tool_use_id, value)


def tool(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Decorator that turns a function into a FunctionTool.

    The schema is generated from the function's type hints and Google-style
    docstring. Every parameter needs a type hint; parameters with defaults
    are optional. A parameter named ``tool_context`` is hidden from the
    schema and receives the execution context.

    Args:
        func: The function to decorate (when used without parentheses)
        name: Tool name override. Defaults to the function name
        description: Description override. Defaults to the docstring summary

    Returns:
        A FunctionTool, or a decorator producing one

    Raises:
        TypeHintParsingException: If type hints are missing or cannot be parsed

    Example:
        >>> @tool
        >>> def add(a: float, b: float) -> str:
        >>>     '''Add two numbers together and return the sum.
        >>>
        >>>     Args:
        >>>         a: The first number to add
        >>>         b: The second number to add
        >>>     '''
        >>>     return str(a + b)
        >>>
        >>> add.tool_spec.name
        'add'
    """

    def decorator(f: Callable[..., Any]) -> FunctionTool:
        try:
            schema = generate_tool_schema(
                f, name=name, description=description,
                skip_params=("self", "cls", CONTEXT_PARAM),
            )
        except TypeHintParsingException as e:
            raise TypeHintParsingException(
                f"Failed to generate tool schema for function '{f.__name__}': {e}"
            ) from e
        return FunctionTool(f, schema)

    if func is not None:
        return decorator(func)
    return decorator
