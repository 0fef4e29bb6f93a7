"""Base interfaces and the registry for agent tools."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterable

from ..core.types import ToolConfig, ToolResult, ToolSpec, ToolUse
from ..logging import get_logger

if TYPE_CHECKING:
    from .executor import ToolContext

logger = get_logger(__name__)


class AgentTool(ABC):
    """A tool the model can invoke by name.

    Subclasses provide a unique ``tool_name``, a ``tool_spec`` advertised to
    the model, and ``invoke`` which must return a ToolResult answering the
    given tool use.
    """

    @property
    @abstractmethod
    def tool_name(self) -> str:
        ...

    @property
    @abstractmethod
    def tool_spec(self) -> ToolSpec:
        ...

    @property
    def tool_type(self) -> str:
        return "custom"

    @abstractmethod
    async def invoke(self, tool_use: ToolUse, context: "ToolContext | None" = None) -> ToolResult:
        ...


class ToolRegistry:
    """Registry for managing tools by name.

    Provides name-based lookup for the tool handler and builds the
    ToolConfig advertised to the model.
    """

    def __init__(self) -> None:
        """Initialize an empty tool registry."""
        self.tools: dict[str, AgentTool] = {}

    def register_tool(self, tool: AgentTool) -> None:
        """Register a tool, replacing any tool already registered under its name."""
        if tool.tool_name in self.tools:
            logger.warning("Tool already registered, overwriting", tool_name=tool.tool_name)
        self.tools[tool.tool_name] = tool
        logger.debug("Registered tool", tool_name=tool.tool_name, tool_type=tool.tool_type)

    def process_tools(self, tools: Iterable[Any]) -> list[str]:
        """Register multiple tools at once.

        Functions decorated with ``@tool`` are already AgentTool instances.

        Args:
            tools: AgentTool instances to register

        Returns:
            Names of the registered tools, in order

        Raises:
            ValueError: If an item is not an AgentTool

        Example:
            >>> registry = ToolRegistry()
            >>> @tool
            >>> def add(a: float, b: float) -> str:
            >>>     '''Add two numbers'''
            >>>     return str(a + b)
            >>>
            >>> registry.process_tools([add])
            ['add']
        """
        names = []
        for item in tools:
            if not isinstance(item, AgentTool):
                raise ValueError(
                    f"Unrecognized tool {item!r}. "
                    f"Did you forget to apply the @tool decorator?"
                )
            self.register_tool(item)
            names.append(item.tool_name)
        return names

    def get_tool(self, name: str) -> AgentTool | None:
        return self.tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self.tools)

    def get_all_tool_specs(self) -> list[ToolSpec]:
        """Return validated specs of all tools; invalid specs are logged and skipped."""
        specs = []
        for name, tool in self.tools.items():
            try:
                specs.append(normalize_tool_spec(tool.tool_spec))
            except ValueError as e:
                logger.warning("Tool spec validation failed", tool_name=name, error=str(e))
        return specs

    def initialize_tool_config(self) -> ToolConfig:
        return ToolConfig(tools=self.get_all_tool_specs())


def normalize_tool_spec(spec: ToolSpec) -> ToolSpec:
    """Check required fields and fill in a minimal object schema.

    Raises:
        ValueError: If name or description is missing
    """
    if not spec.name:
        raise ValueError("Tool spec missing required field: name")
    if not spec.description:
        raise ValueError(f"Tool spec '{spec.name}' missing required field: description")

    schema = dict(spec.input_schema or {})
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    schema.setdefault("required", [])
    return ToolSpec(name=spec.name, description=spec.description, input_schema=schema)
