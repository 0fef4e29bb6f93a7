"""Tools: the AgentTool interface, registry, decorator and execution engine."""
from .base import AgentTool, ToolRegistry
from .decorators import FunctionTool, format_tool_return, tool
from .schema import TypeHintParsingException, generate_tool_schema
from .executor import (
    BoundedToolExecutor,
    ToolContext,
    run_tools,
    validate_and_prepare_tools,
)
from .agent_as_tool import (
    AgentAsTool,
    agent_as_tool,
    create_agent_tools,
    stateful_agent_as_tool,
)

__all__ = [
    "AgentTool",
    "ToolRegistry",
    "FunctionTool",
    "format_tool_return",
    "tool",
    "TypeHintParsingException",
    "generate_tool_schema",
    "BoundedToolExecutor",
    "ToolContext",
    "run_tools",
    "validate_and_prepare_tools",
    "AgentAsTool",
    "agent_as_tool",
    "create_agent_tools",
    "stateful_agent_as_tool",
]
