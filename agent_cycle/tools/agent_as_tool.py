"""Agents as tools.

Wrapping an agent as a tool lets an orchestrating agent delegate work to
specialized agents. Each invocation runs one full call on the wrapped agent
and returns its final answer as the tool result.

Example::

    researcher = agent_as_tool(
        name="research_assistant",
        description="Researches topics and provides factual information",
        agent_factory=lambda: Agent(
            system_prompt="You are a research specialist.",
            tools=[web_search],
            callback_handler=None,
        ),
    )
    orchestrator = Agent(tools=[researcher], system_prompt="You coordinate specialists.")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from ..core.types import ToolResult, ToolSpec, ToolUse
from ..logging import get_logger
from .base import AgentTool

if TYPE_CHECKING:
    from ..core.agent import Agent

logger = get_logger(__name__)

DEFAULT_PARAMETER_NAME = "query"


class AgentAsTool(AgentTool):
    """An AgentTool that answers by running an agent.

    Args:
        name: Tool name
        description: What the wrapped agent does. Must be non-empty
        agent_factory: Returns the agent to run, called on every invocation
        parameter_name: Name of the single string input parameter
        parameter_description: Description of the input parameter
        return_full_result: Return the whole AgentResult as JSON instead of
            the final text

    Raises:
        ValueError: If name or description is empty
    """

    def __init__(
        self,
        name: str,
        description: str,
        agent_factory: Callable[[], "Agent"],
        parameter_name: str = DEFAULT_PARAMETER_NAME,
        parameter_description: Optional[str] = None,
        return_full_result: bool = False,
    ):
        if not name:
            raise ValueError("Agent tool requires a non-empty name")
        if not description:
            raise ValueError(
                f"Agent tool '{name}' must have a non-empty description. "
                f"The orchestrating model uses it to decide when to delegate."
            )
        self.name = name
        self.description = description
        self.agent_factory = agent_factory
        self.parameter_name = parameter_name
        self.parameter_description = parameter_description or f"Input {parameter_name} for the {name}"
        self.return_full_result = return_full_result

    @property
    def tool_name(self) -> str:
        return self.name

    @property
    def tool_spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            input_schema={
                "type": "object",
                "properties": {
                    self.parameter_name: {
                        "type": "string",
                        "description": self.parameter_description,
                    },
                },
                "required": [self.parameter_name],
            },
        )

    @property
    def tool_type(self) -> str:
        return "agent"

    async def invoke(self, tool_use: ToolUse, context: Any = None) -> ToolResult:
        tool_input = tool_use.input if isinstance(tool_use.input, dict) else {}
        query = tool_input.get(self.parameter_name)
        if not query:
            return ToolResult.error(tool_use.tool_use_id, f"Error: Missing required parameter: {self.parameter_name}")

        agent = self.agent_factory()
        logger.info("Delegating to agent", tool_name=self.name, agent_name=agent.name)
        try:
            result = await agent.call(str(query))
        except Exception as e:
            logger.warning("Delegated agent failed", tool_name=self.name, error=str(e))
            return ToolResult.error(tool_use.tool_use_id, f"Error: {e}")

        if self.return_full_result:
            return ToolResult(
                tool_use_id=tool_use.tool_use_id,
                status="success",
                content=[{"json": result.to_dict()}],
            )
        return ToolResult.success(tool_use.tool_use_id, result.text)


def agent_as_tool(
    name: str,
    description: str,
    agent_factory: Callable[[], "Agent"],
    parameter_name: str = DEFAULT_PARAMETER_NAME,
    parameter_description: Optional[str] = None,
    return_full_result: bool = False,
) -> AgentAsTool:
    """Create a tool that runs a fresh agent from ``agent_factory`` on every call."""
    return AgentAsTool(
        name=name,
        description=description,
        agent_factory=agent_factory,
        parameter_name=parameter_name,
        parameter_description=parameter_description,
        return_full_result=return_full_result,
    )


def stateful_agent_as_tool(
    name: str,
    description: str,
    agent: "Agent",
    parameter_name: str = DEFAULT_PARAMETER_NAME,
    parameter_description: Optional[str] = None,
    return_full_result: bool = False,
) -> AgentAsTool:
    """Create a tool that reuses ``agent``, so its history persists across calls."""
    return AgentAsTool(
        name=name,
        description=description,
        agent_factory=lambda: agent,
        parameter_name=parameter_name,
        parameter_description=parameter_description,
        return_full_result=return_full_result,
    )


def create_agent_tools(configs: dict[str, dict[str, Any]]) -> list[AgentAsTool]:
    """Create one agent tool per entry of ``configs``, keyed by tool name.

    Example:
        >>> tools = create_agent_tools({
        ...     "researcher": {"description": "Researches topics", "agent_factory": make_researcher},
        ...     "writer": {"description": "Writes content", "agent_factory": make_writer},
        ... })
    """
    return [agent_as_tool(name=name, **config) for name, config in configs.items()]
