"""Tool handler resolving tool uses through a ToolRegistry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.types import ToolConfig, ToolResult, ToolUse
from ..logging import get_logger
from ..tools.base import ToolRegistry

if TYPE_CHECKING:
    from ..tools.executor import ToolContext

logger = get_logger(__name__)


class AgentToolHandler:
    """Resolves tools by name and invokes them.

    Unknown tools never raise; they are answered with an error result naming
    the tool so the model can correct itself on the next cycle.
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def preprocess(self, tool_use: ToolUse, tool_config: ToolConfig | None) -> ToolResult | None:
        """Reject tool uses naming a tool that was not advertised this cycle."""
        if tool_config is not None and tool_use.name not in tool_config.tool_names:
            logger.warning("Model requested unknown tool", tool_name=tool_use.name)
            return ToolResult.error(tool_use.tool_use_id, f"Tool '{tool_use.name}' not found")
        return None

    async def process(self, tool_use: ToolUse, context: "ToolContext") -> ToolResult:
        rejected = self.preprocess(tool_use, context.tool_config if context else None)
        if rejected is not None:
            return rejected

        tool = self.registry.get_tool(tool_use.name)
        if tool is None:
            logger.warning("Tool missing from registry", tool_name=tool_use.name)
            return ToolResult.error(tool_use.tool_use_id, f"Tool '{tool_use.name}' not found in registry")

        return await tool.invoke(tool_use, context)
