"""Tool execution: validation, dispatch and bounded parallelism.

``run_tools`` drives one batch of tool uses from a single assistant message
through a ToolHandler. With an executor and more than one request the batch
runs concurrently, otherwise strictly in order. Results always come back in
request order, and a raising handler becomes an error result.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..core.exceptions import ConfigurationError
from ..core.protocols import Model, ParallelToolExecutor, ToolHandler
from ..core.types import CycleMetrics, Message, RequestState, ToolConfig, ToolResult, ToolUse
from ..logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

INVALID_TOOL_USE_MESSAGE = "Invalid tool use: missing required fields"


@dataclass
class ToolContext:
    """Execution context handed to every tool invocation.

    Attributes:
        messages: The conversation history (read it, do not mutate it)
        model: Model provider of the running agent
        system_prompt: System prompt of the running agent
        tool_config: Tools advertised to the model in this cycle
        callback_handler: Observer of the running call
        request_state: Per-call state; set ``stop_event_loop`` to end the call
        invocation_state: Extra caller-supplied context (e.g. the owning agent)
    """
    messages: list[Message]
    model: Optional[Model] = None
    system_prompt: Optional[str] = None
    tool_config: Optional[ToolConfig] = None
    callback_handler: Callable[..., Any] = lambda **kwargs: None
    request_state: RequestState = field(default_factory=RequestState)
    invocation_state: dict[str, Any] = field(default_factory=dict)


class BoundedToolExecutor:
    """Runs tool tasks concurrently with at most ``max_workers`` in flight.

    Raises:
        ConfigurationError: If max_workers is less than 1
    """

    def __init__(self, max_workers: int):
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers

    async def execute(self, tasks: list[Callable[[], Awaitable[T]]]) -> list[T]:
        semaphore = asyncio.Semaphore(self.max_workers)

        async def _bounded(task: Callable[[], Awaitable[T]]) -> T:
            async with semaphore:
                return await task()

        return list(await asyncio.gather(*[_bounded(task) for task in tasks]))


def is_valid_tool_use(tool_use: ToolUse) -> bool:
    return bool(tool_use.tool_use_id) and bool(tool_use.name)


def validate_and_prepare_tools(message: Message) -> tuple[list[ToolUse], list[ToolResult]]:
    """Split the tool uses of ``message`` into runnable and rejected ones.

    Tool uses missing a name get an error result without being executed.
    Tool uses missing an id cannot be answered and are dropped with a warning.

    Returns:
        (valid tool uses, error results for invalid tool uses)
    """
    valid: list[ToolUse] = []
    invalid_results: list[ToolResult] = []
    for tool_use in message.tool_uses:
        if is_valid_tool_use(tool_use):
            valid.append(tool_use)
        elif tool_use.tool_use_id:
            logger.warning("Invalid tool use", tool_use_id=tool_use.tool_use_id)
            invalid_results.append(ToolResult.error(tool_use.tool_use_id, INVALID_TOOL_USE_MESSAGE))
        else:
            logger.error("Skipping tool use without id", tool_name=tool_use.name)
    return valid, invalid_results


async def run_tools(
    handler: ToolHandler,
    tool_uses: list[ToolUse],
    context: ToolContext,
    metrics: CycleMetrics,
    callback_handler: Callable[..., Any],
    executor: Optional[ParallelToolExecutor] = None,
) -> list[ToolResult]:
    """Execute ``tool_uses`` through ``handler``.

    Args:
        handler: Resolves and invokes tools by name
        tool_uses: Valid tool uses in request order
        context: Execution context passed to each tool
        metrics: Incremented once per executed tool use
        callback_handler: Observer receiving tool execution events
        executor: Optional parallel executor, used for batches of two or more

    Returns:
        One ToolResult per tool use, in request order
    """

    def make_task(tool_use: ToolUse) -> Callable[[], Awaitable[ToolResult]]:
        async def task() -> ToolResult:
            callback_handler(tool_execution_start=True, tool_use=tool_use)
            logger.debug("Executing tool", tool_name=tool_use.name, tool_use_id=tool_use.tool_use_id)
            try:
                result = await handler.process(tool_use, context)
            except Exception as e:
                logger.warning(
                    "Tool execution failed",
                    tool_name=tool_use.name,
                    tool_use_id=tool_use.tool_use_id,
                    error=str(e),
                )
                callback_handler(tool_execution_error=True, tool_use=tool_use, error=str(e))
                result = ToolResult.error(tool_use.tool_use_id, f"Tool execution failed: {e}")
            else:
                callback_handler(tool_execution_complete=True, tool_use=tool_use, tool_result=result)
            finally:
                metrics.tool_executions += 1
            return result
        return task

    tasks = [make_task(tool_use) for tool_use in tool_uses]

    if executor is not None and len(tasks) > 1:
        logger.debug("Running tools in parallel", count=len(tasks))
        return list(await executor.execute(tasks))

    results = []
    for task in tasks:
        results.append(await task())
    return results
