"""Core protocols for the collaborators of the event loop.

Using Protocol enables structural subtyping, so model providers, tool
handlers and executors can be supplied without inheriting from anything in
this package. These protocols do not import any provider SDK.
"""

from typing import Any, AsyncIterator, Awaitable, Callable, Protocol, TypeVar, runtime_checkable

from .types import Message, ToolConfig, ToolResult, ToolSpec, ToolUse

T = TypeVar("T")


@runtime_checkable
class Model(Protocol):
    """Protocol for model providers.

    ``stream`` yields events from ``agent_cycle.core.streaming`` for one
    response. Implementations raise ModelThrottledError when asked to back off
    and ContextWindowOverflowError when the history is too large; any other
    failure is opaque to the loop.

    Example:
        class EchoModel:
            async def stream(self, messages, tool_specs=None, system_prompt=None):
                yield MessageStartEvent()
                yield ContentBlockStartEvent()
                yield ContentBlockDeltaEvent(text=messages[-1].text)
                yield ContentBlockStopEvent()
                yield MessageStopEvent(stop_reason="end_turn")
    """

    def stream(
        self,
        messages: list[Message],
        tool_specs: list[ToolSpec] | None = None,
        system_prompt: str | None = None,
    ) -> AsyncIterator[Any]:
        ...


@runtime_checkable
class ToolHandler(Protocol):
    """Resolves a tool use to a tool and runs it.

    ``process`` must return a ToolResult answering the given tool use and
    should report unknown tools as error results rather than raising.
    """

    async def process(self, tool_use: ToolUse, context: Any) -> ToolResult:
        ...

    def preprocess(self, tool_use: ToolUse, tool_config: ToolConfig) -> ToolResult | None:
        ...


@runtime_checkable
class ParallelToolExecutor(Protocol):
    """Runs zero-argument coroutine factories and returns results in input order."""

    async def execute(self, tasks: list[Callable[[], Awaitable[T]]]) -> list[T]:
        ...
