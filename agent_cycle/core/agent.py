"""The Agent façade.

An Agent owns a conversation history, a tool registry, a conversation
manager and lifetime metrics. Each call appends the prompt, runs the event
loop until the model answers, and trims the history afterwards.

Example:
    >>> from agent_cycle import Agent, tool
    >>>
    >>> @tool
    >>> def add(a: float, b: float) -> str:
    >>>     '''Add two numbers.'''
    >>>     return str(a + b)
    >>>
    >>> agent = Agent(tools=[add], system_prompt="You are a calculator.")
    >>> result = await agent("What is 2 + 3?")
    >>> print(result.text)
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, AsyncIterator, Callable, Iterable, Optional, Union

from ..handlers.callbacks import CompositeCallbackHandler, PrintingCallbackHandler, null_callback_handler
from ..handlers.tool_handler import AgentToolHandler
from ..logging import bind_context, get_context, get_logger, restore_context
from ..providers.anthropic.model import DEFAULT_MODEL, AnthropicModel
from ..tools.base import ToolRegistry
from ..tools.executor import BoundedToolExecutor, ToolContext
from .conversation_manager import ConversationManager, SlidingWindowConversationManager
from .event_loop import CycleConfig, event_loop_cycle
from .exceptions import ConfigurationError, ContextWindowOverflowError, ToolNotFoundError
from .protocols import Model
from .retry import ThrottleConfig
from .types import (
    AgentResult,
    ContentBlock,
    CycleMetrics,
    Message,
    RequestState,
    ToolConfig,
    ToolResult,
    ToolUse,
)

logger = get_logger(__name__)

DEFAULT_MAX_PARALLEL_TOOLS = 1
DEFAULT_MAX_OVERFLOW_RETRIES = 5

# Marks the end of the event stream produced by stream_async.
_STREAM_END = object()

_DEFAULT = object()


class ToolCaller:
    """Handle for invoking one registered tool directly.

    Obtained from ``agent.tool(name)``; awaiting a call runs the tool through
    the agent's tool handler outside of any model cycle.
    """

    def __init__(self, agent: "Agent", name: str):
        self.agent = agent
        self.name = name

    async def __call__(self, **tool_input: Any) -> ToolResult:
        return await self.agent._call_tool_directly(self.name, tool_input)

    def __repr__(self) -> str:
        return f"ToolCaller(name={self.name!r})"


class Agent:
    """Drives conversations between a caller, a model and a set of tools.

    Args:
        model: A Model implementation, a model id for the default Anthropic
            provider, or None for the provider's default model.
        messages: Initial conversation history. The list is used in place.
        tools: AgentTool instances (``@tool`` functions, agent tools ...)
        system_prompt: System prompt sent with every model request
        callback_handler: Observer for loop events. Defaults to a
            PrintingCallbackHandler; None disables observation.
        conversation_manager: Window strategy. Defaults to
            SlidingWindowConversationManager().
        max_parallel_tools: Upper bound on concurrently running tools.
            1 runs tools sequentially.
        record_direct_tool_call: Whether direct tool calls are recorded in
            the history.
        name: Agent name, used in logs and when composing agents as tools
        description: Agent description, used when composing agents as tools
        throttle_config: Backoff settings for throttled model requests
        max_overflow_retries: Maximum context reductions within one call

    Raises:
        ConfigurationError: If max_parallel_tools or max_overflow_retries is invalid
    """

    def __init__(
        self,
        model: Union[Model, str, None] = None,
        messages: Optional[list[Message]] = None,
        tools: Optional[Iterable[Any]] = None,
        system_prompt: Optional[str] = None,
        callback_handler: Any = _DEFAULT,
        conversation_manager: Optional[ConversationManager] = None,
        max_parallel_tools: int = DEFAULT_MAX_PARALLEL_TOOLS,
        record_direct_tool_call: bool = True,
        name: Optional[str] = None,
        description: Optional[str] = None,
        throttle_config: Optional[ThrottleConfig] = None,
        max_overflow_retries: int = DEFAULT_MAX_OVERFLOW_RETRIES,
    ):
        if model is None or isinstance(model, str):
            model = AnthropicModel(model_id=model or DEFAULT_MODEL)
        self.model = model
        self.messages: list[Message] = messages if messages is not None else []
        self.system_prompt = system_prompt

        if callback_handler is _DEFAULT:
            callback_handler = PrintingCallbackHandler()
        elif callback_handler is None:
            callback_handler = null_callback_handler
        self.callback_handler: Callable[..., Any] = callback_handler

        self.conversation_manager = conversation_manager or SlidingWindowConversationManager()

        if max_parallel_tools < 1:
            raise ConfigurationError(f"max_parallel_tools must be greater than 0, got {max_parallel_tools}")
        self.max_parallel_tools = max_parallel_tools
        self.tool_executor = BoundedToolExecutor(max_parallel_tools) if max_parallel_tools > 1 else None

        if max_overflow_retries < 0:
            raise ConfigurationError(f"max_overflow_retries must be >= 0, got {max_overflow_retries}")
        self.max_overflow_retries = max_overflow_retries

        self.record_direct_tool_call = record_direct_tool_call
        self.name = name
        self.description = description
        self.throttle_config = throttle_config or ThrottleConfig()

        self.tool_registry = ToolRegistry()
        self.tool_handler = AgentToolHandler(self.tool_registry)
        if tools:
            self.tool_registry.process_tools(tools)

        self.metrics = CycleMetrics()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def tool_names(self) -> list[str]:
        return self.tool_registry.tool_names

    @property
    def tool_config(self) -> ToolConfig:
        return self.tool_registry.initialize_tool_config()

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def __call__(self, prompt: str, request_state: Optional[dict] = None) -> AgentResult:
        return await self.call(prompt, request_state)

    async def call(self, prompt: str, request_state: Optional[dict] = None) -> AgentResult:
        """Process a prompt through the event loop.

        The prompt is appended to the history and cycles run until the model
        returns a terminal answer. Routine trimming runs afterwards, whether
        the call succeeded or not.

        Args:
            prompt: User prompt text
            request_state: Optional state shared with tools for this call

        Returns:
            AgentResult with the final message, metrics and request state

        Raises:
            ContextWindowOverflowError: If the history cannot be reduced enough
            ModelThrottledError: If the model stays throttled
            EventLoopError: For any other failure during the call
        """
        return await self._run(prompt, request_state, self.callback_handler)

    async def stream_async(
        self, prompt: str, request_state: Optional[dict] = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Process a prompt and yield loop events as they happen.

        Each yielded item is the keyword dict an observer would receive. The
        last item is ``{"result": AgentResult}``. If the call fails, every
        event emitted before the failure is yielded and the error is raised.

        Example:
            >>> async for event in agent.stream_async("Hello"):
            ...     if "data" in event:
            ...         print(event["data"], end="")
        """
        queue: asyncio.Queue = asyncio.Queue()

        def enqueue(**event: Any) -> None:
            queue.put_nowait(event)

        handler = CompositeCallbackHandler(self.callback_handler, enqueue)

        async def run() -> AgentResult:
            try:
                return await self._run(prompt, request_state, handler)
            finally:
                queue.put_nowait(_STREAM_END)

        task = asyncio.create_task(run())
        try:
            while True:
                event = await queue.get()
                if event is _STREAM_END:
                    break
                yield event
            result = await task
        finally:
            if not task.done():
                task.cancel()
        yield {"result": result}

    async def _run(
        self,
        prompt: str,
        request_state: Optional[dict],
        callback_handler: Callable[..., Any],
    ) -> AgentResult:
        call_id = str(uuid.uuid4())
        outer_context = get_context()
        bind_context(agent_name=self.name, call_id=call_id)
        try:
            callback_handler(init_event_loop=True)
            self.messages.append(Message.user_text(prompt))
            logger.info("Agent call started", messages=len(self.messages))
            if not isinstance(request_state, RequestState):
                request_state = RequestState(request_state or {})
            result = await self._execute_event_loop(callback_handler, request_state)
            logger.info(
                "Agent call finished",
                stop_reason=result.stop_reason,
                cycles=self.metrics.cycles,
                total_tokens=self.metrics.total_tokens,
            )
            return result
        finally:
            self.conversation_manager.apply_management(self)
            restore_context(outer_context)

    async def _execute_event_loop(
        self,
        callback_handler: Callable[..., Any],
        request_state: RequestState,
    ) -> AgentResult:
        config = CycleConfig(
            model=self.model,
            messages=self.messages,
            system_prompt=self.system_prompt,
            tool_config=self.tool_config,
            tool_handler=self.tool_handler,
            tool_executor=self.tool_executor,
            callback_handler=callback_handler,
            throttle=self.throttle_config,
            invocation_state={"agent": self},
        )

        reductions = 0
        while True:
            try:
                result = await event_loop_cycle(config, self.metrics, request_state)
            except ContextWindowOverflowError as e:
                if reductions >= self.max_overflow_retries:
                    logger.error("Context overflow persists, giving up", reductions=reductions)
                    raise
                removed = self.conversation_manager.reduce_context(self, e)
                if removed == 0:
                    logger.error("Context overflow and nothing left to reduce")
                    raise
                reductions += 1
                logger.warning(
                    "Context overflow, retrying with reduced history",
                    removed=removed,
                    reductions=reductions,
                )
                continue
            return AgentResult(
                stop_reason=result.stop_reason,
                message=result.message,
                metrics=result.metrics,
                state=result.request_state,
            )

    # ------------------------------------------------------------------
    # Direct tool calls
    # ------------------------------------------------------------------

    def tool(self, name: str) -> ToolCaller:
        """Return a handle for calling a registered tool directly.

        Example:
            >>> result = await agent.tool("add")(a=1, b=2)

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
        """
        if self.tool_registry.get_tool(name) is None:
            raise ToolNotFoundError(name)
        return ToolCaller(self, name)

    async def call_tool(self, name: str, **tool_input: Any) -> ToolResult:
        """Shorthand for ``await agent.tool(name)(**tool_input)``."""
        return await self.tool(name)(**tool_input)

    async def _call_tool_directly(self, name: str, tool_input: dict[str, Any]) -> ToolResult:
        tool_use = ToolUse(
            tool_use_id=f"tooluse_{name}_{uuid.uuid4().hex[:9]}",
            name=name,
            input=tool_input,
        )
        context = ToolContext(
            messages=self.messages,
            model=self.model,
            system_prompt=self.system_prompt,
            tool_config=self.tool_config,
            callback_handler=self.callback_handler,
            invocation_state={"agent": self},
        )
        logger.debug("Direct tool call", tool_name=name, tool_use_id=tool_use.tool_use_id)
        result = await self.tool_handler.process(tool_use, context)

        if self.record_direct_tool_call:
            self._record_tool_execution(tool_use, result)
        self.conversation_manager.apply_management(self)
        return result

    def _record_tool_execution(self, tool_use: ToolUse, result: ToolResult) -> None:
        """Append the direct call to the history as a request/use/result/ack exchange."""
        self.messages.extend([
            Message.user_text(
                f"agent.tool.{tool_use.name} direct tool call.\n"
                f"Input parameters: {json.dumps(tool_use.input, default=str)}\n"
            ),
            Message(role="assistant", content=[ContentBlock(tool_use=tool_use)]),
            Message(role="user", content=[ContentBlock(tool_result=result)]),
            Message.assistant_text(f"agent.{tool_use.name} was called"),
        ])
