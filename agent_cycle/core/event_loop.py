"""The event-loop cycle controller.

One cycle streams a model response, appends it to the history and, when the
model asks for tools, runs them and appends their results. Cycles repeat
until the model produces a terminal answer or a tool sets the request
state's ``stop_event_loop`` flag.

Everything a cycle needs travels in an explicit CycleConfig. Cycles run in
a loop rather than by recursion, so long tool chains do not grow the stack.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..logging import get_logger
from ..tools.executor import ToolContext, is_valid_tool_use, run_tools, validate_and_prepare_tools
from .exceptions import (
    ConfigurationError,
    ContextWindowOverflowError,
    EventLoopError,
    ModelThrottledError,
    ToolPairingError,
)
from .message_processor import clean_orphaned_empty_tool_uses, remove_tool_uses_without_id
from .protocols import Model, ParallelToolExecutor, ToolHandler
from .retry import ThrottleConfig, stream_with_backoff
from .streaming import StreamResult, process_stream
from .types import ContentBlock, CycleMetrics, Message, RequestState, ToolConfig, ToolResult

logger = get_logger(__name__)


@dataclass
class CycleConfig:
    """Collaborators and settings for one run of the event loop.

    Attributes:
        model: Model provider to stream responses from
        messages: Conversation history, appended to in place
        system_prompt: Optional system prompt
        tool_config: Tools advertised to the model; required for tool use
        tool_handler: Resolves and runs tools; required for tool use
        tool_executor: Optional parallel executor for multi-tool batches
        callback_handler: Observer receiving keyword events
        throttle: Backoff settings for throttled model requests
        invocation_state: Extra context made available to tools
    """
    model: Model
    messages: list[Message]
    system_prompt: Optional[str] = None
    tool_config: Optional[ToolConfig] = None
    tool_handler: Optional[ToolHandler] = None
    tool_executor: Optional[ParallelToolExecutor] = None
    callback_handler: Callable[..., Any] = lambda **kwargs: None
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    invocation_state: dict[str, Any] = field(default_factory=dict)


@dataclass
class CycleResult:
    """Outcome of the event loop.

    Attributes:
        stop_reason: Stop reason of the final model response
        message: The final assistant message
        metrics: The metrics accumulated across all cycles
        request_state: The request state threaded through the cycles
    """
    stop_reason: str
    message: Message
    metrics: CycleMetrics
    request_state: RequestState


async def _stream_response(config: CycleConfig) -> StreamResult:
    tool_specs = config.tool_config.tools if config.tool_config else None

    async def attempt() -> StreamResult:
        events = config.model.stream(config.messages, tool_specs, config.system_prompt)
        return await process_stream(events, config.messages, config.callback_handler)

    return await stream_with_backoff(attempt, config.callback_handler, config.throttle)


def _check_pairing(
    tool_uses: list, results: list[ToolResult], request_state: RequestState
) -> None:
    if len(results) != len(tool_uses):
        raise ToolPairingError(
            f"Expected {len(tool_uses)} tool results, got {len(results)}", request_state
        )
    for tool_use, result in zip(tool_uses, results):
        if result.tool_use_id != tool_use.tool_use_id:
            raise ToolPairingError(
                f"Tool '{tool_use.name}' returned a result for '{result.tool_use_id}' "
                f"instead of '{tool_use.tool_use_id}'",
                request_state,
            )


async def _dispatch_tools(
    config: CycleConfig,
    message: Message,
    metrics: CycleMetrics,
    request_state: RequestState,
) -> Optional[Message]:
    """Run the tools requested by ``message``; return the result turn, or None if there were none."""
    valid, invalid_results = validate_and_prepare_tools(message)
    if not valid and not invalid_results:
        return None

    context = ToolContext(
        messages=config.messages,
        model=config.model,
        system_prompt=config.system_prompt,
        tool_config=config.tool_config,
        callback_handler=config.callback_handler,
        request_state=request_state,
        invocation_state=config.invocation_state,
    )
    results = await run_tools(
        config.tool_handler,
        valid,
        context,
        metrics,
        config.callback_handler,
        config.tool_executor,
    )
    _check_pairing(valid, results, request_state)

    # Pair by position; ids may repeat
    answered = iter(results)
    rejected = iter(invalid_results)
    ordered = []
    for tool_use in message.tool_uses:
        if is_valid_tool_use(tool_use):
            ordered.append(next(answered))
        elif tool_use.tool_use_id:
            ordered.append(next(rejected))
    return Message(role="user", content=[ContentBlock(tool_result=result) for result in ordered])


async def event_loop_cycle(
    config: CycleConfig,
    metrics: Optional[CycleMetrics] = None,
    request_state: Optional[RequestState] = None,
) -> CycleResult:
    """Run cycles until the model returns a terminal answer.

    Args:
        config: Collaborators and settings for this run
        metrics: Metrics to accumulate into. A fresh instance when omitted
        request_state: State shared with tools. A fresh instance when omitted

    Returns:
        CycleResult for the final cycle

    Raises:
        ContextWindowOverflowError: The history no longer fits the model
        ConfigurationError: The model asked for tools but none are configured
        EventLoopError: Any other failure, with the request state attached
    """
    metrics = metrics if metrics is not None else CycleMetrics()
    if request_state is None:
        request_state = RequestState()
    elif not isinstance(request_state, RequestState):
        request_state = RequestState(request_state)

    callback = config.callback_handler
    callback(start=True)

    while True:
        cycle_id = str(uuid.uuid4())
        callback(start_event_loop=True)
        metrics.cycles += 1
        clean_orphaned_empty_tool_uses(config.messages)
        logger.debug("Cycle started", cycle_id=cycle_id, cycle=metrics.cycles)

        try:
            streamed = await _stream_response(config)
        except (ContextWindowOverflowError, ModelThrottledError):
            raise
        except Exception as e:
            raise EventLoopError(e, request_state) from e

        try:
            message = streamed.message
            remove_tool_uses_without_id(message)
            config.messages.append(message)
            callback(message=message)
            metrics.add_usage(streamed.usage)
            metrics.add_latency(streamed.metrics)
            logger.debug(
                "Model responded",
                cycle_id=cycle_id,
                stop_reason=streamed.stop_reason,
                input_tokens=streamed.usage.input_tokens,
                output_tokens=streamed.usage.output_tokens,
            )

            if streamed.stop_reason != "tool_use":
                return CycleResult(streamed.stop_reason, message, metrics, request_state)

            if config.tool_handler is None:
                raise ConfigurationError("Model requested tool use but no tool handler provided")
            if config.tool_config is None:
                raise ConfigurationError("Model requested tool use but no tool config provided")

            results_message = await _dispatch_tools(config, message, metrics, request_state)
            if results_message is None:
                return CycleResult(streamed.stop_reason, message, metrics, request_state)

            config.messages.append(results_message)
            callback(message=results_message)

            if request_state.stop_event_loop:
                logger.info("Event loop stopped by tool", cycle_id=cycle_id)
                return CycleResult(streamed.stop_reason, message, metrics, request_state)

        except ContextWindowOverflowError:
            raise
        except (ConfigurationError, EventLoopError) as e:
            callback(force_stop=True, force_stop_reason=str(e))
            raise
        except Exception as e:
            logger.error("Event loop failed", cycle_id=cycle_id, error=str(e), exc_info=True)
            callback(force_stop=True, force_stop_reason=str(e))
            raise EventLoopError(e, request_state) from e

        callback(start=True)
