"""Stream event vocabulary and the streaming response assembler.

Model providers translate their wire format into the events defined here.
``process_stream`` folds one response's events into a complete assistant
message, forwarding incremental deltas to the observer as they arrive.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Callable, ClassVar, Optional, Union

from ..logging import get_logger
from .types import ContentBlock, Message, StreamMetrics, ToolUse, Usage

logger = get_logger(__name__)

DEFAULT_STOP_REASON = "end_turn"
TOOL_INPUT_PARSE_ERROR = "Error parsing tool input: "


@dataclass
class ToolUseStart:
    """Identifies the tool use opened by a content block start event."""
    tool_use_id: str
    name: str


@dataclass
class MessageStartEvent:
    type: ClassVar[str] = "message_start"
    role: str = "assistant"


@dataclass
class ContentBlockStartEvent:
    """Opens a content block. ``tool_use`` is set for tool-use blocks only."""
    type: ClassVar[str] = "content_block_start"
    tool_use: Optional[ToolUseStart] = None


@dataclass
class ContentBlockDeltaEvent:
    """Incremental content. Exactly one of the fields is expected to be set."""
    type: ClassVar[str] = "content_block_delta"
    text: Optional[str] = None
    tool_use_input: Optional[str] = None
    reasoning_text: Optional[str] = None
    reasoning_signature: Optional[str] = None


@dataclass
class ContentBlockStopEvent:
    type: ClassVar[str] = "content_block_stop"


@dataclass
class MessageStopEvent:
    type: ClassVar[str] = "message_stop"
    stop_reason: str = DEFAULT_STOP_REASON


@dataclass
class MetadataEvent:
    type: ClassVar[str] = "metadata"
    usage: Usage = field(default_factory=Usage)
    metrics: StreamMetrics = field(default_factory=StreamMetrics)


@dataclass
class RedactContentEvent:
    """Replaces user input and/or model output with a redaction notice."""
    type: ClassVar[str] = "redact_content"
    redact_user_content_message: Optional[str] = None
    redact_assistant_content_message: Optional[str] = None


StreamEvent = Union[
    MessageStartEvent,
    ContentBlockStartEvent,
    ContentBlockDeltaEvent,
    ContentBlockStopEvent,
    MessageStopEvent,
    MetadataEvent,
    RedactContentEvent,
]


@dataclass
class StreamResult:
    """Outcome of assembling one streamed response."""
    stop_reason: str
    message: Message
    usage: Usage
    metrics: StreamMetrics


def parse_tool_input(raw: str) -> Any:
    """Parse concatenated tool input fragments. An empty string means ``{}``.

    Raises:
        json.JSONDecodeError: If the fragments are not valid JSON
    """
    if not raw.strip():
        return {}
    return json.loads(raw)


class _StreamState:
    """Mutable accumulator for a single response."""

    def __init__(self) -> None:
        self.role = "assistant"
        self.content: list[ContentBlock] = []
        self.text = ""
        self.reasoning_text = ""
        self.reasoning_signature = ""
        self.tool_use: Optional[ToolUseStart] = None
        self.tool_input = ""
        self.stop_reason = DEFAULT_STOP_REASON
        self.usage = Usage()
        self.metrics = StreamMetrics()

    def flush_block(self) -> None:
        """Close whatever block is pending and append it to the content."""
        if self.tool_use is not None:
            try:
                parsed = parse_tool_input(self.tool_input)
            except json.JSONDecodeError as e:
                logger.warning(
                    "Tool input is not valid JSON",
                    tool_name=self.tool_use.name,
                    tool_use_id=self.tool_use.tool_use_id,
                    error=str(e),
                )
                self.content.append(ContentBlock(text=f"{TOOL_INPUT_PARSE_ERROR}{e}"))
            else:
                self.content.append(ContentBlock(tool_use=ToolUse(
                    tool_use_id=self.tool_use.tool_use_id,
                    name=self.tool_use.name,
                    input=parsed,
                )))
            self.tool_use = None
            self.tool_input = ""
        if self.reasoning_text or self.reasoning_signature:
            reasoning = {"text": self.reasoning_text}
            if self.reasoning_signature:
                reasoning["signature"] = self.reasoning_signature
            self.content.append(ContentBlock(reasoning=reasoning))
            self.reasoning_text = ""
            self.reasoning_signature = ""
        if self.text:
            self.content.append(ContentBlock(text=self.text))
            self.text = ""

    def flush_incomplete(self) -> None:
        """Flush at end of stream; an unclosed tool use keeps ``input=None``."""
        if self.tool_use is not None:
            logger.warning(
                "Stream ended inside a tool use block",
                tool_name=self.tool_use.name,
                tool_use_id=self.tool_use.tool_use_id,
            )
            self.content.append(ContentBlock(tool_use=ToolUse(
                tool_use_id=self.tool_use.tool_use_id,
                name=self.tool_use.name,
                input=None,
            )))
            self.tool_use = None
            self.tool_input = ""
        self.flush_block()

    def redact_assistant(self, notice: str) -> None:
        self.content = [ContentBlock(text=notice)]
        self.text = ""
        self.reasoning_text = ""
        self.reasoning_signature = ""
        self.tool_use = None
        self.tool_input = ""


def _redact_last_user_message(messages: list[Message], notice: str) -> None:
    for message in reversed(messages):
        if message.role == "user":
            message.content = [ContentBlock(text=notice)]
            return


async def process_stream(
    events: AsyncIterable[StreamEvent],
    messages: list[Message],
    callback_handler: Callable[..., Any],
) -> StreamResult:
    """Assemble a streamed model response into a complete message.

    Each event is handled exactly once. Text and tool input deltas are
    forwarded to ``callback_handler`` as ``data=`` and ``tool_use_delta=``.
    User redaction rewrites the most recent user message in ``messages``;
    assistant redaction replaces everything assembled so far.

    Args:
        events: The provider's event stream for one response
        messages: Conversation history (mutated only by user redaction)
        callback_handler: Observer receiving keyword events

    Returns:
        StreamResult with the stop reason, assembled message, usage and metrics
    """
    state = _StreamState()

    async for event in events:
        callback_handler(event=event)

        if isinstance(event, MessageStartEvent):
            state.role = event.role

        elif isinstance(event, ContentBlockStartEvent):
            if event.tool_use is not None:
                state.tool_use = event.tool_use
                state.tool_input = ""

        elif isinstance(event, ContentBlockDeltaEvent):
            if event.text is not None:
                state.text += event.text
                callback_handler(data=event.text, delta=event)
            elif event.tool_use_input is not None:
                state.tool_input += event.tool_use_input
                callback_handler(
                    tool_use_delta={
                        "tool_use_id": state.tool_use.tool_use_id if state.tool_use else None,
                        "name": state.tool_use.name if state.tool_use else None,
                        "input": state.tool_input,
                    },
                    delta=event,
                )
            elif event.reasoning_text is not None:
                state.reasoning_text += event.reasoning_text
                callback_handler(reasoning_text=event.reasoning_text, delta=event)
            elif event.reasoning_signature is not None:
                state.reasoning_signature += event.reasoning_signature

        elif isinstance(event, ContentBlockStopEvent):
            state.flush_block()

        elif isinstance(event, MessageStopEvent):
            state.stop_reason = event.stop_reason

        elif isinstance(event, MetadataEvent):
            state.usage = event.usage
            state.metrics = event.metrics

        elif isinstance(event, RedactContentEvent):
            if event.redact_user_content_message is not None:
                _redact_last_user_message(messages, event.redact_user_content_message)
            if event.redact_assistant_content_message is not None:
                state.redact_assistant(event.redact_assistant_content_message)

        else:
            logger.debug("Ignoring unknown stream event", event_type=type(event).__name__)

    state.flush_incomplete()

    return StreamResult(
        stop_reason=state.stop_reason,
        message=Message(role=state.role, content=state.content),
        usage=state.usage,
        metrics=state.metrics,
    )
