"""Anthropic model provider.

This module provides AnthropicModel, the default Model implementation. It
converts the conversation history to Anthropic's message format, streams
raw events from the Messages API and translates them into the stream event
vocabulary consumed by the event loop.
"""

import json
import logging
import time
from typing import Any, AsyncIterator, Optional

import anthropic

from ...core.exceptions import ContextWindowOverflowError, ModelThrottledError
from ...core.streaming import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    StreamEvent,
    ToolUseStart,
)
from ...core.types import ContentBlock, Message, StreamMetrics, ToolSpec, Usage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 2048

OVERLOADED_STATUS = 529

# Substrings of BadRequestError messages meaning the input is too large.
OVERFLOW_MESSAGES = (
    "prompt is too long",
    "input is too long",
    "exceeds the context window",
    "input length and `max_tokens` exceed context limit",
)

STOP_REASONS = {
    "end_turn": "end_turn",
    "tool_use": "tool_use",
    "max_tokens": "max_tokens",
    "stop_sequence": "stop_sequence",
    "refusal": "content_filtered",
    "pause_turn": "end_turn",
}


class AnthropicModel:
    """Model implementation backed by Anthropic's Messages API.

    Attributes:
        client: The underlying Anthropic async client
        model_id: Model identifier sent with every request
        max_tokens: Maximum tokens per response
        params: Extra request parameters (temperature, top_p, thinking ...)

    Example:
        >>> model = AnthropicModel(model_id="claude-sonnet-4-5", temperature=0.2)
        >>> agent = Agent(model=model)
    """

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        api_key: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        **params: Any,
    ):
        """Initialize the model.

        Args:
            model_id: Model identifier (e.g., "claude-sonnet-4-5")
            max_tokens: Maximum tokens per response (default: 2048)
            api_key: Optional API key. If not provided, uses the
                ANTHROPIC_API_KEY environment variable.
            client: Optional preconfigured client
            **params: Additional request parameters
        """
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.params = params
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    # ------------------------------------------------------------------
    # Request formatting
    # ------------------------------------------------------------------

    @staticmethod
    def _format_tool_result_content(item: dict[str, Any]) -> dict[str, Any]:
        if "text" in item:
            return {"type": "text", "text": item["text"]}
        if "json" in item:
            return {"type": "text", "text": json.dumps(item["json"], default=str)}
        if "image" in item:
            return {"type": "image", **item["image"]}
        if "document" in item:
            return {"type": "document", **item["document"]}
        raise ValueError(f"Unsupported tool result content: {list(item)}")

    @classmethod
    def _format_block(cls, block: ContentBlock) -> Optional[dict[str, Any]]:
        if block.text is not None:
            return {"type": "text", "text": block.text}
        if block.tool_use is not None:
            return {
                "type": "tool_use",
                "id": block.tool_use.tool_use_id,
                "name": block.tool_use.name,
                "input": block.tool_use.input if block.tool_use.input is not None else {},
            }
        if block.tool_result is not None:
            result = block.tool_result
            return {
                "type": "tool_result",
                "tool_use_id": result.tool_use_id,
                "content": [cls._format_tool_result_content(item) for item in result.content],
                "is_error": result.is_error,
            }
        if block.image is not None:
            return {"type": "image", **block.image}
        if block.document is not None:
            return {"type": "document", **block.document}
        if block.reasoning is not None:
            # Thinking blocks are only accepted back with their signature
            if "signature" not in block.reasoning:
                return None
            return {
                "type": "thinking",
                "thinking": block.reasoning.get("text", ""),
                "signature": block.reasoning["signature"],
            }
        if block.guard_content is not None:
            return {"type": "text", "text": str(block.guard_content.get("text", ""))}
        return None

    def format_request(
        self,
        messages: list[Message],
        tool_specs: Optional[list[ToolSpec]] = None,
        system_prompt: Optional[str] = None,
    ) -> dict[str, Any]:
        """Build keyword arguments for ``client.messages.create``."""
        formatted_messages = []
        for message in messages:
            content: list[dict[str, Any]] = []
            for block in message.content:
                if block.cache_point is not None:
                    if content:
                        content[-1]["cache_control"] = {"type": "ephemeral"}
                    continue
                formatted = self._format_block(block)
                if formatted is not None:
                    content.append(formatted)
            if content:
                formatted_messages.append({"role": message.role, "content": content})

        request: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": self.max_tokens,
            "messages": formatted_messages,
        }
        if system_prompt:
            request["system"] = system_prompt
        if tool_specs:
            request["tools"] = [
                {
                    "name": spec.name,
                    "description": spec.description,
                    "input_schema": spec.input_schema,
                }
                for spec in tool_specs
            ]
        request.update(self.params)
        return request

    # ------------------------------------------------------------------
    # Response formatting
    # ------------------------------------------------------------------

    @staticmethod
    def format_chunk(event: Any) -> Optional[StreamEvent]:
        """Translate one raw Anthropic stream event; None for events without a counterpart."""
        event_type = getattr(event, "type", None)

        if event_type == "message_start":
            return MessageStartEvent(role=event.message.role)

        if event_type == "content_block_start":
            block = event.content_block
            if block.type in ("tool_use", "server_tool_use"):
                return ContentBlockStartEvent(tool_use=ToolUseStart(tool_use_id=block.id, name=block.name))
            return ContentBlockStartEvent()

        if event_type == "content_block_delta":
            delta = event.delta
            if delta.type == "text_delta":
                return ContentBlockDeltaEvent(text=delta.text)
            if delta.type == "input_json_delta":
                return ContentBlockDeltaEvent(tool_use_input=delta.partial_json)
            if delta.type == "thinking_delta":
                return ContentBlockDeltaEvent(reasoning_text=delta.thinking)
            if delta.type == "signature_delta":
                return ContentBlockDeltaEvent(reasoning_signature=delta.signature)
            return None

        if event_type == "content_block_stop":
            return ContentBlockStopEvent()

        if event_type == "message_delta":
            stop_reason = getattr(event.delta, "stop_reason", None)
            if stop_reason:
                return MessageStopEvent(stop_reason=STOP_REASONS.get(stop_reason, stop_reason))
            return None

        return None

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    @staticmethod
    def _translate_error(error: anthropic.APIError) -> Optional[Exception]:
        if isinstance(error, anthropic.RateLimitError):
            return ModelThrottledError(str(error))
        if isinstance(error, anthropic.APIStatusError) and error.status_code == OVERLOADED_STATUS:
            return ModelThrottledError(str(error))
        if isinstance(error, anthropic.BadRequestError):
            text = str(error).lower()
            if any(marker.lower() in text for marker in OVERFLOW_MESSAGES):
                return ContextWindowOverflowError(str(error))
        return None

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self,
        messages: list[Message],
        tool_specs: Optional[list[ToolSpec]] = None,
        system_prompt: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one response as stream events.

        A MetadataEvent with token usage and request latency follows the
        final MessageStopEvent.

        Raises:
            ModelThrottledError: On rate limiting or API overload
            ContextWindowOverflowError: If the prompt exceeds the context window
        """
        request = self.format_request(messages, tool_specs, system_prompt)
        logger.debug("Anthropic stream request: model=%s messages=%d", self.model_id, len(request["messages"]))

        started = time.monotonic()
        input_tokens = 0
        output_tokens = 0
        stop_event: Optional[MessageStopEvent] = None

        try:
            response = await self.client.messages.create(**request, stream=True)
            async for raw_event in response:
                if raw_event.type == "message_start":
                    input_tokens = raw_event.message.usage.input_tokens or 0
                elif raw_event.type == "message_delta" and raw_event.usage is not None:
                    output_tokens = raw_event.usage.output_tokens or 0

                event = self.format_chunk(raw_event)
                if isinstance(event, MessageStopEvent):
                    stop_event = event
                elif event is not None:
                    yield event
        except anthropic.APIError as e:
            translated = self._translate_error(e)
            if translated is None:
                raise
            logger.warning("Anthropic request failed: %s", translated.__class__.__name__)
            raise translated from e

        yield stop_event or MessageStopEvent()
        yield MetadataEvent(
            usage=Usage(input_tokens=input_tokens, output_tokens=output_tokens),
            metrics=StreamMetrics(latency_ms=(time.monotonic() - started) * 1000),
        )
