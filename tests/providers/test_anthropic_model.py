"""Tests for the Anthropic model provider."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import anthropic
import httpx
import pytest

from agent_cycle.core.exceptions import ContextWindowOverflowError, ModelThrottledError
from agent_cycle.core.streaming import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    process_stream,
)
from agent_cycle.core.types import ContentBlock, Message, ToolResult, ToolSpec, ToolUse
from agent_cycle.providers.anthropic.model import AnthropicModel


def _ns(**kwargs):
    return SimpleNamespace(**kwargs)


def _raw_text_stream(text="Hi", stop_reason="end_turn"):
    return [
        _ns(type="message_start", message=_ns(role="assistant", usage=_ns(input_tokens=12, output_tokens=1))),
        _ns(type="content_block_start", index=0, content_block=_ns(type="text", text="")),
        _ns(type="content_block_delta", index=0, delta=_ns(type="text_delta", text=text)),
        _ns(type="content_block_stop", index=0),
        _ns(type="message_delta", delta=_ns(stop_reason=stop_reason), usage=_ns(output_tokens=7)),
        _ns(type="message_stop"),
    ]


def _client(raw_events=None, error=None):
    async def events():
        for event in raw_events or []:
            yield event

    create = AsyncMock(side_effect=error) if error else AsyncMock(return_value=events())
    return _ns(messages=_ns(create=create))


def _api_error(cls, status, message):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status, request=request)
    return cls(message, response=response, body=None)


def _collect(model, messages=None):
    async def run():
        return [event async for event in model.stream(messages or [Message.user_text("hi")])]
    return asyncio.run(run())


class TestFormatRequest:
    def test_basic_request(self) -> None:
        model = AnthropicModel(model_id="claude-test", max_tokens=100, client=_client(), temperature=0.2)
        spec = ToolSpec(name="add", description="Add", input_schema={"type": "object", "properties": {}})

        request = model.format_request([Message.user_text("hello")], [spec], "Be brief.")

        assert request["model"] == "claude-test"
        assert request["max_tokens"] == 100
        assert request["system"] == "Be brief."
        assert request["temperature"] == 0.2
        assert request["messages"] == [{"role": "user", "content": [{"type": "text", "text": "hello"}]}]
        assert request["tools"] == [{"name": "add", "description": "Add", "input_schema": spec.input_schema}]

    def test_tool_blocks(self) -> None:
        model = AnthropicModel(client=_client())
        messages = [
            Message(role="assistant", content=[ContentBlock(tool_use=ToolUse("t1", "add", {"a": 1}))]),
            Message(role="user", content=[
                ContentBlock(tool_result=ToolResult(
                    tool_use_id="t1", status="error", content=[{"text": "bad"}, {"json": {"k": 1}}],
                )),
            ]),
        ]

        formatted = model.format_request(messages)["messages"]

        assert formatted[0]["content"] == [{"type": "tool_use", "id": "t1", "name": "add", "input": {"a": 1}}]
        assert formatted[1]["content"] == [{
            "type": "tool_result",
            "tool_use_id": "t1",
            "content": [{"type": "text", "text": "bad"}, {"type": "text", "text": '{"k": 1}'}],
            "is_error": True,
        }]

    def test_cache_point_marks_previous_block(self) -> None:
        model = AnthropicModel(client=_client())
        message = Message(role="user", content=[
            ContentBlock(text="long context"),
            ContentBlock(cache_point={"type": "default"}),
        ])

        [formatted] = model.format_request([message])["messages"]

        assert formatted["content"] == [
            {"type": "text", "text": "long context", "cache_control": {"type": "ephemeral"}},
        ]

    def test_unsigned_reasoning_and_empty_messages_are_dropped(self) -> None:
        model = AnthropicModel(client=_client())
        messages = [
            Message.user_text("hi"),
            Message(role="assistant", content=[ContentBlock(reasoning={"text": "hmm"})]),
        ]

        assert len(model.format_request(messages)["messages"]) == 1


class TestFormatChunk:
    def test_text_stream(self) -> None:
        events = [AnthropicModel.format_chunk(raw) for raw in _raw_text_stream("Hello")]

        assert events == [
            MessageStartEvent(role="assistant"),
            ContentBlockStartEvent(),
            ContentBlockDeltaEvent(text="Hello"),
            ContentBlockStopEvent(),
            MessageStopEvent(stop_reason="end_turn"),
            None,
        ]

    def test_tool_use_start_and_input(self) -> None:
        start = _ns(type="content_block_start", content_block=_ns(type="tool_use", id="t1", name="add"))
        delta = _ns(type="content_block_delta", delta=_ns(type="input_json_delta", partial_json='{"a"'))

        assert AnthropicModel.format_chunk(start).tool_use.tool_use_id == "t1"
        assert AnthropicModel.format_chunk(delta) == ContentBlockDeltaEvent(tool_use_input='{"a"')

    def test_thinking_delta(self) -> None:
        delta = _ns(type="content_block_delta", delta=_ns(type="thinking_delta", thinking="let me see"))

        assert AnthropicModel.format_chunk(delta) == ContentBlockDeltaEvent(reasoning_text="let me see")

    def test_signature_delta(self) -> None:
        delta = _ns(type="content_block_delta", delta=_ns(type="signature_delta", signature="sig-abc"))

        assert AnthropicModel.format_chunk(delta) == ContentBlockDeltaEvent(reasoning_signature="sig-abc")

    @pytest.mark.parametrize("raw,mapped", [("refusal", "content_filtered"), ("max_tokens", "max_tokens")])
    def test_stop_reason_mapping(self, raw, mapped) -> None:
        event = _ns(type="message_delta", delta=_ns(stop_reason=raw), usage=None)

        assert AnthropicModel.format_chunk(event) == MessageStopEvent(stop_reason=mapped)


class TestStream:
    def test_stop_then_metadata_come_last(self) -> None:
        model = AnthropicModel(client=_client(_raw_text_stream("Hi")))

        events = _collect(model)

        assert isinstance(events[-2], MessageStopEvent)
        metadata = events[-1]
        assert isinstance(metadata, MetadataEvent)
        assert (metadata.usage.input_tokens, metadata.usage.output_tokens) == (12, 7)
        assert metadata.metrics.latency_ms >= 0
        assert model.client.messages.create.await_args.kwargs["stream"] is True

    def test_rate_limit_becomes_throttle(self) -> None:
        error = _api_error(anthropic.RateLimitError, 429, "rate limited")
        model = AnthropicModel(client=_client(error=error))

        with pytest.raises(ModelThrottledError):
            _collect(model)

    def test_overloaded_becomes_throttle(self) -> None:
        error = _api_error(anthropic.InternalServerError, 529, "overloaded")
        model = AnthropicModel(client=_client(error=error))

        with pytest.raises(ModelThrottledError):
            _collect(model)

    def test_prompt_too_long_becomes_overflow(self) -> None:
        error = _api_error(anthropic.BadRequestError, 400, "prompt is too long: 300000 tokens > 200000 maximum")
        model = AnthropicModel(client=_client(error=error))

        with pytest.raises(ContextWindowOverflowError):
            _collect(model)

    def test_other_errors_propagate(self) -> None:
        error = _api_error(anthropic.BadRequestError, 400, "messages: field required")
        model = AnthropicModel(client=_client(error=error))

        with pytest.raises(anthropic.BadRequestError):
            _collect(model)


class TestExtendedThinking:
    def test_signed_thinking_is_sent_back_before_tool_use(self) -> None:
        raw = [
            _ns(type="message_start", message=_ns(role="assistant", usage=_ns(input_tokens=30, output_tokens=1))),
            _ns(type="content_block_start", index=0, content_block=_ns(type="thinking", thinking="")),
            _ns(type="content_block_delta", index=0, delta=_ns(type="thinking_delta", thinking="Need the adder.")),
            _ns(type="content_block_delta", index=0, delta=_ns(type="signature_delta", signature="sig-abc")),
            _ns(type="content_block_stop", index=0),
            _ns(type="content_block_start", index=1, content_block=_ns(type="tool_use", id="t1", name="add")),
            _ns(type="content_block_delta", index=1, delta=_ns(type="input_json_delta", partial_json='{"a": 1}')),
            _ns(type="content_block_stop", index=1),
            _ns(type="message_delta", delta=_ns(stop_reason="tool_use"), usage=_ns(output_tokens=20)),
            _ns(type="message_stop"),
        ]
        model = AnthropicModel(client=_client(raw), thinking={"type": "enabled", "budget_tokens": 1024})

        async def assemble():
            return await process_stream(model.stream([Message.user_text("add")]), [], lambda **kwargs: None)

        streamed = asyncio.run(assemble())

        assert streamed.message.content[0].reasoning == {"text": "Need the adder.", "signature": "sig-abc"}
        [formatted] = model.format_request([streamed.message])["messages"]
        assert formatted["content"] == [
            {"type": "thinking", "thinking": "Need the adder.", "signature": "sig-abc"},
            {"type": "tool_use", "id": "t1", "name": "add", "input": {"a": 1}},
        ]
