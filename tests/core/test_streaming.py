"""Tests for the streaming response assembler."""

import asyncio

from agent_cycle.core.streaming import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    RedactContentEvent,
    ToolUseStart,
    process_stream,
)
from agent_cycle.core.types import Message, StreamMetrics, Usage

from tests.fakes import Recorder, text_response, tool_use_response


async def _aiter(events):
    for event in events:
        yield event


def _assemble(events, messages=None, callback=None):
    return asyncio.run(process_stream(
        _aiter(events),
        messages if messages is not None else [],
        callback or (lambda **kwargs: None),
    ))


def test_text_deltas_are_joined_into_one_block() -> None:
    events = [
        MessageStartEvent(),
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(text="Hel"),
        ContentBlockDeltaEvent(text="lo"),
        ContentBlockStopEvent(),
        MessageStopEvent(stop_reason="end_turn"),
    ]
    result = _assemble(events)

    assert result.stop_reason == "end_turn"
    assert result.message.role == "assistant"
    assert [block.text for block in result.message.content] == ["Hello"]


def test_text_deltas_are_forwarded_to_observer() -> None:
    recorder = Recorder()
    _assemble(text_response("hi there"), callback=recorder)

    assert [event["data"] for event in recorder.having("data")] == ["hi there"]


def test_tool_input_fragments_are_parsed_at_block_stop() -> None:
    recorder = Recorder()
    events = [
        MessageStartEvent(),
        ContentBlockStartEvent(tool_use=ToolUseStart(tool_use_id="t1", name="echo")),
        ContentBlockDeltaEvent(tool_use_input='{"x": '),
        ContentBlockDeltaEvent(tool_use_input="1}"),
        ContentBlockStopEvent(),
        MessageStopEvent(stop_reason="tool_use"),
    ]
    result = _assemble(events, callback=recorder)

    tool_use = result.message.tool_uses[0]
    assert (tool_use.tool_use_id, tool_use.name, tool_use.input) == ("t1", "echo", {"x": 1})
    assert recorder.having("tool_use_delta")[-1]["tool_use_delta"]["input"] == '{"x": 1}'


def test_empty_tool_input_parses_as_empty_object() -> None:
    events = [
        ContentBlockStartEvent(tool_use=ToolUseStart(tool_use_id="t1", name="now")),
        ContentBlockStopEvent(),
        MessageStopEvent(stop_reason="tool_use"),
    ]
    result = _assemble(events)

    assert result.message.tool_uses[0].input == {}


def test_malformed_tool_input_becomes_text_block() -> None:
    events = [
        ContentBlockStartEvent(tool_use=ToolUseStart(tool_use_id="t1", name="echo")),
        ContentBlockDeltaEvent(tool_use_input='{"x": '),
        ContentBlockStopEvent(),
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(text="after"),
        ContentBlockStopEvent(),
        MessageStopEvent(stop_reason="tool_use"),
    ]
    result = _assemble(events)

    assert result.message.tool_uses == []
    assert result.message.content[0].text.startswith("Error parsing tool input:")
    assert result.message.content[1].text == "after"


def test_stream_ending_mid_block_flushes_pending_content() -> None:
    events = [
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(text="partial"),
    ]
    result = _assemble(events)

    assert result.stop_reason == "end_turn"
    assert result.message.text == "partial"


def test_stream_ending_inside_tool_use_leaves_unresolved_input() -> None:
    events = [
        ContentBlockStartEvent(tool_use=ToolUseStart(tool_use_id="t1", name="echo")),
        ContentBlockDeltaEvent(tool_use_input='{"x": 1}'),
    ]
    result = _assemble(events)

    assert result.message.tool_uses[0].input is None


def test_metadata_sets_usage_and_metrics() -> None:
    result = _assemble(text_response("ok", input_tokens=7, output_tokens=3, latency_ms=42.0))

    assert result.usage == Usage(input_tokens=7, output_tokens=3, total_tokens=10)
    assert result.metrics == StreamMetrics(latency_ms=42.0)


def test_user_redaction_replaces_latest_user_message() -> None:
    history = [
        Message.user_text("first"),
        Message.assistant_text("reply"),
        Message.user_text("something secret"),
    ]
    events = [RedactContentEvent(redact_user_content_message="[User input redacted.]")] + text_response("ok")
    _assemble(events, messages=history)

    assert history[0].text == "first"
    assert history[2].text == "[User input redacted.]"


def test_assistant_redaction_discards_accumulated_content() -> None:
    events = [
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(text="unsafe output"),
        ContentBlockStopEvent(),
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(text="more"),
        RedactContentEvent(redact_assistant_content_message="[Output redacted.]"),
        MessageStopEvent(stop_reason="guardrail_intervened"),
    ]
    result = _assemble(events)

    assert result.stop_reason == "guardrail_intervened"
    assert [block.text for block in result.message.content] == ["[Output redacted.]"]


def test_replaying_identical_events_gives_identical_result() -> None:
    events = tool_use_response(("t1", "echo", {"x": 1}), text="Let me check")

    first = _assemble(events)
    second = _assemble(events)

    assert first.message.to_dict() == second.message.to_dict()
    assert first.usage == second.usage
    assert first.stop_reason == second.stop_reason == "tool_use"


def test_reasoning_signature_is_kept_with_reasoning_text() -> None:
    events = [
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(reasoning_text="think "),
        ContentBlockDeltaEvent(reasoning_text="hard"),
        ContentBlockDeltaEvent(reasoning_signature="sig-1"),
        ContentBlockStopEvent(),
        ContentBlockStartEvent(),
        ContentBlockDeltaEvent(text="answer"),
        ContentBlockStopEvent(),
    ]
    result = _assemble(events)

    assert result.message.content[0].reasoning == {"text": "think hard", "signature": "sig-1"}
    assert result.message.content[1].text == "answer"
