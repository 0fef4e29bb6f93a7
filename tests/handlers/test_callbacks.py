import io

from agent_cycle.core.types import Message, ToolResult, ToolUse
from agent_cycle.handlers.callbacks import (
    CompositeCallbackHandler,
    PrintingCallbackHandler,
    null_callback_handler,
)

from tests.fakes import Recorder


def test_printing_handler_streams_text_and_tool_activity() -> None:
    out = io.StringIO()
    handler = PrintingCallbackHandler(stream=out)
    tool_use = ToolUse(tool_use_id="t1", name="add", input={})

    handler(data="Let me ")
    handler(data="check")
    handler(tool_execution_start=True, tool_use=tool_use)
    handler(tool_execution_complete=True, tool_use=tool_use, tool_result=ToolResult.success("t1", "3"))
    handler(data="Done")
    handler(message=Message.assistant_text("Done"))

    assert out.getvalue() == (
        "Let me check\n"
        "Tool #add started\n"
        "Tool #add finished (success)\n"
        "Done\n"
    )


def test_printing_handler_reports_throttling_and_stops() -> None:
    out = io.StringIO()
    handler = PrintingCallbackHandler(stream=out)

    handler(throttling_error=True, error="slow", retry_in=4.0, attempt=1, max_attempts=6)
    handler(force_stop=True, force_stop_reason="boom")
    handler(unknown_event=True)

    assert out.getvalue() == "Rate limited, retrying in 4.0s (attempt 1/6)\nStopped: boom\n"


def test_composite_handler_calls_in_registration_order() -> None:
    order = []
    first = lambda **kwargs: order.append(("first", kwargs))
    second = lambda **kwargs: order.append(("second", kwargs))

    CompositeCallbackHandler(first, null_callback_handler, second)(data="x")

    assert order == [("first", {"data": "x"}), ("second", {"data": "x"})]


def test_composite_handler_with_recorders() -> None:
    a, b = Recorder(), Recorder()

    CompositeCallbackHandler(a, b)(start=True)

    assert a.events == b.events == [{"start": True}]
