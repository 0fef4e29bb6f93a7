"""Observer callbacks for agent events.

A callback handler is any callable accepting keyword arguments. The loop
calls it with one keyword describing the event (``data=``,
``tool_execution_start=True``, ``throttling_error=True`` ...) plus details.
Handlers should ignore keywords they do not understand.
"""

import sys
from typing import Any, Callable, TextIO

CallbackHandler = Callable[..., Any]


def null_callback_handler(**kwargs: Any) -> None:
    """Ignore every event."""
    return None


class PrintingCallbackHandler:
    """Write streamed text and tool activity to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self._mid_line = False

    def _line(self, text: str) -> None:
        if self._mid_line:
            self.stream.write("\n")
            self._mid_line = False
        self.stream.write(text + "\n")

    def __call__(self, **kwargs: Any) -> None:
        if "data" in kwargs:
            self.stream.write(kwargs["data"])
            self._mid_line = True
        elif kwargs.get("tool_execution_start"):
            self._line(f"Tool #{kwargs['tool_use'].name} started")
        elif kwargs.get("tool_execution_complete"):
            status = kwargs["tool_result"].status
            self._line(f"Tool #{kwargs['tool_use'].name} finished ({status})")
        elif kwargs.get("tool_execution_error"):
            self._line(f"Tool #{kwargs['tool_use'].name} failed: {kwargs.get('error')}")
        elif kwargs.get("throttling_error"):
            self._line(
                f"Rate limited, retrying in {kwargs['retry_in']:.1f}s "
                f"(attempt {kwargs['attempt']}/{kwargs['max_attempts']})"
            )
        elif kwargs.get("force_stop"):
            self._line(f"Stopped: {kwargs.get('force_stop_reason')}")
        elif "message" in kwargs and self._mid_line:
            self.stream.write("\n")
            self._mid_line = False
        self.stream.flush()


class CompositeCallbackHandler:
    """Fan each event out to several handlers, in registration order."""

    def __init__(self, *handlers: CallbackHandler):
        self.handlers = list(handlers)

    def __call__(self, **kwargs: Any) -> None:
        for handler in self.handlers:
            handler(**kwargs)
