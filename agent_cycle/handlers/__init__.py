"""Callback and tool handlers."""
from .callbacks import (
    CallbackHandler,
    CompositeCallbackHandler,
    PrintingCallbackHandler,
    null_callback_handler,
)
from .tool_handler import AgentToolHandler

__all__ = [
    "CallbackHandler",
    "CompositeCallbackHandler",
    "PrintingCallbackHandler",
    "null_callback_handler",
    "AgentToolHandler",
]
