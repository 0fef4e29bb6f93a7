"""Exceptions raised by the agent event loop.

Provider failures the loop reacts to are distinguished by type: throttling is
retried with backoff, context overflow is relieved by the conversation
manager. Everything else that escapes a cycle is wrapped in EventLoopError
with the request state attached.
"""

from typing import Any


class AgentCycleError(Exception):
    """Base exception for all agent_cycle errors."""
    pass


class ConfigurationError(AgentCycleError, ValueError):
    """The agent or cycle is missing a required collaborator or has an invalid setting."""
    pass


class ModelThrottledError(AgentCycleError):
    """The model provider asked the caller to slow down."""
    pass


class ContextWindowOverflowError(AgentCycleError):
    """The conversation history exceeds the model's input capacity."""
    pass


class EventLoopError(AgentCycleError):
    """An error escaped the event loop.

    Attributes:
        request_state: The request state of the failed call, for introspection
    """

    def __init__(self, error: BaseException | str, request_state: Any = None):
        self.request_state = request_state if request_state is not None else {}
        message = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
        super().__init__(message)


class ToolPairingError(EventLoopError):
    """A tool handler returned a result that does not answer its request."""
    pass


class ToolNotFoundError(AgentCycleError, LookupError):
    """No tool is registered under the requested name."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' not found")
