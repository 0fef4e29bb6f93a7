"""Core data model, protocols and event-loop building blocks.

The Agent façade lives in ``agent_cycle.core.agent`` and is exported from the
top-level package.
"""

from .exceptions import (
    AgentCycleError,
    ConfigurationError,
    ContextWindowOverflowError,
    EventLoopError,
    ModelThrottledError,
    ToolNotFoundError,
    ToolPairingError,
)
from .protocols import Model, ParallelToolExecutor, ToolHandler
from .retry import INITIAL_DELAY, MAX_ATTEMPTS, MAX_DELAY, ThrottleConfig, stream_with_backoff
from .streaming import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    RedactContentEvent,
    StreamEvent,
    StreamResult,
    ToolUseStart,
    process_stream,
)
from .types import (
    AgentResult,
    ContentBlock,
    CycleMetrics,
    Message,
    RequestState,
    StreamMetrics,
    ToolConfig,
    ToolResult,
    ToolSpec,
    ToolUse,
    Usage,
)

__all__ = [
    # Exceptions
    "AgentCycleError",
    "ConfigurationError",
    "ContextWindowOverflowError",
    "EventLoopError",
    "ModelThrottledError",
    "ToolNotFoundError",
    "ToolPairingError",
    # Protocols
    "Model",
    "ParallelToolExecutor",
    "ToolHandler",
    # Retry
    "INITIAL_DELAY",
    "MAX_ATTEMPTS",
    "MAX_DELAY",
    "ThrottleConfig",
    "stream_with_backoff",
    # Streaming
    "ContentBlockDeltaEvent",
    "ContentBlockStartEvent",
    "ContentBlockStopEvent",
    "MessageStartEvent",
    "MessageStopEvent",
    "MetadataEvent",
    "RedactContentEvent",
    "StreamEvent",
    "StreamResult",
    "ToolUseStart",
    "process_stream",
    # Types
    "AgentResult",
    "ContentBlock",
    "CycleMetrics",
    "Message",
    "RequestState",
    "StreamMetrics",
    "ToolConfig",
    "ToolResult",
    "ToolSpec",
    "ToolUse",
    "Usage",
]
