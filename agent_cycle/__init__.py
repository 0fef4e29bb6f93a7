"""
Agent Cycle

An event-loop engine for tool-using model agents: stream a model response,
run the tools it asks for, feed the results back, and repeat until the model
answers. Includes throttling backoff, conversation window management and
agent-as-tool composition.

Main exports:
    - Agent: The agent façade
    - tool: Decorator turning a function into a tool
    - agent_as_tool / stateful_agent_as_tool: Compose agents
    - AnthropicModel: Default model provider

Example:
    >>> from agent_cycle import Agent, tool
    >>>
    >>> @tool
    >>> def get_weather(city: str) -> str:
    >>>     '''Look up the weather for a city.
    >>>
    >>>     Args:
    >>>         city: City name
    >>>     '''
    >>>     return f"Sunny in {city}"
    >>>
    >>> agent = Agent(tools=[get_weather], system_prompt="You are a helpful assistant")
    >>> result = await agent("What's the weather in Paris?")
"""

from dotenv import load_dotenv

load_dotenv()

from .core import (
    AgentCycleError,
    AgentResult,
    ConfigurationError,
    ContentBlock,
    ContextWindowOverflowError,
    CycleMetrics,
    EventLoopError,
    Message,
    Model,
    ModelThrottledError,
    RequestState,
    ThrottleConfig,
    ToolConfig,
    ToolNotFoundError,
    ToolPairingError,
    ToolResult,
    ToolSpec,
    ToolUse,
    Usage,
)
from .core.agent import Agent, ToolCaller
from .core.conversation_manager import (
    ConversationManager,
    NullConversationManager,
    SlidingWindowConversationManager,
    get_conversation_manager,
)
from .core.event_loop import CycleConfig, CycleResult, event_loop_cycle
from .handlers import (
    AgentToolHandler,
    CompositeCallbackHandler,
    PrintingCallbackHandler,
    null_callback_handler,
)
from .providers.anthropic import AnthropicModel
from .tools import (
    AgentAsTool,
    AgentTool,
    BoundedToolExecutor,
    FunctionTool,
    ToolContext,
    ToolRegistry,
    agent_as_tool,
    create_agent_tools,
    stateful_agent_as_tool,
    tool,
)

__version__ = "0.1.0"

__all__ = [
    # Agent
    "Agent",
    "ToolCaller",
    "AgentResult",
    # Event loop
    "CycleConfig",
    "CycleResult",
    "event_loop_cycle",
    "ThrottleConfig",
    # Data model
    "ContentBlock",
    "CycleMetrics",
    "Message",
    "RequestState",
    "ToolConfig",
    "ToolResult",
    "ToolSpec",
    "ToolUse",
    "Usage",
    # Exceptions
    "AgentCycleError",
    "ConfigurationError",
    "ContextWindowOverflowError",
    "EventLoopError",
    "ModelThrottledError",
    "ToolNotFoundError",
    "ToolPairingError",
    # Conversation management
    "ConversationManager",
    "NullConversationManager",
    "SlidingWindowConversationManager",
    "get_conversation_manager",
    # Handlers
    "AgentToolHandler",
    "CompositeCallbackHandler",
    "PrintingCallbackHandler",
    "null_callback_handler",
    # Models
    "Model",
    "AnthropicModel",
    # Tools
    "AgentAsTool",
    "AgentTool",
    "BoundedToolExecutor",
    "FunctionTool",
    "ToolContext",
    "ToolRegistry",
    "agent_as_tool",
    "create_agent_tools",
    "stateful_agent_as_tool",
    "tool",
]
