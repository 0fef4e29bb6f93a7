"""Model provider implementations.

Each provider lives in its own submodule and implements the Model protocol
from ``agent_cycle.core.protocols``.

Available providers:
- anthropic: Anthropic Claude models (AnthropicModel)

Example:
    >>> from agent_cycle.providers.anthropic import AnthropicModel
    >>> from agent_cycle import Agent
    >>>
    >>> agent = Agent(model=AnthropicModel(model_id="claude-sonnet-4-5"))
    >>> result = await agent("Hello!")
"""

from .anthropic import AnthropicModel

__all__ = [
    'AnthropicModel',
]
