"""Anthropic provider implementation.

Exports:
    - AnthropicModel: Model implementation for Anthropic Claude models
    - DEFAULT_MODEL: Model id used when none is given
"""

from .model import DEFAULT_MODEL, AnthropicModel

__all__ = [
    'AnthropicModel',
    'DEFAULT_MODEL',
]
