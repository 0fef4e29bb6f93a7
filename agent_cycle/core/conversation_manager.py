"""Conversation window management.

A conversation manager keeps an agent's history within bounds. It has two
hooks, both mutating ``agent.messages`` in place:

- ``apply_management`` runs after every call and trims routine growth.
- ``reduce_context`` runs when the model reports a context overflow and must
  shrink the history so the call can be retried.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Literal, Optional, Protocol

from ..logging import get_logger
from .types import Message

if TYPE_CHECKING:
    from .agent import Agent

logger = get_logger(__name__)

DEFAULT_WINDOW_SIZE = 20
OVERFLOW_REDUCTION_RATIO = 0.25

ConversationManagerType = Literal["sliding_window", "none"]


class ConversationManager(Protocol):
    """Protocol for conversation window strategies."""

    def apply_management(self, agent: "Agent") -> None:
        """Trim the agent's history after a call."""
        ...

    def reduce_context(self, agent: "Agent", error: Optional[BaseException] = None) -> int:
        """Shrink the history after a context overflow.

        Returns:
            Number of messages removed. 0 means no progress is possible.
        """
        ...


def is_protected(message: Message) -> bool:
    """True if any block of ``message`` carries guard content or a cache point."""
    return any(block.is_protected for block in message.content)


class SlidingWindowConversationManager:
    """Keep the most recent ``window_size`` messages.

    Messages carrying guard content or cache points are protected: with
    ``preserve_protected`` they always survive trimming and count against
    the window, so only ``window_size - protected`` ordinary messages remain.
    Survivors keep their original relative order.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE, preserve_protected: bool = True):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = window_size
        self.preserve_protected = preserve_protected

    def trim(self, messages: list[Message]) -> int:
        """Trim ``messages`` in place to the window; return the number removed."""
        if len(messages) <= self.window_size:
            return 0

        if self.preserve_protected:
            protected = {i for i, message in enumerate(messages) if is_protected(message)}
        else:
            protected = set()

        ordinary_budget = max(self.window_size - len(protected), 0)
        ordinary = [i for i in range(len(messages)) if i not in protected]
        kept_ordinary = set(ordinary[len(ordinary) - ordinary_budget:]) if ordinary_budget else set()
        keep = protected | kept_ordinary

        before = len(messages)
        messages[:] = [message for i, message in enumerate(messages) if i in keep]
        removed = before - len(messages)
        logger.debug(
            "Trimmed conversation window",
            removed=removed,
            kept=len(messages),
            protected=len(protected),
        )
        return removed

    def apply_management(self, agent: "Agent") -> None:
        self.trim(agent.messages)

    def reduce_context(self, agent: "Agent", error: Optional[BaseException] = None) -> int:
        """Drop the oldest quarter of the history, always keeping the first message."""
        messages = agent.messages
        count = math.floor(len(messages) * OVERFLOW_REDUCTION_RATIO)
        if count == 0:
            logger.warning("History too short to reduce", messages=len(messages))
            return 0

        del messages[1:1 + count]
        logger.info(
            "Reduced context after overflow",
            removed=count,
            remaining=len(messages),
            error=str(error) if error else None,
        )
        return count


class NullConversationManager:
    """Leaves the history untouched. Overflow cannot be relieved."""

    def apply_management(self, agent: "Agent") -> None:
        pass

    def reduce_context(self, agent: "Agent", error: Optional[BaseException] = None) -> int:
        return 0


CONVERSATION_MANAGERS: dict[str, type] = {
    "sliding_window": SlidingWindowConversationManager,
    "none": NullConversationManager,
}


def get_conversation_manager(name: ConversationManagerType, **kwargs: Any) -> ConversationManager:
    """Get a conversation manager instance by name.

    Args:
        name: Manager name ("sliding_window" or "none")
        **kwargs: Arguments for the manager constructor
            (e.g., window_size=40 for SlidingWindowConversationManager)

    Returns:
        An instance of the requested manager

    Raises:
        ValueError: If the name is not recognized
    """
    if name not in CONVERSATION_MANAGERS:
        raise ValueError(
            f"Unknown conversation manager '{name}'. "
            f"Available managers: {list(CONVERSATION_MANAGERS.keys())}"
        )
    return CONVERSATION_MANAGERS[name](**kwargs)
