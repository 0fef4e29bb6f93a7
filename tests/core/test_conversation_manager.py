"""Tests for conversation window management."""

import pytest

from agent_cycle.core.conversation_manager import (
    NullConversationManager,
    SlidingWindowConversationManager,
    get_conversation_manager,
)
from agent_cycle.core.types import ContentBlock, Message


class StubAgent:
    """Only the attribute conversation managers touch."""

    def __init__(self, messages):
        self.messages = messages


def _history(n, protected_at=()):
    messages = []
    for i in range(n):
        role = "user" if i % 2 == 0 else "assistant"
        content = [ContentBlock(text=f"turn {i}")]
        if i in protected_at:
            content.append(ContentBlock(cache_point={"type": "default"}))
        messages.append(Message(role=role, content=content))
    return messages


@pytest.mark.parametrize("n", [0, 1, 5, 20])
def test_trim_is_noop_at_or_under_window(n) -> None:
    agent = StubAgent(_history(n))
    before = list(agent.messages)

    SlidingWindowConversationManager(window_size=20).apply_management(agent)

    assert agent.messages == before


def test_trim_keeps_most_recent_turns() -> None:
    agent = StubAgent(_history(30))

    SlidingWindowConversationManager(window_size=20).apply_management(agent)

    assert len(agent.messages) == 20
    assert agent.messages[0].text == "turn 10"
    assert agent.messages[-1].text == "turn 29"


def test_trim_retains_protected_turns_in_order() -> None:
    agent = StubAgent(_history(12, protected_at={0, 3}))

    SlidingWindowConversationManager(window_size=6).apply_management(agent)

    assert [m.text for m in agent.messages] == [
        "turn 0", "turn 3", "turn 8", "turn 9", "turn 10", "turn 11",
    ]


def test_trim_without_protection_ignores_annotations() -> None:
    agent = StubAgent(_history(12, protected_at={0, 3}))

    SlidingWindowConversationManager(window_size=6, preserve_protected=False).apply_management(agent)

    assert [m.text for m in agent.messages] == [f"turn {i}" for i in range(6, 12)]


def test_trim_mutates_the_same_list() -> None:
    messages = _history(25)
    agent = StubAgent(messages)

    SlidingWindowConversationManager(window_size=10).apply_management(agent)

    assert agent.messages is messages
    assert len(messages) == 10


@pytest.mark.parametrize("n,expected", [(1, 0), (3, 0), (4, 1), (10, 2), (21, 5)])
def test_reduce_context_removes_a_quarter_after_first_turn(n, expected) -> None:
    agent = StubAgent(_history(n))
    first = agent.messages[0]

    removed = SlidingWindowConversationManager().reduce_context(agent)

    assert removed == expected
    assert len(agent.messages) == n - expected
    assert agent.messages[0] is first
    if expected:
        assert agent.messages[1].text == f"turn {1 + expected}"


def test_null_manager_never_changes_history() -> None:
    agent = StubAgent(_history(50))
    manager = NullConversationManager()

    manager.apply_management(agent)

    assert manager.reduce_context(agent) == 0
    assert len(agent.messages) == 50


def test_get_conversation_manager_by_name() -> None:
    manager = get_conversation_manager("sliding_window", window_size=40)

    assert isinstance(manager, SlidingWindowConversationManager)
    assert manager.window_size == 40
    assert isinstance(get_conversation_manager("none"), NullConversationManager)


def test_get_conversation_manager_unknown_name() -> None:
    with pytest.raises(ValueError, match="Unknown conversation manager"):
        get_conversation_manager("summarizing")
