"""History repairs applied before each model request."""

from ..logging import get_logger
from .types import Message

logger = get_logger(__name__)


def clean_orphaned_empty_tool_uses(messages: list[Message]) -> int:
    """Drop unresolved tool uses from a trailing assistant message.

    A stream that ends inside a tool-use block leaves a ToolUse whose input
    is None. If the conversation still ends with that assistant message, the
    unresolved blocks are removed; a message left without content is popped.

    Args:
        messages: Conversation history, modified in place

    Returns:
        Number of tool-use blocks removed
    """
    if not messages or messages[-1].role != "assistant":
        return 0

    last = messages[-1]
    kept = [
        block for block in last.content
        if block.tool_use is None or block.tool_use.input is not None
    ]
    removed = len(last.content) - len(kept)
    if not removed:
        return 0

    last.content = kept
    if not kept:
        messages.pop()
    logger.info("Removed orphaned empty tool uses", count=removed, message_dropped=not kept)
    return removed


def remove_tool_uses_without_id(message: Message) -> int:
    """Drop tool-use blocks that carry no id and so can never be answered.

    Args:
        message: Assistant message, modified in place

    Returns:
        Number of tool-use blocks removed
    """
    kept = []
    for block in message.content:
        if block.tool_use is not None and not block.tool_use.tool_use_id:
            logger.error("Dropping tool use without id", tool_name=block.tool_use.name)
            continue
        kept.append(block)
    removed = len(message.content) - len(kept)
    message.content = kept
    return removed
