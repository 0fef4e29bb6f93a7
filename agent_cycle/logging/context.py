"""Context management for structured logging.

Values bound here are attached to every log entry emitted in the current
async context. The Agent binds ``agent_name`` and ``call_id`` for the
duration of each call, so log lines from nested cycles and tools can be
traced back to the call that produced them. Tasks spawned for parallel tool
execution inherit a copy of the context.
"""
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("agent_cycle_log_context", default={})


def bind_context(**kwargs: Any) -> None:
    """Bind key-value pairs to the current logging context.

    Example:
        >>> bind_context(call_id="0b7c...", agent_name="researcher")
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the current logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


def clear_context() -> None:
    """Clear all bound context values."""
    _log_context.set({})


def get_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def restore_context(saved: dict[str, Any]) -> None:
    """Replace the current logging context with a snapshot from get_context().

    Example:
        >>> saved = get_context()
        >>> bind_context(call_id="nested")
        >>> restore_context(saved)
    """
    _log_context.set(dict(saved))
