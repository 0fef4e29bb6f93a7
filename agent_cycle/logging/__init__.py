"""Structured logging framework for agent_cycle.

Quick Start:
    >>> from agent_cycle.logging import configure_logging, LogConfig, LogLevel
    >>> configure_logging(LogConfig(level=LogLevel.DEBUG))

Environment configuration (read when logging is first used):
    AGENT_CYCLE_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR | CRITICAL
    AGENT_CYCLE_LOG_FORMAT  plain | json
    AGENT_CYCLE_LOG_FILE    path of a rotating log file

Every Agent.call() binds ``agent_name`` and ``call_id`` to the logging
context, so all cycle, tool and retry log entries of one call share them.
"""
import structlog

from .config import (
    LogConfig,
    LogFormat,
    LogLevel,
    configure_logging,
    ensure_configured,
    is_configured,
)
from .context import bind_context, clear_context, get_context, restore_context, unbind_context


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring logging with defaults if needed.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Cycle started", cycle=3)
    """
    ensure_configured()
    return structlog.get_logger(name)


__all__ = [
    "LogConfig",
    "LogFormat",
    "LogLevel",
    "configure_logging",
    "ensure_configured",
    "is_configured",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "get_context",
    "restore_context",
]
