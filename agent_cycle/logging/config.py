"""Logging configuration for agent_cycle."""
import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import structlog

from .processors import inject_context, add_logger_name


ENV_LOG_LEVEL = "AGENT_CYCLE_LOG_LEVEL"
ENV_LOG_FORMAT = "AGENT_CYCLE_LOG_FORMAT"
ENV_LOG_FILE = "AGENT_CYCLE_LOG_FILE"


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_int(self) -> int:
        """Convert to logging module integer level."""
        return getattr(logging, self.value)


class LogFormat(str, Enum):
    """Output format for logs."""
    PLAIN = "plain"  # Human-readable for development
    JSON = "json"    # Structured for production


@dataclass
class LogConfig:
    """Configuration for the logging framework.

    Attributes:
        level: Default log level for all loggers.
        format: Output format (PLAIN for console, JSON for production).
        log_file: Optional path to write logs to a file.
        max_bytes: Maximum size of log file before rotation (default 10MB).
        backup_count: Number of backup files to keep (default 5).
        module_levels: Per-module log level overrides, e.g.
            ``{"agent_cycle.core.streaming": LogLevel.WARNING}``.
        filters: Functions applied to every event dict; returning None drops
            the event.
    """
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.PLAIN
    log_file: Optional[Path] = None
    max_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    module_levels: dict[str, LogLevel] = field(default_factory=dict)
    filters: list[Callable[[dict], Optional[dict]]] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Build a config from AGENT_CYCLE_LOG_* environment variables.

        Unset variables fall back to the dataclass defaults.

        Raises:
            ValueError: If a level or format value is not recognized
        """
        config = cls()
        level = os.environ.get(ENV_LOG_LEVEL)
        if level:
            config.level = LogLevel(level.upper())
        log_format = os.environ.get(ENV_LOG_FORMAT)
        if log_format:
            config.format = LogFormat(log_format.lower())
        log_file = os.environ.get(ENV_LOG_FILE)
        if log_file:
            config.log_file = Path(log_file)
        return config


_configured: bool = False


def _make_filter(filter_func: Callable[[dict], Optional[dict]]):
    def processor(logger, method_name, event_dict):
        result = filter_func(event_dict)
        if result is None:
            raise structlog.DropEvent
        return result
    return processor


def _get_processors(config: LogConfig) -> list:
    """Build the processor chain based on config."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        inject_context,
        add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    processors.extend(_make_filter(f) for f in config.filters)
    return processors


def _get_renderer(config: LogConfig):
    if config.format == LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def _setup_stdlib_logging(config: LogConfig) -> None:
    """Route stdlib logging (used by the provider module) through the same handlers."""
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level.to_int())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(config.level.to_int())
    root_logger.addHandler(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
        )
        file_handler.setLevel(config.level.to_int())
        root_logger.addHandler(file_handler)

    for module_name, level in config.module_levels.items():
        logging.getLogger(module_name).setLevel(level.to_int())


def configure_logging(config: Optional[LogConfig] = None) -> None:
    """Configure structlog with a stdlib logging bridge.

    Args:
        config: Logging configuration. If None, settings are read from the
            environment via LogConfig.from_env().

    Example:
        >>> from agent_cycle.logging import configure_logging, LogConfig, LogLevel
        >>> configure_logging(LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON))
    """
    global _configured

    if config is None:
        config = LogConfig.from_env()

    _setup_stdlib_logging(config)
    processors = _get_processors(config)

    structlog.configure(
        processors=processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _get_renderer(config),
        ],
    )
    for handler in logging.getLogger().handlers:
        handler.setFormatter(formatter)

    _configured = True


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def ensure_configured() -> None:
    """Configure logging from the environment if nobody has done so yet."""
    if not _configured:
        configure_logging()
