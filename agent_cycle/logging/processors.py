"""Custom structlog processors for agent_cycle."""
from typing import Any

from .context import get_context


def inject_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add values bound via bind_context() without overriding explicit fields."""
    for key, value in get_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def add_logger_name(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add a 'logger' field naming the module that produced the event."""
    record = event_dict.get("_record")
    if record is not None:
        event_dict["logger"] = record.name
    elif hasattr(logger, "name"):
        event_dict["logger"] = logger.name
    return event_dict
