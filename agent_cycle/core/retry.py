"""Retry with exponential backoff for throttled model requests.

Only ModelThrottledError is retried. Context overflow and every other
failure propagate on the first occurrence so the caller can react to them.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from ..logging import get_logger
from .exceptions import ModelThrottledError

logger = get_logger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 6
INITIAL_DELAY = 4.0  # seconds
MAX_DELAY = 240.0  # seconds


@dataclass
class ThrottleConfig:
    """Backoff settings for throttled model requests.

    Attributes:
        max_attempts: Total attempts including the first. Default: 6
        initial_delay: Wait before the first retry, in seconds. Default: 4.0
        max_delay: Upper bound on any single wait, in seconds. Default: 240.0
    """
    max_attempts: int = MAX_ATTEMPTS
    initial_delay: float = INITIAL_DELAY
    max_delay: float = MAX_DELAY

    def delay_for(self, retry: int) -> float:
        """Wait before the ``retry``-th retry (1-based)."""
        return min(self.initial_delay * (2 ** (retry - 1)), self.max_delay)


async def stream_with_backoff(
    attempt_fn: Callable[[], Awaitable[T]],
    callback_handler: Callable[..., Any],
    config: ThrottleConfig | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``attempt_fn`` and retry it with exponential backoff while throttled.

    Every invocation starts with a fresh attempt budget. Before each wait the
    observer receives ``throttling_error=True`` together with the error, the
    delay and the attempt number.

    Args:
        attempt_fn: Zero-argument coroutine factory performing one attempt
        callback_handler: Observer receiving keyword events
        config: Backoff settings. Defaults to ThrottleConfig()
        sleep: Awaitable sleep function, replaceable in tests

    Returns:
        The result of the first successful attempt

    Raises:
        ModelThrottledError: The last throttling error once attempts run out
    """
    config = config or ThrottleConfig()

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await attempt_fn()
        except ModelThrottledError as e:
            if attempt >= config.max_attempts:
                logger.error(
                    "Model still throttled, giving up",
                    attempts=config.max_attempts,
                    error=str(e),
                )
                raise
            delay = config.delay_for(attempt)
            logger.warning(
                "Model throttled, retrying",
                attempt=attempt,
                max_attempts=config.max_attempts,
                retry_in=delay,
                error=str(e),
            )
            callback_handler(
                throttling_error=True,
                error=e,
                retry_in=delay,
                attempt=attempt,
                max_attempts=config.max_attempts,
            )
            await sleep(delay)

    # max_attempts < 1 never enters the loop
    raise ValueError(f"max_attempts must be >= 1, got {config.max_attempts}")
