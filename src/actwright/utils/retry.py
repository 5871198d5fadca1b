"""
Retry utilities with bounded backoff.

Only idempotent work is retried here (re-walking a locator, for instance).
Anything with a side effect on the page must not be wrapped in a retry.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Total attempts including the first (1 disables retrying)
        initial_delay_ms: Delay before the first retry
        max_delay_ms: Upper bound for any single delay
        backoff_multiplier: Growth factor between consecutive delays
        retry_on: Exception types that trigger a retry; others propagate at once
        on_retry: Called with (attempt number, error) before each retry
    """
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    retry_on: Tuple[Type[Exception], ...] = (Exception,)
    on_retry: Optional[Callable[[int, Exception], None]] = None


async def retry_async(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig,
    *args: Any,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> T:
    """
    Await `func(*args, **kwargs)`, retrying on the configured errors.

    Args:
        func: Async function to execute
        config: Retry configuration
        sleep: Awaitable used for the delay between attempts

    Returns:
        Function result

    Raises:
        The last error once attempts are exhausted
    """
    last_error: Optional[Exception] = None
    delay_ms: float = config.initial_delay_ms

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except config.retry_on as e:
            last_error = e
            if attempt == config.max_attempts:
                break

            logger.warning(f"Attempt {attempt}/{config.max_attempts} failed: {e}. Retrying in {delay_ms:.0f}ms")
            if config.on_retry:
                config.on_retry(attempt, e)

            await sleep(delay_ms / 1000)
            delay_ms = min(delay_ms * config.backoff_multiplier, config.max_delay_ms)

    raise last_error  # type: ignore
