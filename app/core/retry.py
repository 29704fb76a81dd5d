"""
Retry helper for calls into managed services (storage, realtime feed).
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retrying after the given (1-based) failed attempt."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator to retry async operations with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for a single delay, in seconds
        retry_on: Exception types that trigger a retry; anything else propagates at once

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_attempts:
                        logger.error(f"{func.__qualname__}: all {max_attempts} attempts failed: {e}")
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay)
                    logger.warning(
                        f"{func.__qualname__}: attempt {attempt}/{max_attempts} failed: {e}. "
                        f"Retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)
            raise RuntimeError("Unexpected error in retry logic")

        return wrapper

    return decorator
