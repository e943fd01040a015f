"""Backoff helpers for retrying rate-limited or conflicting calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, initial_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Delay before retry number ``attempt`` (0-based), doubling each time."""
    return min(initial_delay * (2**attempt), max_delay)


async def with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    retry_on: tuple[type[Exception], ...],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    **kwargs: Any,
) -> T:
    """
    Execute a function with exponential backoff retry logic.

    Only exceptions listed in ``retry_on`` are retried; anything else is
    raised immediately.

    Args:
        func: The async function to execute
        *args: Positional arguments to pass to func
        retry_on: Exception types that warrant another attempt
        max_retries: Maximum number of attempts
        initial_delay: Initial delay in seconds before first retry
        max_delay: Maximum delay in seconds between retries
        **kwargs: Keyword arguments to pass to func

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries are exhausted
    """
    for attempt in range(max_retries):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt >= max_retries - 1:
                logger.error(f"All {max_retries} retry attempts exhausted. Last error: {e}")
                raise

            delay = backoff_delay(attempt, initial_delay, max_delay)
            logger.warning(
                f"Attempt {attempt + 1}/{max_retries} failed with {type(e).__name__}: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise ValueError("max_retries must be at least 1")
