"""Retry with exponential backoff and jitter for async operations."""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from config import RETRY_ATTEMPTS, RETRY_BASE_DELAY_SECONDS, RETRY_MAX_JITTER_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_FACTOR = 1.5


def backoff_delay(
    attempt: int,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    max_jitter: float = RETRY_MAX_JITTER_SECONDS,
    rand: Callable[[], float] = random.random
) -> float:
    """Delay before retrying after failed attempt number `attempt` (1-based)."""
    return base_delay * (BACKOFF_FACTOR ** (attempt - 1)) + rand() * max_jitter


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    max_jitter: float = RETRY_MAX_JITTER_SECONDS,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random
) -> T:
    """
    Run an async operation, retrying failures with exponential backoff.

    After failed attempt n the delay is base_delay * 1.5^(n-1) plus a uniform
    jitter in [0, max_jitter). There is no delay after the final attempt; its
    error is re-raised to the caller. Every call gets a fresh attempt budget.

    Args:
        operation: Zero-argument coroutine factory
        max_attempts: Total attempts including the first
        base_delay: Base delay in seconds
        max_jitter: Upper bound of the random jitter in seconds
        retry_on: Exception types that trigger a retry; others propagate immediately
        sleep: Awaitable sleep function
        rand: Source of uniform randoms in [0, 1)

    Returns:
        The operation's result

    Raises:
        The last exception raised by the operation once attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as e:
            logger.error(f"Attempt {attempt}/{max_attempts} failed: {e}")
            if attempt >= max_attempts:
                logger.error(f"All {max_attempts} attempts failed. Last error: {e}")
                raise

            delay = backoff_delay(attempt, base_delay, max_jitter, rand)
            logger.info(f"Retrying in {round(delay * 1000)}ms (attempt {attempt}/{max_attempts})")
            await sleep(delay)
