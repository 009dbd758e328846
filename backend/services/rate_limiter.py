"""Process-wide rate limiter for external model calls."""
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from config import RATE_LIMIT_WINDOW_SECONDS, MAX_REQUESTS_PER_WINDOW

logger = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    """Outcome of an admission check."""
    admitted: bool
    retry_after: int = 0  # whole seconds until the window resets
    count: int = 0


class RateLimitExceededError(Exception):
    """Raised when the shared model-call budget for the current window is spent."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Please try again in {retry_after} seconds.")


class RateLimiter:
    """
    Fixed-window request counter shared by every caller in the process.

    Once more than `window_seconds` have elapsed since the window started, the
    count resets and a new window begins. Within a window at most
    `max_requests` calls are admitted. The check-and-increment is done under a
    lock so concurrent callers cannot both slip past the limit.
    """

    def __init__(
        self,
        max_requests: int = MAX_REQUESTS_PER_WINDOW,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._window_start: Optional[float] = None

    def try_admit(self, now: Optional[float] = None) -> RateLimitDecision:
        """
        Admit one call if the current window has budget left.

        Args:
            now: Current time in seconds (defaults to the limiter's clock)

        Returns:
            RateLimitDecision; when rejected, `retry_after` holds the wait in whole seconds
        """
        if now is None:
            now = self._clock()

        with self._lock:
            if self._window_start is None or now - self._window_start > self.window_seconds:
                self._count = 0
                self._window_start = now

            if self._count >= self.max_requests:
                remaining = self.window_seconds - (now - self._window_start)
                retry_after = max(1, math.ceil(remaining))
                logger.warning(
                    f"Rate limit reached: {self._count}/{self.max_requests} requests, "
                    f"retry in {retry_after}s"
                )
                return RateLimitDecision(admitted=False, retry_after=retry_after, count=self._count)

            self._count += 1
            logger.info(f"Rate limit status: {self._count}/{self.max_requests} requests in current window")
            return RateLimitDecision(admitted=True, count=self._count)

    def acquire(self, now: Optional[float] = None) -> None:
        """
        Admit one call or raise.

        Raises:
            RateLimitExceededError: If the window's budget is already spent
        """
        decision = self.try_admit(now)
        if not decision.admitted:
            raise RateLimitExceededError(decision.retry_after)

    def reset(self) -> None:
        """Start a fresh window on the next admission check."""
        with self._lock:
            self._count = 0
            self._window_start = None
