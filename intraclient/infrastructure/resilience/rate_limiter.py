"""Implementation of the shared rate gate.

Controls the frequency of outgoing requests to stay under the API's rate
limit. Uses a sliding window of admission timestamps; waiters are released
strictly in arrival order.
"""

import time
import asyncio
import logging
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 2  # Max 2 requests...
DEFAULT_TIME_WINDOW_SECONDS = 1.2  # ...per 1200 ms

class RateLimiter:
    """Sliding window rate gate shared by every request of one client."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in the time window.
            time_window: The time window in seconds.
            clock: Monotonic time source, replaceable in tests.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if time_window <= 0:
            raise ValueError("time_window must be positive")
        self.max_requests = max_requests
        self.time_window = time_window
        self.timestamps = deque()
        self._clock = clock
        # asyncio.Lock wakes waiters in FIFO order; holding it while sleeping
        # keeps later arrivals queued behind the current one.
        self._lock = asyncio.Lock()
        logger.debug(f"RateLimiter initialized: {max_requests} requests / {time_window} seconds")

    def _cleanup_timestamps(self) -> None:
        """Removes timestamps older than the time window."""
        now = self._clock()
        while self.timestamps and now - self.timestamps[0] >= self.time_window:
            self.timestamps.popleft()

    def _wait_time(self) -> float:
        self._cleanup_timestamps()
        if len(self.timestamps) < self.max_requests:
            return 0.0
        oldest_timestamp = self.timestamps[0]
        return max(0.0, oldest_timestamp + self.time_window - self._clock())

    async def admit(self) -> None:
        """Waits until a request is permitted according to the rate limit."""
        async with self._lock:
            while True:
                wait_time = self._wait_time()
                if len(self.timestamps) < self.max_requests:
                    self.timestamps.append(self._clock())
                    logger.debug("Rate limit permission granted.")
                    return
                logger.debug(f"Rate limit reached. Waiting for {wait_time:.3f} seconds.")
                await asyncio.sleep(wait_time)

    async def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made."""
        return self._wait_time()
