"""
Rate Limiter

Sliding-window limits for inbound requests, keyed by client.
"""

import asyncio
import time
import logging
from typing import Dict, Optional
from collections import deque

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None
    ):
        self.message = message
        self.retry_after = retry_after
        super().__init__(self.message)


class RateLimiter:
    """Sliding window limiter for a single key."""

    def __init__(self, max_requests: int = 5, time_window: int = 60):
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum requests allowed in time window
            time_window: Time window in seconds
        """
        self.max_requests = max_requests
        self.time_window = time_window

        # Use deque for efficient removal of old timestamps
        self.requests: deque = deque()

    def _prune(self, now: float) -> None:
        cutoff = now - self.time_window
        while self.requests and self.requests[0] <= cutoff:
            self.requests.popleft()

    def acquire(self, now: Optional[float] = None) -> None:
        """
        Record one request.

        Raises:
            RateLimitExceeded: If the window is already full
        """
        now = time.monotonic() if now is None else now
        self._prune(now)

        if len(self.requests) >= self.max_requests:
            retry_after = self.requests[0] + self.time_window - now
            raise RateLimitExceeded(
                f"Rate limit exceeded: {self.max_requests} requests in "
                f"{self.time_window}s",
                retry_after=max(retry_after, 0)
            )

        self.requests.append(now)

    def is_idle(self, now: float) -> bool:
        self._prune(now)
        return not self.requests


class MultiKeyRateLimiter:
    """Rate limiter that keeps one window per key (client address)."""

    def __init__(self, max_requests: int = 5, time_window: int = 60):
        """
        Initialize multi-key rate limiter.

        Args:
            max_requests: Requests allowed per key in each window
            time_window: Window length in seconds
        """
        self.max_requests = max_requests
        self.time_window = time_window
        self.limiters: Dict[str, RateLimiter] = {}
        self._lock = asyncio.Lock()

    async def acquire(self, key: str) -> None:
        """
        Record one request for a key.

        Raises:
            RateLimitExceeded: If the key is over its limit
        """
        async with self._lock:
            now = time.monotonic()
            self._evict_idle(now)

            limiter = self.limiters.get(key)
            if limiter is None:
                limiter = RateLimiter(self.max_requests, self.time_window)
                self.limiters[key] = limiter

            limiter.acquire(now)

    def _evict_idle(self, now: float) -> None:
        idle = [key for key, limiter in self.limiters.items() if limiter.is_idle(now)]
        for key in idle:
            del self.limiters[key]
