# lorekeep/core/ratelimit.py
"""
Injected sliding-window rate limiter for outbound service calls.

Replaces a process-wide counter map: each limiter instance owns its
counters, bounds how many keys it tracks, and forgets a key as soon as
its window is empty.

Usage:
    limiter = SlidingWindowRateLimiter(max_requests=30, window_seconds=60)
    limiter.acquire("project-1")      # raises RateLimitExceeded when full
    await limiter.wait_acquire("project-1")   # waits for a free slot instead
    limiter.reset("project-1")
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, deque
from typing import Callable, Deque, Optional

from lorekeep.core.exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Per-key sliding window limiter.

    Reset policy:
        - A request timestamp expires window_seconds after it was recorded.
        - Keys with no live timestamps are dropped on the next access.
        - When more than max_keys keys are live, the least recently used
          key is evicted.
        - reset(key) clears one key, reset() clears everything.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        max_keys: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._hits: "OrderedDict[str, Deque[float]]" = OrderedDict()

    def _prune(self, key: str, now: float) -> Optional[Deque[float]]:
        hits = self._hits.get(key)
        if hits is None:
            return None
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
            return None
        return hits

    def remaining(self, key: str) -> int:
        """Requests still allowed for key in the current window."""
        hits = self._prune(key, self._clock())
        return self.max_requests - (len(hits) if hits else 0)

    def try_acquire(self, key: str) -> bool:
        """Record a request for key if allowed. Returns False when limited."""
        now = self._clock()
        hits = self._prune(key, now)

        if hits is not None and len(hits) >= self.max_requests:
            return False

        if hits is None:
            hits = deque()
            self._hits[key] = hits
        hits.append(now)
        self._hits.move_to_end(key)

        while len(self._hits) > self.max_keys:
            evicted, _ = self._hits.popitem(last=False)
            logger.debug(f"Rate limiter evicted key '{evicted}'")

        return True

    def wait_time(self, key: str) -> float:
        """Seconds until key has a free slot; 0.0 when one is free now."""
        now = self._clock()
        hits = self._prune(key, now)
        if hits is None or len(hits) < self.max_requests:
            return 0.0
        return max(0.0, hits[0] + self.window_seconds - now)

    async def wait_acquire(self, key: str, max_wait: Optional[float] = None) -> None:
        """
        Record a request for key, sleeping until the window has room.

        Raises:
            RateLimitExceeded: If the slot would take longer than max_wait
        """
        waited = 0.0
        while not self.try_acquire(key):
            delay = self.wait_time(key)
            if max_wait is not None and waited + delay > max_wait:
                raise RateLimitExceeded(
                    f"Rate limit for '{key}' not cleared within {max_wait:g}s",
                    {"key": key, "wait": delay},
                )
            logger.debug(f"Rate limiter waiting {delay:.2f}s for '{key}'")
            await asyncio.sleep(delay)
            waited += delay

    def acquire(self, key: str) -> None:
        """Record a request for key or raise RateLimitExceeded."""
        if not self.try_acquire(key):
            raise RateLimitExceeded(
                f"Rate limit exceeded for '{key}' "
                f"({self.max_requests} requests / {self.window_seconds:g}s)",
                {"key": key},
            )

    def reset(self, key: Optional[str] = None) -> None:
        """Clear counters for one key, or all keys."""
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    def __len__(self) -> int:
        return len(self._hits)


__all__ = ["SlidingWindowRateLimiter"]
