# tests/unit/test_ratelimit.py
"""
Tests for lorekeep.core.ratelimit.
"""

import pytest

from lorekeep.core.exceptions import GatewayUnavailable, RateLimitExceeded
from lorekeep.core.ratelimit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestSlidingWindowRateLimiter:
    def test_allows_up_to_limit(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)

        assert limiter.try_acquire("p1")
        assert limiter.try_acquire("p1")
        assert not limiter.try_acquire("p1")
        assert limiter.remaining("p1") == 0

    def test_keys_are_independent(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert limiter.try_acquire("p1")
        assert limiter.try_acquire("p2")

    def test_window_slides(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.acquire("p1")

        clock.now += 59
        assert not limiter.try_acquire("p1")

        clock.now += 1
        assert limiter.try_acquire("p1")

    def test_acquire_raises_rate_limit_exceeded(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=10, clock=clock)
        limiter.acquire("p1")

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.acquire("p1")

        assert isinstance(exc_info.value, GatewayUnavailable)
        assert exc_info.value.details == {"key": "p1"}

    def test_expired_keys_are_forgotten(self, clock):
        """Test that a key with an empty window is dropped, not kept forever."""
        limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=10, clock=clock)
        limiter.acquire("p1")
        assert len(limiter) == 1

        clock.now += 11
        assert limiter.remaining("p1") == 5
        assert len(limiter) == 0

    def test_bounded_number_of_keys(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, max_keys=2, clock=clock)
        for key in ("a", "b", "c"):
            limiter.acquire(key)

        assert len(limiter) == 2
        # "a" was least recently used and evicted
        assert limiter.try_acquire("a")

    def test_reset(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.acquire("p1")
        limiter.acquire("p2")

        limiter.reset("p1")
        assert limiter.try_acquire("p1")
        assert not limiter.try_acquire("p2")

        limiter.reset()
        assert len(limiter) == 0

    @pytest.mark.parametrize("max_requests,window", [(0, 10), (1, 0), (1, -5)])
    def test_invalid_arguments(self, max_requests, window):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=window)


class TestWaitAcquire:
    def test_wait_time(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=10, clock=clock)
        assert limiter.wait_time("p1") == 0.0

        limiter.acquire("p1")
        clock.now += 4
        assert limiter.wait_time("p1") == pytest.approx(6.0)

    @pytest.mark.asyncio
    async def test_free_slot_returns_immediately(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=10, clock=clock)

        await limiter.wait_acquire("p1")
        await limiter.wait_acquire("p1")

        assert limiter.remaining("p1") == 0

    @pytest.mark.asyncio
    async def test_full_window_waits_then_acquires(self):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=0.05)
        limiter.acquire("p1")

        await limiter.wait_acquire("p1", max_wait=5)

        assert limiter.remaining("p1") == 0

    @pytest.mark.asyncio
    async def test_wait_longer_than_max_wait_raises(self, clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.acquire("p1")

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.wait_acquire("p1", max_wait=1)

        assert exc_info.value.details["key"] == "p1"
        assert exc_info.value.details["wait"] == pytest.approx(60.0)
