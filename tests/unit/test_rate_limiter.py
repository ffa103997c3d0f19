"""Tests for the sliding-window rate limiter."""

import pytest

from floor_arbitrage.exceptions import RateLimitError
from floor_arbitrage.rate_limiter import RateLimiter


@pytest.fixture
def limiter(time_provider):
    return RateLimiter(requests_per_window=3, window_seconds=10, time_provider=time_provider)


def test_invalid_construction():
    with pytest.raises(ValueError):
        RateLimiter(requests_per_window=0)
    with pytest.raises(ValueError):
        RateLimiter(window_seconds=0)


@pytest.mark.asyncio
class TestRateLimiter:
    async def test_admits_up_to_capacity(self, limiter):
        for _ in range(3):
            await limiter.consume("api")
        assert await limiter.remaining("api") == 0

        with pytest.raises(RateLimitError):
            await limiter.consume("api")

    async def test_retry_after_points_at_oldest_slot(self, limiter, time_provider):
        await limiter.consume("api")
        time_provider.advance_time(4)
        await limiter.consume("api", cost=2)

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.consume("api")
        # the first request leaves the window 6 seconds from now
        assert exc_info.value.retry_after_ms == 6000

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.consume("api", cost=2)
        # two slots free up only when the pair from t+4 leaves: 10 seconds
        assert exc_info.value.retry_after_ms == 10000

    async def test_window_slides(self, limiter, time_provider):
        for _ in range(3):
            await limiter.consume("api")
        time_provider.advance_time(10)
        await limiter.consume("api")
        assert await limiter.remaining("api") == 2

    async def test_buckets_are_independent(self, limiter):
        for _ in range(3):
            await limiter.consume("a")
        await limiter.consume("b")
        assert await limiter.remaining("b") == 2

    async def test_cost_above_capacity_fails_fast(self, limiter):
        with pytest.raises(RateLimitError, match="exceeds limiter capacity"):
            await limiter.consume("api", cost=4)
        assert await limiter.remaining("api") == 3

    async def test_non_positive_cost_rejected(self, limiter):
        with pytest.raises(ValueError):
            await limiter.consume("api", cost=0)

    async def test_cleanup_old_entries(self, limiter, time_provider):
        await limiter.consume("old")
        time_provider.advance_time(400)
        await limiter.consume("fresh")

        removed = await limiter.cleanup_old_entries(max_age_seconds=300)

        assert removed == 1
        assert "old" not in limiter.request_history
        assert "fresh" in limiter.request_history
