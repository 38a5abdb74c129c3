"""Tests for the token bucket rate limiter."""

import asyncio
import time

import pytest

from lodecore.config import RateLimitConfig
from lodecore.crawler.rate_limiter import TokenBucketRateLimiter


class FakeClock:
    """Monotonic clock advanced only by the limiter's own sleeps."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


@pytest.mark.unit
class TestTokenBucketRateLimiter:
    @pytest.mark.asyncio
    async def test_initial_burst_does_not_wait(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(5, 1, 1.0, clock=clock, sleep=clock.sleep)

        waits = [await limiter.acquire_token() for _ in range(5)]

        assert waits == [0.0] * 5
        assert clock.sleeps == []
        assert limiter.get_stats()["granted"] == 5

    @pytest.mark.asyncio
    async def test_waits_for_refill_after_burst(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(1, 1, 0.1, clock=clock, sleep=clock.sleep)

        for _ in range(3):
            await limiter.acquire_token()

        assert sum(clock.sleeps) == pytest.approx(0.2)
        assert limiter.get_stats()["throttled"] == 2

    @pytest.mark.asyncio
    async def test_tokens_refill_continuously_up_to_capacity(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(2, 2, 1.0, clock=clock, sleep=clock.sleep)
        await limiter.acquire_token()
        await limiter.acquire_token()
        assert limiter.available_tokens == pytest.approx(0.0)

        clock.now += 0.5
        assert limiter.available_tokens == pytest.approx(1.0)

        clock.now += 60
        assert limiter.available_tokens == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_concurrent_callers_never_overdraw(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(2, 1, 1.0, clock=clock, sleep=clock.sleep)

        await asyncio.gather(*(limiter.acquire_token() for _ in range(4)))

        # Two tokens from the burst, two more at one per second
        assert sum(clock.sleeps) == pytest.approx(2.0)
        assert limiter.available_tokens >= 0

    def test_from_config(self):
        limiter = TokenBucketRateLimiter.from_config(RateLimitConfig(requests=10, per_interval="minute"))
        stats = limiter.get_stats()
        assert stats["capacity"] == 10
        assert stats["interval"] == 60.0
        assert limiter.budget.refill_rate == pytest.approx(10 / 60)

    @pytest.mark.parametrize("args", [(0,), (1, 0), (1, 1, 0)])
    def test_rejects_invalid_sizing(self, args):
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(*args)


@pytest.mark.unit
@pytest.mark.slow
@pytest.mark.asyncio
async def test_real_clock_spacing():
    limiter = TokenBucketRateLimiter(1, 1, 0.1)
    start = time.monotonic()
    for _ in range(3):
        await limiter.acquire_token()
    assert time.monotonic() - start >= 0.18
