"""
Token Bucket Rate Limiter

Bounds the aggregate outbound request rate of one engine instance. All
strategies share a single bucket, so the limit applies to the engine as a
whole rather than to each acquisition technique separately.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from lodecore.observability.metrics import METRICS

if TYPE_CHECKING:
    from lodecore.config.config import RateLimitConfig

logger = logging.getLogger(__name__)


@dataclass
class RateBudget:
    """Bucket sizing plus the mutable token count."""

    capacity: float
    refill_per_interval: float
    interval: float
    tokens: float = 0.0
    updated_at: float = 0.0

    @property
    def refill_rate(self) -> float:
        """Tokens added per second."""
        return self.refill_per_interval / self.interval

    def refill(self, now: float) -> None:
        elapsed = now - self.updated_at
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.updated_at = now


class TokenBucketRateLimiter:
    """
    Token bucket with an immediate initial burst.

    The bucket starts full, so the first ``capacity`` calls to
    :meth:`acquire_token` return without waiting. Afterwards tokens come
    back continuously at ``refill_per_interval`` per ``interval`` seconds.

    A single lock serialises every read-modify-write of the token count.
    Waiters queue on that lock and are served in arrival order.
    """

    def __init__(
        self,
        capacity: int,
        refill_per_interval: Optional[float] = None,
        interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if interval <= 0:
            raise ValueError("interval must be positive")
        refill = float(capacity if refill_per_interval is None else refill_per_interval)
        if refill <= 0:
            raise ValueError("refill_per_interval must be positive")

        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        now = clock()
        self.budget = RateBudget(
            capacity=float(capacity),
            refill_per_interval=refill,
            interval=float(interval),
            tokens=float(capacity),
            updated_at=now,
        )
        self._lock = asyncio.Lock()

        self._granted = 0
        self._throttled = 0
        self._total_wait = 0.0

        logger.info(f"Rate limiter initialized: {capacity} burst, {refill} per {interval}s")

    @classmethod
    def from_config(cls, config: RateLimitConfig, **kwargs: Any) -> TokenBucketRateLimiter:
        return cls(config.requests, config.requests, config.interval_seconds, **kwargs)

    async def acquire_token(self) -> float:
        """
        Wait until a token is available and take it.

        Returns:
            Seconds spent waiting.
        """
        waited = 0.0
        async with self._lock:
            self.budget.refill(self._clock())
            while self.budget.tokens < 1.0:
                delay = (1.0 - self.budget.tokens) / self.budget.refill_rate
                logger.debug(f"Rate limit reached, waiting {delay:.3f}s for a token")
                await self._sleep(delay)
                waited += delay
                self.budget.refill(self._clock())
            self.budget.tokens -= 1.0
            self._granted += 1
            if waited > 0:
                self._throttled += 1
                self._total_wait += waited

        METRICS["rate_limiter_wait_seconds"].observe(waited)
        return waited

    @property
    def available_tokens(self) -> float:
        self.budget.refill(self._clock())
        return self.budget.tokens

    def get_stats(self) -> Dict[str, Any]:
        return {
            "capacity": self.budget.capacity,
            "refill_per_interval": self.budget.refill_per_interval,
            "interval": self.budget.interval,
            "tokens": round(self.budget.tokens, 3),
            "granted": self._granted,
            "throttled": self._throttled,
            "total_wait": round(self._total_wait, 3),
        }
