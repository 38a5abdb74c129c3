"""
AcquisitionEngine: the public entry point.

Wires the shared primitives (rate limiter, rotators, cache, HTTP client,
browser manager) into the four strategies and exposes single-target and
batch acquisition plus an explicit teardown.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from lodecore.browser.manager import BrowserManager
from lodecore.browser.session import SessionFactory
from lodecore.config.config import Config
from lodecore.crawler.cache import AcquisitionCache
from lodecore.crawler.http_client import HttpClient
from lodecore.crawler.rate_limiter import TokenBucketRateLimiter
from lodecore.crawler.rotation import ProxyRotator, UserAgentRotator
from lodecore.protocols import AcquisitionResult, AcquisitionStrategy, AcquisitionTarget
from lodecore.strategies import ApiProbeStrategy, BrowserStrategy, FeedStrategy, FetchStrategy

from .batch import BatchProcessor
from .cascade import StrategyCascade

logger = structlog.get_logger(__name__)


class AcquisitionEngine:
    """
    Multi-strategy acquisition engine.

    Example:
        async with AcquisitionEngine(config) as engine:
            result = await engine.acquire("https://example.com/blog")
            results = await engine.acquire_batch(urls, concurrency=3)

    The browser process belongs to this instance: it is started the first
    time the browser strategy needs it and released by :meth:`shutdown`.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        strategies: Optional[Sequence[AcquisitionStrategy]] = None,
        cache: Optional[AcquisitionCache] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        playwright_factory: Optional[Callable[[], Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or Config()
        engine_cfg = self.config.engine
        sleep = sleep or asyncio.sleep
        if rng is None and self.config.debug.test_mode:
            rng = random.Random(0)

        self.rate_limiter = TokenBucketRateLimiter.from_config(engine_cfg.rate_limit, sleep=sleep)
        self.user_agents = UserAgentRotator(engine_cfg.user_agents)
        self.proxies = ProxyRotator(engine_cfg.proxies)
        self.cache = cache or AcquisitionCache(
            ttl=engine_cfg.cache.ttl_seconds,
            directory=engine_cfg.cache.directory,
        )
        self.retry_policy = self.config.retry.to_policy()

        self.http = HttpClient(
            self.rate_limiter,
            self.user_agents,
            self.retry_policy,
            timeout=self.config.strategies.http_timeout_seconds,
            sleep=sleep,
        )

        manager_kwargs: Dict[str, Any] = {}
        if playwright_factory is not None:
            manager_kwargs["playwright_factory"] = playwright_factory
        self.browser = BrowserManager(
            headless=engine_cfg.headless,
            launch_args=self.config.browser.launch_args,
            **manager_kwargs,
        )
        self.sessions = SessionFactory(
            self.browser,
            self.config.browser,
            self.user_agents,
            self.proxies,
            navigation_timeout_ms=engine_cfg.navigation_timeout_ms,
            rng=rng,
        )

        self.strategies: List[AcquisitionStrategy] = (
            list(strategies) if strategies is not None else self._build_strategies(sleep)
        )
        self.cascade = StrategyCascade(self.strategies, cache=self.cache)
        self.batch = BatchProcessor(self.cascade.acquire)

        self._shutdown = False
        logger.info(
            "Acquisition engine initialized",
            strategies=[s.kind.value for s in self.cascade.strategies],
            rate_limit=f"{engine_cfg.rate_limit.requests}/{engine_cfg.rate_limit.per_interval}",
            cache_backend="disk" if engine_cfg.cache.directory else "memory",
            proxies=len(engine_cfg.proxies),
        )

    def _build_strategies(self, sleep: Callable[[float], Awaitable[None]]) -> List[AcquisitionStrategy]:
        cfg = self.config.strategies
        return [
            FeedStrategy(
                self.http,
                feed_paths=cfg.feed_paths,
                discover=cfg.discover_feeds,
                max_items=cfg.max_feed_items,
                enabled=cfg.enable_feed,
            ),
            ApiProbeStrategy(self.http, api_paths=cfg.api_paths, enabled=cfg.enable_api),
            FetchStrategy(self.http, max_html_chars=cfg.max_html_chars, enabled=cfg.enable_fetch),
            BrowserStrategy(
                self.sessions,
                self.rate_limiter,
                self.config.browser,
                max_retries=self.config.engine.max_retries,
                navigation_timeout_ms=self.config.engine.navigation_timeout_ms,
                sleep=sleep,
                enabled=cfg.enable_browser,
            ),
        ]

    async def acquire(self, target: AcquisitionTarget | str) -> AcquisitionResult:
        """Acquire one target. Never raises for an acquisition failure."""
        return await self.cascade.acquire(target)

    async def acquire_batch(
        self, targets: Sequence[AcquisitionTarget | str], concurrency: Optional[int] = None
    ) -> List[AcquisitionResult]:
        """Acquire many targets with bounded parallelism; one result per target, in input order."""
        if concurrency is None:
            concurrency = self.config.batch.default_concurrency
        return await self.batch.process_all(targets, concurrency)

    async def shutdown(self) -> None:
        """Release the browser process and the HTTP session. No-op when nothing was started."""
        if self._shutdown:
            return
        self._shutdown = True
        try:
            await self.http.close()
        finally:
            await self.browser.shutdown()
        logger.info("Acquisition engine shut down")

    async def __aenter__(self) -> "AcquisitionEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "strategies": self.cascade.get_metrics(),
            "cache": {**self.cache.get_stats(), "cascade_hits": self.cascade.cache_hits},
            "rate_limiter": self.rate_limiter.get_stats(),
            "browser": {
                "running": self.browser.is_running,
                "closed": self.browser.is_closed,
                "launches": self.browser.launch_count,
                "sessions_created": self.sessions.sessions_created,
            },
            "http_requests": self.http.requests_sent,
            "batch": {
                "batches": self.batch.batches_processed,
                "max_in_flight": self.batch.max_in_flight_observed,
            },
        }
