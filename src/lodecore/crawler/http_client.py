"""
Shared aiohttp client for the HTTP-based strategies.

Every request takes a token from the engine's rate limiter and runs inside
the generic retry executor, so transient faults are retried in place while
access denials surface immediately.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
import structlog

from lodecore.protocols import RetryPolicy
from lodecore.recovery.errors import AccessDeniedError, TransientNetworkError
from lodecore.recovery.retry import with_retry

from .rate_limiter import TokenBucketRateLimiter
from .rotation import UserAgentRotator

logger = structlog.get_logger(__name__)

DENIED_STATUSES = frozenset({401, 403, 429})
TRANSIENT_STATUSES = frozenset({500, 502, 503, 504})

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass
class HttpResponse:
    """A fully read response."""

    status: int
    headers: Dict[str, str]
    text: str
    url: str
    final_url: str
    elapsed: float

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value.lower()
        return ""

    @property
    def is_json(self) -> bool:
        return "json" in self.content_type


class HttpClient:
    def __init__(
        self,
        rate_limiter: TokenBucketRateLimiter,
        user_agents: UserAgentRotator,
        retry_policy: RetryPolicy,
        *,
        timeout: float = 15.0,
        sleep: Optional[Any] = None,
    ):
        self.rate_limiter = rate_limiter
        self.user_agents = user_agents
        self.retry_policy = retry_policy
        self.timeout = timeout
        self._sleep = sleep

        self.session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()
        self.requests_sent = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            async with self._session_lock:
                if self.session is None or self.session.closed:
                    self.session = aiohttp.ClientSession(
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                        headers=DEFAULT_HEADERS,
                    )
                    logger.debug("HTTP client session initialized")
        return self.session

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None
            logger.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, url: str, *, accept: Optional[str] = None) -> HttpResponse:
        """
        GET ``url`` with rate limiting and retries.

        Raises:
            AccessDeniedError: 401, 403 or 429 response. Never retried.
            TransientNetworkError: 5xx response on the final attempt.
            aiohttp.ClientError / asyncio.TimeoutError: transport failure on the final attempt.
        """
        return await with_retry(
            lambda: self._fetch_once(url, accept),
            self.retry_policy,
            sleep=self._sleep,
            label=f"GET {url}",
        )

    async def _fetch_once(self, url: str, accept: Optional[str]) -> HttpResponse:
        await self.rate_limiter.acquire_token()
        session = await self._get_session()

        headers = {"User-Agent": self.user_agents.get_user_agent()}
        if accept:
            headers["Accept"] = accept

        start_time = time.monotonic()
        self.requests_sent += 1
        async with session.get(url, headers=headers, allow_redirects=True) as response:
            status = response.status
            if status in DENIED_STATUSES:
                raise AccessDeniedError(f"HTTP {status} from {url}", url=url, status=status)
            if status in TRANSIENT_STATUSES:
                raise TransientNetworkError(f"HTTP {status} from {url}", url=url, code=f"HTTP_{status}")

            text = await response.text(errors="replace")
            result = HttpResponse(
                status=status,
                headers=dict(response.headers),
                text=text,
                url=url,
                final_url=str(response.url),
                elapsed=time.monotonic() - start_time,
            )

        logger.debug("HTTP response", url=url, status=status, elapsed=round(result.elapsed, 3))
        return result
