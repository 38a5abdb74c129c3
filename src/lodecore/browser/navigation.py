"""
Page navigation with its own retry loop.

Kept apart from the generic retry executor because a "not found" page must
fail immediately instead of being retried.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Sequence

import structlog

from lodecore.recovery.errors import PageNotFoundError

if TYPE_CHECKING:
    from playwright.async_api import Page, Response

logger = structlog.get_logger(__name__)

DEFAULT_NOT_FOUND_MARKERS = ("404", "not found")


async def navigate_with_retry(
    page: Page,
    url: str,
    *,
    max_retries: int = 3,
    timeout_ms: int = 30_000,
    not_found_markers: Sequence[str] = DEFAULT_NOT_FOUND_MARKERS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[Response]:
    """
    Navigate ``page`` to ``url``, retrying failed attempts.

    After failed attempt ``n`` the loop waits ``2**n`` seconds. A page whose
    title matches a not-found marker raises :class:`PageNotFoundError`
    straight away. When every attempt fails the last error is re-raised.
    """
    markers = [m.lower() for m in not_found_markers]
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_retries + 1):
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            title = (await page.title() or "").lower()
            if any(marker in title for marker in markers):
                raise PageNotFoundError(f"Page not found: {url}", url=url)
            if attempt > 1:
                logger.info("Navigation succeeded after retry", url=url, attempt=attempt)
            return response
        except PageNotFoundError:
            raise
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            logger.warning(
                "Navigation attempt failed",
                url=url,
                attempt=attempt,
                max_retries=max_retries,
                error=str(e),
            )
            if attempt < max_retries:
                await sleep(float(2**attempt))

    assert last_error is not None
    raise last_error
