"""
Detection and waiting-out of anti-bot interstitials.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from lodecore.recovery.errors import AccessDeniedError

from .waits import first_of

if TYPE_CHECKING:
    from playwright.async_api import Page

    from lodecore.config.config import BrowserConfig

logger = structlog.get_logger(__name__)

# Resolves once neither the title nor the DOM carries any challenge marker.
_CHALLENGE_CLEARED = (
    "({ markers, selectors }) => {"
    " const t = (document.title || '').toLowerCase();"
    " return !markers.some(m => t.includes(m)) && !selectors.some(s => document.querySelector(s)); }"
)


async def detect_challenge(page: Page, config: BrowserConfig) -> bool:
    title = (await page.title() or "").lower()
    if any(marker in title for marker in config.challenge_title_markers):
        return True
    for selector in config.challenge_selectors:
        if await page.query_selector(selector) is not None:
            return True
    return False


async def handle_challenge(
    page: Page,
    config: BrowserConfig,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """
    Wait out a challenge page if one is showing.

    Returns True when a challenge was detected. A challenge that does not
    clear within ``challenge_timeout_ms`` is logged and extraction proceeds
    after the settle delay, unless ``strict_challenge`` is set.

    Raises:
        AccessDeniedError: the challenge did not clear and ``strict_challenge`` is set.
    """
    try:
        detected = await detect_challenge(page, config)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug("Challenge detection failed", error=str(e))
        return False

    if not detected:
        return False

    logger.info("Challenge page detected, waiting for it to clear", url=page.url)
    clear_arg = {
        "markers": [m.lower() for m in config.challenge_title_markers],
        "selectors": list(config.challenge_selectors),
    }
    outcome = await first_of(
        [lambda: page.wait_for_function(_CHALLENGE_CLEARED, arg=clear_arg, timeout=config.challenge_timeout_ms)]
    )
    if outcome.satisfied:
        logger.info("Challenge cleared", url=page.url)
    elif config.strict_challenge:
        logger.warning("Challenge did not clear in time", url=page.url)
        raise AccessDeniedError(f"Challenge page did not clear: {page.url}", url=page.url)
    else:
        logger.warning("Challenge did not clear in time, continuing", url=page.url)

    await sleep(config.challenge_settle_ms / 1000.0)
    return True
