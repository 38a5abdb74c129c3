"""
Full browser automation strategy.

Runs inside an isolated session: navigate (with its own retry loop), wait
out any challenge page, wait for content, then extract. The session is
closed before the strategy returns or raises.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from selectolax.parser import HTMLParser

from lodecore.browser.challenge import handle_challenge
from lodecore.browser.navigation import navigate_with_retry
from lodecore.browser.session import SessionFactory
from lodecore.browser.waits import wait_for_content
from lodecore.content import clean_text, discover_articles, extract_hinted_items
from lodecore.crawler.rate_limiter import TokenBucketRateLimiter
from lodecore.protocols import AcquisitionTarget, StrategyKind

from .base import BaseStrategy

if TYPE_CHECKING:
    from playwright.async_api import Page

    from lodecore.config.config import BrowserConfig

MAX_LINKS = 50
MAX_IMAGES = 20
MAX_PARAGRAPHS = 10

# Runs in the page; returns plain JSON-serialisable data.
EXTRACT_PAGE_SCRIPT = """
() => {
    const meta = {};
    for (const name of ['description', 'keywords', 'author']) {
        const el = document.querySelector(`meta[name="${name}"]`);
        if (el) meta[name] = el.getAttribute('content');
    }
    for (const prop of ['og:title', 'og:description', 'og:image']) {
        const el = document.querySelector(`meta[property="${prop}"]`);
        if (el) meta[prop] = el.getAttribute('content');
    }
    const main = document.querySelector('main, article, [role="main"], #content, .content') || document.body;
    return {
        title: document.title,
        url: window.location.href,
        meta: meta,
        h1: Array.from(document.querySelectorAll('h1')).map(h => h.textContent.trim()).filter(Boolean),
        main_text: main ? main.innerText : '',
        paragraphs: Array.from(document.querySelectorAll('p')).map(p => p.textContent.trim()).filter(Boolean).slice(0, %(paragraphs)d),
        links: Array.from(document.querySelectorAll('a[href]')).slice(0, %(links)d).map(a => ({text: a.textContent.trim(), href: a.href})),
        images: Array.from(document.querySelectorAll('img[src]')).slice(0, %(images)d).map(img => ({src: img.src, alt: img.alt})),
    };
}
""" % {"paragraphs": MAX_PARAGRAPHS, "links": MAX_LINKS, "images": MAX_IMAGES}


class BrowserStrategy(BaseStrategy):
    """
    Scripted rendering through a fresh browser session per attempt.

    Navigation carries its own retry loop, so this strategy is rate limited
    but not additionally wrapped by the generic retry executor.
    """

    kind = StrategyKind.BROWSER

    def __init__(
        self,
        sessions: SessionFactory,
        rate_limiter: TokenBucketRateLimiter,
        config: BrowserConfig,
        *,
        max_retries: int = 3,
        navigation_timeout_ms: int = 30_000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled=enabled)
        self.sessions = sessions
        self.rate_limiter = rate_limiter
        self.config = config
        self.max_retries = max_retries
        self.navigation_timeout_ms = navigation_timeout_ms
        self._sleep = sleep

    async def run(self, target: AcquisitionTarget) -> Optional[Dict[str, Any]]:
        await self.rate_limiter.acquire_token()

        async with self.sessions.open() as session:
            page = session.page
            assert page is not None
            await navigate_with_retry(
                page,
                target.url,
                max_retries=self.max_retries,
                timeout_ms=self.navigation_timeout_ms,
                not_found_markers=self.config.not_found_markers,
                sleep=self._sleep,
            )
            challenged = await handle_challenge(page, self.config, sleep=self._sleep)
            await wait_for_content(page, self.config, sleep=self._sleep)
            payload = await self.extract(page, target)
            payload["challenge_detected"] = challenged
            payload["user_agent"] = session.context_options.get("user_agent")

        if target.hints.has_item_selectors and not payload["items"]:
            self.logger.info("No hinted items in rendered page", url=target.url)
            return None
        if not payload["title"] and not payload["main_text"] and not payload["items"]:
            return None
        return payload

    async def extract(self, page: Page, target: AcquisitionTarget) -> Dict[str, Any]:
        data = await page.evaluate(EXTRACT_PAGE_SCRIPT) or {}
        html = await page.content()
        final_url = data.get("url") or page.url or target.url

        items = extract_hinted_items(HTMLParser(html), target.hints, final_url)
        if not items and target.hints.auto_discover:
            items = discover_articles(html, final_url)

        return {
            "url": final_url,
            "title": clean_text(data.get("title")) or None,
            "meta": data.get("meta") or {},
            "h1": data.get("h1") or [],
            "main_text": clean_text(data.get("main_text")),
            "paragraphs": (data.get("paragraphs") or [])[:MAX_PARAGRAPHS],
            "links": (data.get("links") or [])[:MAX_LINKS],
            "images": (data.get("images") or [])[:MAX_IMAGES],
            "items": items,
        }
