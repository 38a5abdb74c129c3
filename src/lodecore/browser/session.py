"""
Isolated, fingerprint-randomised browser sessions.

Each :class:`BrowserSession` owns one browser context and one page for the
duration of a single acquisition attempt. Both handles are released when
the ``async with`` block exits, whether it returns or raises.
"""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog

from lodecore.crawler.rotation import ProxyRotator, UserAgentRotator
from lodecore.observability.metrics import METRICS

from .manager import BrowserManager
from .stealth import build_stealth_scripts

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Dialog, Page

    from lodecore.config.config import BrowserConfig

logger = structlog.get_logger(__name__)


class BrowserSession:
    """One context plus one page. Use as an async context manager."""

    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.context_options: Dict[str, Any] = {}
        self.closed = False

    async def __aenter__(self) -> BrowserSession:
        try:
            await self._open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _open(self) -> None:
        factory = self._factory
        browser = await factory.manager.get_browser()

        self.context_options = factory.build_context_options()
        self.context = await browser.new_context(**self.context_options)
        METRICS["browser_sessions_open"].inc()

        for script in factory.stealth_scripts:
            await self.context.add_init_script(script)

        # Auto-close popups opened by the target page
        self.context.on("page", self._on_popup)

        self.page = await self.context.new_page()
        self.page.set_default_timeout(factory.navigation_timeout_ms)
        self.page.on("dialog", self._on_dialog)

    def _on_dialog(self, dialog: Dialog) -> None:
        asyncio.ensure_future(_quietly(dialog.dismiss(), "dismiss dialog"))

    def _on_popup(self, popup: Page) -> None:
        if popup is not self.page:
            asyncio.ensure_future(_quietly(popup.close(), "close popup"))

    async def close(self) -> None:
        """Release the page and the context. Idempotent."""
        if self.closed:
            return
        self.closed = True

        page, self.page = self.page, None
        context, self.context = self.context, None
        try:
            if page is not None:
                await _quietly(page.close(), "close page")
        finally:
            if context is not None:
                await _quietly(context.close(), "close context")
                METRICS["browser_sessions_open"].dec()


async def _quietly(awaitable: Any, action: str) -> None:
    try:
        await awaitable
    except Exception as e:
        logger.debug("Browser cleanup step failed", action=action, error=str(e))


class SessionFactory:
    """
    Creates :class:`BrowserSession` objects on top of a shared browser.

    Every session gets the next user agent and proxy from the rotators, a
    viewport jittered around the configured base size, the configured
    locale and timezone, and the stealth init scripts.
    """

    def __init__(
        self,
        manager: BrowserManager,
        config: BrowserConfig,
        user_agents: UserAgentRotator,
        proxies: Optional[ProxyRotator] = None,
        *,
        navigation_timeout_ms: int = 30_000,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.manager = manager
        self.config = config
        self.user_agents = user_agents
        self.proxies = proxies
        self.navigation_timeout_ms = navigation_timeout_ms
        self._rng = rng or random.Random()
        self.stealth_scripts = build_stealth_scripts(config.locale)
        self.sessions_created = 0

    def build_context_options(self) -> Dict[str, Any]:
        jitter = self.config.viewport_jitter
        options: Dict[str, Any] = {
            "user_agent": self.user_agents.get_user_agent(),
            "viewport": {
                "width": self.config.viewport_width + self._rng.randint(0, jitter),
                "height": self.config.viewport_height + self._rng.randint(0, jitter),
            },
            "locale": self.config.locale,
            "timezone_id": self.config.timezone_id,
        }
        proxy = self.proxies.next_proxy() if self.proxies is not None else None
        if proxy is not None:
            options["proxy"] = proxy
        return options

    def open(self) -> BrowserSession:
        self.sessions_created += 1
        return BrowserSession(self)
