"""
Lazily started, explicitly stopped browser process.

One manager belongs to one engine instance. The Playwright driver and the
Chromium process are started on the first call to :meth:`get_browser` and
released only by :meth:`shutdown`; a manager that has been shut down
refuses to start again.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

import structlog
from playwright.async_api import Browser, Playwright, async_playwright

from lodecore.recovery.errors import BrowserUnavailableError

logger = structlog.get_logger(__name__)


class BrowserManager:
    def __init__(
        self,
        *,
        headless: bool = True,
        launch_args: Optional[List[str]] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.headless = headless
        self.launch_args = list(launch_args or [])
        self._playwright_factory = playwright_factory

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._closed = False
        self.launch_count = 0

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def get_browser(self) -> Browser:
        """Return the shared browser, starting it on first use."""
        if self._browser is not None:
            return self._browser

        async with self._lock:
            # Double-check after acquiring lock
            if self._browser is not None:
                return self._browser
            if self._closed:
                raise BrowserUnavailableError("Browser manager has been shut down")

            logger.info("Launching browser", headless=self.headless)
            try:
                self._playwright = await self._playwright_factory().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=self.launch_args,
                )
            except Exception as e:
                await self._stop_driver()
                raise BrowserUnavailableError(f"Failed to launch browser: {e}") from e

            self.launch_count += 1
            return self._browser

    async def shutdown(self) -> None:
        """Close the browser and the driver. Safe to call repeatedly or before any launch."""
        async with self._lock:
            if self._closed:
                return
            self._closed = True

            if self._browser is not None:
                try:
                    await self._browser.close()
                except Exception as e:
                    # Typical when the driver is already gone at process shutdown
                    logger.warning("Error closing browser", error=str(e))
                finally:
                    self._browser = None
                logger.info("Browser closed")

            await self._stop_driver()

    async def _stop_driver(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.warning("Error stopping Playwright driver", error=str(e))
        finally:
            self._playwright = None
