"""
Cooperative wait combinator.

``first_of`` races several bounded waits and reports the first one that
completes; when all of them fail it runs an optional fallback wait. It
never raises for a failed or timed-out wait, so callers can always proceed
with best-effort extraction.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Sequence

import structlog

if TYPE_CHECKING:
    from playwright.async_api import Page

    from lodecore.config.config import BrowserConfig

logger = structlog.get_logger(__name__)

Observer = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class WaitOutcome:
    winner: Optional[int] = None
    value: Any = None
    used_fallback: bool = False
    fallback_succeeded: bool = False

    @property
    def satisfied(self) -> bool:
        return self.winner is not None or self.fallback_succeeded


async def first_of(observers: Sequence[Observer], fallback: Optional[Observer] = None) -> WaitOutcome:
    """
    Wait for the first observer to complete successfully.

    Remaining observers are cancelled once one succeeds. If every observer
    fails, ``fallback`` is awaited; its failure is recorded in the outcome.
    """
    tasks: List[asyncio.Task] = [asyncio.ensure_future(observer()) for observer in observers]
    index_of = {task: i for i, task in enumerate(tasks)}
    pending = set(tasks)

    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in sorted(done, key=lambda t: index_of[t]):
                if task.cancelled() or task.exception() is not None:
                    continue
                return WaitOutcome(winner=index_of[task], value=task.result())
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if fallback is None:
        return WaitOutcome()

    try:
        value = await fallback()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug("Fallback wait failed", error=str(e))
        return WaitOutcome(used_fallback=True)
    return WaitOutcome(value=value, used_fallback=True, fallback_succeeded=True)


async def wait_for_content(
    page: Page,
    config: BrowserConfig,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> WaitOutcome:
    """
    Wait for a content container, else network quiescence, then settle briefly.

    Always returns; a page that never shows a known container is still
    handed to extraction.
    """
    observers = [
        (lambda selector=selector: page.wait_for_selector(selector, timeout=config.content_wait_ms))
        for selector in config.content_selectors
    ]
    outcome = await first_of(
        observers,
        fallback=lambda: page.wait_for_load_state("networkidle", timeout=config.network_idle_ms),
    )
    if not outcome.satisfied:
        logger.debug("No content container or network idle observed, extracting anyway")
    await sleep(config.post_wait_ms / 1000.0)
    return outcome
