"""Tests for navigation retries, challenge handling and content waits."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from lodecore.browser import first_of, handle_challenge, navigate_with_retry, wait_for_content
from lodecore.browser.challenge import detect_challenge
from lodecore.config import BrowserConfig
from lodecore.recovery import AccessDeniedError, PageNotFoundError
from tests.helpers import make_fake_page

FAST = BrowserConfig(challenge_timeout_ms=50, challenge_settle_ms=2000, content_wait_ms=50, network_idle_ms=50, post_wait_ms=1000)


@pytest.mark.unit
class TestNavigateWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        await navigate_with_retry(page, "https://example.com", sleep=no_sleep)
        page.goto.assert_awaited_once_with("https://example.com", wait_until="domcontentloaded", timeout=30_000)
        assert recorded_sleeps == []

    @pytest.mark.asyncio
    async def test_exponential_waits_between_attempts(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        page.goto.side_effect = [RuntimeError("net::ERR_CONNECTION_RESET"), RuntimeError("timeout"), None]

        await navigate_with_retry(page, "https://example.com", max_retries=3, sleep=no_sleep)

        assert page.goto.await_count == 3
        assert recorded_sleeps == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_raises_last_error_when_exhausted(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        page.goto.side_effect = [RuntimeError("first"), RuntimeError("second"), RuntimeError("third")]

        with pytest.raises(RuntimeError, match="third"):
            await navigate_with_retry(page, "https://example.com", max_retries=3, sleep=no_sleep)
        assert recorded_sleeps == [2.0, 4.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["404 - Missing", "Page Not Found"])
    async def test_not_found_title_is_fatal(self, no_sleep, recorded_sleeps, title):
        page = make_fake_page(title=title)
        with pytest.raises(PageNotFoundError):
            await navigate_with_retry(page, "https://example.com/gone", max_retries=3, sleep=no_sleep)
        assert page.goto.await_count == 1
        assert recorded_sleeps == []


@pytest.mark.unit
class TestFirstOf:
    @pytest.mark.asyncio
    async def test_first_success_wins_and_losers_are_cancelled(self):
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def fast():
            return "ready"

        outcome = await first_of([slow, fast])

        assert outcome.winner == 1
        assert outcome.value == "ready"
        assert outcome.satisfied
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_failed_observers_are_skipped(self):
        async def broken():
            raise RuntimeError("selector timeout")

        async def ok():
            await asyncio.sleep(0)
            return 42

        outcome = await first_of([broken, ok])
        assert outcome.winner == 1
        assert outcome.value == 42

    @pytest.mark.asyncio
    async def test_fallback_after_all_fail(self):
        async def broken():
            raise RuntimeError("nope")

        async def fallback():
            return "idle"

        outcome = await first_of([broken, broken], fallback=fallback)
        assert outcome.used_fallback
        assert outcome.fallback_succeeded
        assert outcome.satisfied
        assert outcome.winner is None

    @pytest.mark.asyncio
    async def test_never_raises_when_everything_fails(self):
        async def broken():
            raise RuntimeError("nope")

        outcome = await first_of([broken], fallback=broken)
        assert not outcome.satisfied
        assert outcome.used_fallback

        assert not (await first_of([])).satisfied


@pytest.mark.unit
class TestContentWait:
    @pytest.mark.asyncio
    async def test_selector_match_skips_network_idle(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        outcome = await wait_for_content(page, FAST, sleep=no_sleep)

        assert outcome.winner is not None
        page.wait_for_load_state.assert_not_awaited()
        assert recorded_sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_falls_back_to_network_idle(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        page.wait_for_selector.side_effect = RuntimeError("Timeout 50ms exceeded")

        outcome = await wait_for_content(page, FAST, sleep=no_sleep)

        assert outcome.fallback_succeeded
        page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=50)
        assert recorded_sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_proceeds_when_nothing_is_observed(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        page.wait_for_selector.side_effect = RuntimeError("Timeout")
        page.wait_for_load_state.side_effect = RuntimeError("Timeout")

        outcome = await wait_for_content(page, FAST, sleep=no_sleep)

        assert not outcome.satisfied
        assert recorded_sleeps == [1.0]


@pytest.mark.unit
class TestChallenge:
    @pytest.mark.asyncio
    async def test_detect_by_title(self):
        assert await detect_challenge(make_fake_page(title="Just a moment..."), FAST)
        assert not await detect_challenge(make_fake_page(title="Research Blog"), FAST)

    @pytest.mark.asyncio
    async def test_detect_by_selector(self):
        page = make_fake_page(title="Research Blog")
        page.query_selector = AsyncMock(side_effect=lambda selector: object())
        assert await detect_challenge(page, FAST)

    @pytest.mark.asyncio
    async def test_no_challenge_no_wait(self, no_sleep, recorded_sleeps):
        page = make_fake_page()
        assert await handle_challenge(page, FAST, sleep=no_sleep) is False
        page.wait_for_function.assert_not_awaited()
        assert recorded_sleeps == []

    @pytest.mark.asyncio
    async def test_waits_for_challenge_to_clear_then_settles(self, no_sleep, recorded_sleeps):
        page = make_fake_page(title="Just a moment...")

        assert await handle_challenge(page, FAST, sleep=no_sleep) is True

        page.wait_for_function.assert_awaited_once()
        assert page.wait_for_function.await_args.kwargs["timeout"] == 50
        assert recorded_sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_challenge_timeout_is_not_fatal(self, no_sleep, recorded_sleeps):
        page = make_fake_page(title="Attention Required! | Cloudflare")
        page.wait_for_function.side_effect = RuntimeError("Timeout 50ms exceeded")

        assert await handle_challenge(page, FAST, sleep=no_sleep) is True
        assert recorded_sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_strict_mode_denies_access(self, no_sleep, recorded_sleeps):
        page = make_fake_page(title="Just a moment...")
        page.wait_for_function.side_effect = RuntimeError("Timeout 50ms exceeded")
        strict = FAST.model_copy(update={"strict_challenge": True})

        with pytest.raises(AccessDeniedError):
            await handle_challenge(page, strict, sleep=no_sleep)
        assert recorded_sleeps == []

    @pytest.mark.asyncio
    async def test_dom_only_challenge_waits_for_selectors_to_clear(self, no_sleep):
        page = make_fake_page(title="Research Blog")
        page.query_selector = AsyncMock(side_effect=lambda selector: object() if selector == "#challenge-form" else None)

        assert await handle_challenge(page, FAST, sleep=no_sleep) is True

        predicate = page.wait_for_function.await_args.args[0]
        arg = page.wait_for_function.await_args.kwargs["arg"]
        assert "document.querySelector" in predicate
        assert "#challenge-form" in arg["selectors"]
        assert "just a moment" in arg["markers"]

    @pytest.mark.asyncio
    async def test_dom_only_challenge_denied_in_strict_mode(self, no_sleep):
        page = make_fake_page(title="Research Blog")
        page.query_selector = AsyncMock(side_effect=lambda selector: object())
        page.wait_for_function.side_effect = RuntimeError("Timeout 50ms exceeded")
        strict = FAST.model_copy(update={"strict_challenge": True})

        with pytest.raises(AccessDeniedError):
            await handle_challenge(page, strict, sleep=no_sleep)
