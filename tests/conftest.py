"""
Shared test configuration for LodeCore.

Provides a fast configuration (no real delays), scripted strategies and a
mocked Playwright driver so no test launches a browser or touches the
network.
"""

import asyncio
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio

from lodecore.config import Config
from lodecore.engine import AcquisitionEngine
from lodecore.protocols import StrategyKind

from tests.helpers import FakePlaywright, FakeStrategy, make_fake_page

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "slow: Tests that rely on real wall-clock delays")


# ============================================================================
# Core Test Fixtures
# ============================================================================


@pytest_asyncio.fixture(autouse=True)
async def cleanup_tasks() -> AsyncGenerator[None, None]:
    """Cancel any task a test leaves behind."""
    tasks_before = asyncio.all_tasks()
    yield
    new_tasks = asyncio.all_tasks() - tasks_before
    for task in new_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


@pytest.fixture
def fast_config(tmp_path) -> Config:
    """Configuration with every delay collapsed and deterministic rotation."""
    return Config.model_validate(
        {
            "engine": {
                "navigation_timeout_ms": 1000,
                "max_retries": 2,
                "rate_limit": {"requests": 1000, "per_interval": "second"},
                "cache": {"ttl_ms": 60_000},
            },
            "retry": {"max_attempts": 2, "base_delay_ms": 0, "backoff": "linear"},
            "browser": {
                "challenge_timeout_ms": 50,
                "challenge_settle_ms": 0,
                "content_wait_ms": 50,
                "network_idle_ms": 50,
                "post_wait_ms": 0,
            },
            "strategies": {"http_timeout_ms": 2000},
            "monitoring": {"log_level": "DEBUG"},
            "debug": {"test_mode": True},
        }
    )


@pytest.fixture
def recorded_sleeps() -> List[float]:
    return []


@pytest.fixture
def no_sleep(recorded_sleeps):
    """Sleep replacement that records the requested delay and yields control."""

    async def _sleep(delay: float) -> None:
        recorded_sleeps.append(delay)
        await asyncio.sleep(0)

    return _sleep


@pytest.fixture
def fake_page():
    return make_fake_page()


@pytest.fixture
def fake_playwright(fake_page) -> FakePlaywright:
    return FakePlaywright(fake_page)


@pytest_asyncio.fixture
async def engine(fast_config, fake_playwright, no_sleep) -> AsyncGenerator[AcquisitionEngine, None]:
    """Engine with real strategies, a mocked browser and no real sleeping."""
    eng = AcquisitionEngine(fast_config, playwright_factory=fake_playwright, sleep=no_sleep)
    try:
        yield eng
    finally:
        await eng.shutdown()


@pytest.fixture
def make_strategies():
    """Factory for a full set of scripted strategies, one per kind."""

    def _make(**results) -> List[FakeStrategy]:
        strategies = []
        for kind in (StrategyKind.FEED, StrategyKind.API, StrategyKind.FETCH, StrategyKind.BROWSER):
            outcome = results.get(kind.value)
            if isinstance(outcome, BaseException):
                strategies.append(FakeStrategy(kind, error=outcome))
            else:
                strategies.append(FakeStrategy(kind, result=outcome))
        return strategies

    return _make
