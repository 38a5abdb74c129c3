"""
ARC Prize leaderboard adapter.

The leaderboard is rendered client-side, so the page is always loaded in a
browser session. Entries are read with two DOM heuristics: table rows
first, then chart elements carrying ``data-score`` attributes. Free-text
percentages are never parsed.

When no heuristic yields an entry the adapter returns the last known top
score, tagged ``source: "fallback"``. Freshly read data is tagged
``source: "scraped"``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

import structlog
from selectolax.parser import HTMLParser

from lodecore.browser.navigation import navigate_with_retry
from lodecore.browser.session import SessionFactory
from lodecore.content import clean_text
from lodecore.crawler.rate_limiter import TokenBucketRateLimiter
from lodecore.protocols import AcquisitionTarget, StrategyKind

if TYPE_CHECKING:
    from lodecore.config.config import BrowserConfig

logger = structlog.get_logger(__name__)

LEADERBOARD_URL = "https://arcprize.org/leaderboard"
LEADERBOARD_NAME = "ARC Prize Leaderboard"
HUMAN_BASELINE = 1.0

# Last known top result (ARC Prize 2025, ARC-AGI-2 private set).
FALLBACK_TEAM = "ARChitects (2025 Winner)"
FALLBACK_SCORE = 0.24

TABLE_ROWS = "#leaderboard-table tbody tr, table tbody tr"
CHART_POINTS = 'circle[data-score], [class*="point"]'

SCRAPED = "scraped"
FALLBACK = "fallback"


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    team: str
    score: float


@dataclass
class LeaderboardResult:
    entries: List[LeaderboardEntry]
    source: str
    heuristic: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    human_baseline: float = HUMAN_BASELINE
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == FALLBACK

    @property
    def top_score(self) -> float:
        return max((e.score for e in self.entries), default=0.0)

    @property
    def gap(self) -> float:
        return self.human_baseline - self.top_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [{"rank": e.rank, "team": e.team, "score": e.score} for e in self.entries],
            "source": self.source,
            "fallback": self.is_fallback,
            "heuristic": self.heuristic,
            "timestamp": self.timestamp,
            "top_score": self.top_score,
            "human_baseline": self.human_baseline,
            "gap": round(self.gap, 6),
            "error": self.error,
        }


def _parse_score(text: Optional[str]) -> Optional[float]:
    """Percent string ("24.5%" or "24.5") to a fraction; None when unparsable or not positive."""
    if not text:
        return None
    try:
        value = float(text.strip().replace("%", "").strip()) / 100.0
    except ValueError:
        return None
    return value if value > 0 else None


def parse_table_rows(parser: HTMLParser) -> List[LeaderboardEntry]:
    entries: List[LeaderboardEntry] = []
    for index, row in enumerate(parser.css(TABLE_ROWS)):
        cells = row.css("td")
        if len(cells) < 2:
            continue
        score = _parse_score(cells[1].text())
        if score is None:
            continue
        team = clean_text(cells[0].text()) or f"Team {index + 1}"
        entries.append(LeaderboardEntry(rank=index + 1, team=team, score=score))
    return entries


def parse_chart_points(parser: HTMLParser) -> List[LeaderboardEntry]:
    entries: List[LeaderboardEntry] = []
    for index, point in enumerate(parser.css(CHART_POINTS)):
        score = _parse_score(point.attributes.get("data-score"))
        if score is None:
            continue
        team = point.attributes.get("data-team") or f"Entry {index + 1}"
        entries.append(LeaderboardEntry(rank=index + 1, team=team, score=score))
    return entries


HEURISTICS: List[tuple[str, Callable[[HTMLParser], List[LeaderboardEntry]]]] = [
    ("table", parse_table_rows),
    ("chart", parse_chart_points),
]


def parse_leaderboard(html: str) -> Optional[LeaderboardResult]:
    """Apply the heuristics in order; None when every one comes up empty."""
    parser = HTMLParser(html)
    for name, heuristic in HEURISTICS:
        entries = heuristic(parser)
        if entries:
            return LeaderboardResult(entries=entries, source=SCRAPED, heuristic=name)
    return None


def fallback_result(error: Optional[str] = None) -> LeaderboardResult:
    return LeaderboardResult(
        entries=[LeaderboardEntry(rank=1, team=FALLBACK_TEAM, score=FALLBACK_SCORE)],
        source=FALLBACK,
        error=error,
    )


class LeaderboardAdapter:
    """
    Browser-backed acquisition of the benchmark leaderboard.

    With ``allow_fallback`` (the default) the adapter never returns nothing:
    a miss or a failure yields :func:`fallback_result`. Disable it to get
    ``None`` instead and let callers decide.
    """

    kind = StrategyKind.BROWSER

    def __init__(
        self,
        sessions: SessionFactory,
        config: BrowserConfig,
        *,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        url: str = LEADERBOARD_URL,
        render_wait: float = 5.0,
        max_retries: int = 3,
        navigation_timeout_ms: int = 30_000,
        allow_fallback: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.sessions = sessions
        self.config = config
        self.rate_limiter = rate_limiter
        self.url = url
        self.render_wait = render_wait
        self.max_retries = max_retries
        self.navigation_timeout_ms = navigation_timeout_ms
        self.allow_fallback = allow_fallback
        self._sleep = sleep

    async def attempt(self, target: AcquisitionTarget) -> Optional[Dict[str, Any]]:
        result = await self.crawl(target.url)
        return result.to_dict() if result is not None else None

    async def crawl(self, url: Optional[str] = None) -> Optional[LeaderboardResult]:
        url = url or self.url
        start = time.monotonic()
        try:
            html = await self._render(url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Leaderboard render failed", url=url, error=str(e))
            return fallback_result(error=str(e)) if self.allow_fallback else None

        result = parse_leaderboard(html)
        if result is None:
            if not self.allow_fallback:
                logger.info("Leaderboard heuristics found no entries", url=url)
                return None
            logger.info("Leaderboard heuristics found no entries, using last known score", url=url)
            return fallback_result()

        logger.info(
            "Leaderboard scraped",
            url=url,
            entries=len(result.entries),
            heuristic=result.heuristic,
            top_score=result.top_score,
            elapsed=round(time.monotonic() - start, 3),
        )
        return result

    async def _render(self, url: str) -> str:
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire_token()
        async with self.sessions.open() as session:
            page = session.page
            assert page is not None
            await navigate_with_retry(
                page,
                url,
                max_retries=self.max_retries,
                timeout_ms=self.navigation_timeout_ms,
                not_found_markers=self.config.not_found_markers,
                sleep=self._sleep,
            )
            try:
                await page.wait_for_load_state("networkidle", timeout=self.config.network_idle_ms)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug("Leaderboard did not reach network idle", error=str(e))
            # Chart rendering finishes after network idle
            await self._sleep(self.render_wait)
            return await page.content()


def leaderboard_to_records(result: LeaderboardResult, limit: int = 10) -> List[Dict[str, Any]]:
    """Top entries as crawl records for downstream storage."""
    stamp = int(time.time() * 1000)
    records = []
    for entry in result.entries[:limit]:
        pct = entry.score * 100
        records.append(
            {
                "title": f"ARC-AGI-2 Leaderboard: {entry.team} - {pct:.1f}%",
                "content": (
                    f'Team "{entry.team}" ranked #{entry.rank} on ARC-AGI-2 benchmark with score {pct:.1f}%. '
                    f"Current gap to human performance (100%): {(1 - entry.score) * 100:.1f}%. "
                    f"Top score on leaderboard: {result.top_score * 100:.1f}%."
                ),
                "url": LEADERBOARD_URL,
                "metadata": {
                    "source": LEADERBOARD_NAME,
                    "timestamp": result.timestamp,
                    "id": f"arc-leaderboard-{'-'.join(entry.team.lower().split())}-{stamp}",
                    "type": "benchmark",
                    "score": entry.score,
                    "rank": entry.rank,
                    "provenance": result.source,
                },
            }
        )
    return records
