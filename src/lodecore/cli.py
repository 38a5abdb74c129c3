"""Command-line interface for LodeCore."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import click
import structlog

from lodecore import __version__
from lodecore.adapters.leaderboard import LeaderboardAdapter, leaderboard_to_records
from lodecore.config.config import Config
from lodecore.engine import AcquisitionEngine
from lodecore.observability.logging import configure_logging
from lodecore.observability.metrics import start_metrics_server
from lodecore.protocols import AcquisitionTarget, TargetHints

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def load_config(config_path: Optional[Path], log_level: Optional[str]) -> Config:
    config = Config.from_yaml(config_path) if config_path else Config()
    if log_level:
        config.monitoring.log_level = log_level
    return config


def load_targets(path: Path) -> List[AcquisitionTarget]:
    """
    Read batch targets from a file.

    JSON files hold a list of URLs or of ``{"url": ..., "hints": {...}}``
    objects; anything else is read as one URL per line, ``#`` comments allowed.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        targets = []
        for item in json.loads(text):
            if isinstance(item, str):
                targets.append(AcquisitionTarget(url=item))
            else:
                targets.append(AcquisitionTarget(url=item["url"], hints=TargetHints.from_dict(item.get("hints") or {})))
        return targets

    return [
        AcquisitionTarget(url=line.strip())
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


def _dump(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _run_with_engine(config: Config, work: Callable[[AcquisitionEngine], Awaitable[T]]) -> T:
    async def runner() -> T:
        engine = AcquisitionEngine(config)
        try:
            return await work(engine)
        finally:
            await engine.shutdown()

    return asyncio.run(runner())


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], log_level: Optional[str]) -> None:
    """LodeCore - multi-strategy web acquisition engine."""
    ctx.ensure_object(dict)
    config = load_config(config_path, log_level)
    configure_logging(config.monitoring)
    start_metrics_server(config.monitoring.prometheus_port)
    ctx.obj["config"] = config


@cli.command()
@click.argument("url")
@click.option("--source", help="Source name recorded with the result")
@click.option("--feed", "feeds", multiple=True, help="Known feed URL (can be used multiple times)")
@click.option("--selector", help="CSS selector for article items")
@click.option("--title-selector", help="CSS selector for the item title")
@click.option("--content-selector", help="CSS selector for the item body")
@click.option("--link-selector", help="CSS selector for the item link")
@click.option("--blocks-plain-http", is_flag=True, help="Skip the API probe and plain fetch for this source")
@click.option("--auto-discover", is_flag=True, help="Discover article links when no selectors match")
@click.option("--stats", is_flag=True, help="Print engine statistics after the result")
@click.pass_context
def acquire(
    ctx: click.Context,
    url: str,
    source: Optional[str],
    feeds: tuple[str, ...],
    selector: Optional[str],
    title_selector: Optional[str],
    content_selector: Optional[str],
    link_selector: Optional[str],
    blocks_plain_http: bool,
    auto_discover: bool,
    stats: bool,
) -> None:
    """Acquire a single URL and print the result as JSON."""
    hints = TargetHints(
        source=source,
        feed_urls=tuple(feeds),
        item_selector=selector,
        title_selector=title_selector,
        content_selector=content_selector,
        link_selector=link_selector,
        blocks_plain_http=blocks_plain_http,
        auto_discover=auto_discover,
    )
    target = AcquisitionTarget(url=url, hints=hints)

    async def work(engine: AcquisitionEngine) -> Any:
        result = await engine.acquire(target)
        return result, (engine.get_stats() if stats else None)

    result, engine_stats = _run_with_engine(ctx.obj["config"], work)
    _dump(result.to_dict())
    if engine_stats is not None:
        _dump(engine_stats)
    if not result.succeeded:
        sys.exit(1)


@cli.command()
@click.argument("targets_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--concurrency", "-n", type=click.IntRange(min=1), default=None, help="Maximum acquisitions in flight")
@click.pass_context
def batch(ctx: click.Context, targets_file: Path, concurrency: Optional[int]) -> None:
    """Acquire every target listed in TARGETS_FILE and print the results as JSON."""
    targets = load_targets(targets_file)
    if not targets:
        raise click.UsageError(f"No targets found in {targets_file}")

    async def work(engine: AcquisitionEngine) -> Any:
        return await engine.acquire_batch(targets, concurrency)

    results = _run_with_engine(ctx.obj["config"], work)
    _dump([r.to_dict() for r in results])

    failed = sum(1 for r in results if not r.succeeded)
    click.echo(f"{len(results) - failed}/{len(results)} targets acquired", err=True)


@cli.command()
@click.option("--records", is_flag=True, help="Print crawl records instead of the raw leaderboard")
@click.option("--no-fallback", is_flag=True, help="Report a miss instead of the last known score")
@click.pass_context
def leaderboard(ctx: click.Context, records: bool, no_fallback: bool) -> None:
    """Scrape the ARC Prize leaderboard."""
    config: Config = ctx.obj["config"]

    async def work(engine: AcquisitionEngine) -> Any:
        adapter = LeaderboardAdapter(
            engine.sessions,
            config.browser,
            rate_limiter=engine.rate_limiter,
            max_retries=config.engine.max_retries,
            navigation_timeout_ms=config.engine.navigation_timeout_ms,
            allow_fallback=not no_fallback,
        )
        return await adapter.crawl()

    result = _run_with_engine(config, work)
    if result is None:
        click.echo("No leaderboard entries found", err=True)
        sys.exit(1)

    _dump(leaderboard_to_records(result) if records else result.to_dict())
    if result.is_fallback:
        click.echo("Warning: leaderboard could not be scraped; showing last known score", err=True)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
