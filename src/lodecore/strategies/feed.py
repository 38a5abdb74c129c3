"""
Feed-protocol strategy: RSS 2.0 and Atom via feedparser.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import feedparser
from selectolax.parser import HTMLParser

from lodecore.content import clean_text
from lodecore.crawler.http_client import HttpClient
from lodecore.crawler.urls import get_origin, to_absolute
from lodecore.protocols import AcquisitionTarget, StrategyKind
from lodecore.recovery.errors import AccessDeniedError, MalformedResponseError

from .base import BaseStrategy

FEED_SUFFIXES = (".rss", ".xml", ".atom", "/rss", "/feed", "/atom")


def looks_like_feed(url: str) -> bool:
    path = url.split("?", 1)[0].rstrip("/").lower()
    return path.endswith(FEED_SUFFIXES)


def _entry_content(entry: Any) -> str:
    raw = ""
    contents = entry.get("content") or []
    if contents:
        raw = contents[0].get("value", "")
    raw = raw or entry.get("summary", "") or entry.get("description", "")
    if not raw:
        return ""
    if "<" in raw:
        raw = HTMLParser(raw).text(separator=" ")
    return clean_text(raw)


def normalize_entries(entries: Sequence[Any], base_url: str, limit: int) -> List[Dict[str, Any]]:
    """Map feed entries to ``{title, link, published, content, author}``; untitled entries are dropped."""
    items: List[Dict[str, Any]] = []
    for entry in entries:
        title = clean_text(entry.get("title"))
        if not title:
            continue
        items.append(
            {
                "title": title,
                "link": to_absolute(entry.get("link"), base_url),
                "published": entry.get("published") or entry.get("updated"),
                "content": _entry_content(entry),
                "author": entry.get("author"),
            }
        )
        if len(items) >= limit:
            break
    return items


class FeedStrategy(BaseStrategy):
    kind = StrategyKind.FEED

    def __init__(
        self,
        http: HttpClient,
        *,
        feed_paths: Sequence[str] = (),
        discover: bool = True,
        max_items: int = 50,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled=enabled)
        self.http = http
        self.feed_paths = list(feed_paths)
        self.discover = discover
        self.max_items = max_items

    def candidate_urls(self, target: AcquisitionTarget) -> List[str]:
        candidates: List[str] = []
        for feed_url in target.hints.feed_urls:
            absolute = to_absolute(feed_url, target.url)
            if absolute:
                candidates.append(absolute)
        if looks_like_feed(target.url):
            candidates.append(target.url)
        if not candidates and self.discover:
            origin = get_origin(target.url)
            candidates.extend(origin + path for path in self.feed_paths)

        # Preserve order, drop duplicates
        return list(dict.fromkeys(candidates))

    def applies_to(self, target: AcquisitionTarget) -> bool:
        return self.enabled and bool(self.candidate_urls(target))

    async def run(self, target: AcquisitionTarget) -> Optional[Dict[str, Any]]:
        known = set(target.hints.feed_urls) or {target.url}
        last_error: Optional[Exception] = None

        for feed_url in self.candidate_urls(target):
            try:
                payload = await self._read_feed(feed_url)
            except AccessDeniedError:
                raise
            except Exception as e:
                last_error = e
                if feed_url in known:
                    self.logger.info("Known feed failed", url=feed_url, error=str(e))
                else:
                    self.logger.debug("Feed probe failed", url=feed_url, error=str(e))
                continue

            if payload is not None:
                self.logger.info("Feed acquired", url=feed_url, items=len(payload["items"]))
                return payload

        if last_error is not None:
            raise last_error
        return None

    async def _read_feed(self, feed_url: str) -> Optional[Dict[str, Any]]:
        response = await self.http.fetch(
            feed_url, accept="application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8"
        )
        if not response.ok:
            return None

        parsed = feedparser.parse(response.text)
        if not parsed.entries:
            if parsed.get("bozo") and parsed.get("version", "") == "":
                raise MalformedResponseError(
                    f"Unparsable feed: {parsed.get('bozo_exception')}", url=feed_url
                )
            return None

        items = normalize_entries(parsed.entries, response.final_url, self.max_items)
        if not items:
            return None

        feed_meta = parsed.get("feed", {})
        return {
            "feed_url": feed_url,
            "format": parsed.get("version") or None,
            "title": clean_text(feed_meta.get("title")) or None,
            "link": feed_meta.get("link"),
            "items": items,
        }
