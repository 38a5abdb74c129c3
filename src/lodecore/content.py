"""
HTML content extraction helpers built on selectolax.

Used by the plain-fetch strategy on raw HTML and by the browser strategy on
the rendered document. Extraction is best-effort: every helper returns an
empty container rather than raising when the markup does not cooperate.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

import structlog
from selectolax.parser import HTMLParser, Node

from .crawler.urls import to_absolute
from .protocols import TargetHints

logger = structlog.get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_DATE_PATTERN = re.compile(r"(\d{4}[./-]\d{1,2}[./-]\d{1,2}|\d{4}\s*年\s*\d{1,2}\s*月\s*\d{1,2}\s*日?)")

MAX_ITEM_CONTENT = 500
MAX_DISCOVERED = 20
MIN_BLOCK_TEXT = 40
MIN_LINK_TEXT = 6


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def _node_text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return clean_text(node.text(separator=" "))


def _meta(parser: HTMLParser, selector: str) -> Optional[str]:
    node = parser.css_first(selector)
    if node is None:
        return None
    value = node.attributes.get("content")
    return clean_text(value) or None


def extract_page_metadata(parser: HTMLParser) -> Dict[str, Optional[str]]:
    """Title, description, keywords, author and canonical link of a page."""
    canonical = parser.css_first('link[rel="canonical"]')
    return {
        "title": _node_text(parser.css_first("title")) or None,
        "description": _meta(parser, 'meta[name="description"]'),
        "keywords": _meta(parser, 'meta[name="keywords"]'),
        "author": _meta(parser, 'meta[name="author"]'),
        "canonical": canonical.attributes.get("href") if canonical is not None else None,
    }


def extract_open_graph(parser: HTMLParser) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for node in parser.css('meta[property^="og:"]'):
        prop = node.attributes.get("property") or ""
        content = node.attributes.get("content")
        if content:
            data[prop[3:]] = clean_text(content)
    return data


def extract_twitter_card(parser: HTMLParser) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for node in parser.css('meta[name^="twitter:"]'):
        name = node.attributes.get("name") or ""
        content = node.attributes.get("content")
        if content:
            data[name[8:]] = clean_text(content)
    return data


def extract_structured_data(parser: HTMLParser) -> List[Any]:
    """Parsed JSON-LD blocks. Unparsable blocks are skipped."""
    blocks: List[Any] = []
    for node in parser.css('script[type="application/ld+json"]'):
        raw = node.text(deep=True) or ""
        if not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.debug("Skipping malformed JSON-LD block", error=str(e))
            continue
        if isinstance(data, list):
            blocks.extend(data)
        else:
            blocks.append(data)
    return blocks


def extract_hinted_items(parser: HTMLParser, hints: TargetHints, base_url: str) -> List[Dict[str, Any]]:
    """
    Items matched by the source's configured selectors.

    An item needs both a title and content. When no link selector is
    configured the item element itself may be the link.
    """
    if not hints.has_item_selectors:
        return []

    items: List[Dict[str, Any]] = []
    for element in parser.css(hints.item_selector or ""):
        title = _node_text(element.css_first(hints.title_selector or ""))
        content = _node_text(element.css_first(hints.content_selector)) if hints.content_selector else ""

        href: Optional[str] = None
        if hints.link_selector:
            link = element.css_first(hints.link_selector)
            href = link.attributes.get("href") if link is not None else None
        elif element.tag == "a":
            href = element.attributes.get("href")

        if title and content:
            items.append({"title": title, "content": content, "url": to_absolute(href, base_url) or base_url})
    return items


def discover_articles(html: str, base_url: str, limit: int = MAX_DISCOVERED) -> List[Dict[str, Any]]:
    """
    Find article-like blocks without source-specific selectors.

    A candidate is an ``article``, ``li`` or ``div`` with enough text and a
    first link whose text is long enough to serve as a title. Candidates are
    deduplicated by URL in document order.
    """
    parser = HTMLParser(html)
    seen: set[str] = set()
    articles: List[Dict[str, Any]] = []

    for block in parser.css("article, li, div"):
        text = _node_text(block)
        if len(text) < MIN_BLOCK_TEXT:
            continue

        link = block.css_first("a[href]")
        if link is None:
            continue
        url = to_absolute(link.attributes.get("href"), base_url)
        if not url or url in seen:
            continue

        title = _node_text(link)
        if len(title) < MIN_LINK_TEXT:
            continue

        date_match = _DATE_PATTERN.search(text)
        seen.add(url)
        articles.append(
            {
                "title": title,
                "content": text[:MAX_ITEM_CONTENT],
                "url": url,
                "published": date_match.group(0) if date_match else None,
            }
        )
        if len(articles) >= limit:
            break

    return articles


def extract_fetch_payload(html: str, url: str, hints: TargetHints, max_chars: int) -> Dict[str, Any]:
    """
    Minimal structured view of a fetched HTML page.

    ``items`` holds hinted or auto-discovered articles; the page counts as
    having data when it has a title or at least one item.
    """
    parser = HTMLParser(html)
    metadata = extract_page_metadata(parser)

    items = extract_hinted_items(parser, hints, url)
    if not items and hints.auto_discover:
        items = discover_articles(html, url)

    return {
        "url": url,
        "title": metadata["title"],
        "description": metadata["description"],
        "metadata": metadata,
        "open_graph": extract_open_graph(parser),
        "twitter": extract_twitter_card(parser),
        "structured_data": extract_structured_data(parser),
        "items": items,
        "html": html[:max_chars],
    }
