"""
Plain HTTP fetch with minimal HTML parsing.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from lodecore.content import extract_fetch_payload
from lodecore.crawler.http_client import HttpClient
from lodecore.protocols import AcquisitionTarget, StrategyKind
from lodecore.recovery.errors import StrategyMiss

from .base import BaseStrategy


class FetchStrategy(BaseStrategy):
    kind = StrategyKind.FETCH

    def __init__(self, http: HttpClient, *, max_html_chars: int = 50_000, enabled: bool = True) -> None:
        super().__init__(enabled=enabled)
        self.http = http
        self.max_html_chars = max_html_chars

    def applies_to(self, target: AcquisitionTarget) -> bool:
        return self.enabled and not target.hints.blocks_plain_http

    async def run(self, target: AcquisitionTarget) -> Optional[Dict[str, Any]]:
        response = await self.http.fetch(target.url)
        if not response.ok:
            raise StrategyMiss(f"status {response.status}", url=target.url)
        if not response.text.strip():
            raise StrategyMiss("empty body", url=target.url)

        payload = extract_fetch_payload(response.text, response.final_url, target.hints, self.max_html_chars)
        payload["status"] = response.status

        if target.hints.has_item_selectors and not payload["items"]:
            # Selectors configured but nothing matched: likely rendered client-side
            raise StrategyMiss("no hinted items in fetched HTML", url=target.url)
        if not payload["title"] and not payload["items"]:
            raise StrategyMiss("no title or items", url=target.url)
        return payload
