"""
Lightweight JSON-API probe against conventional endpoints.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from lodecore.crawler.http_client import HttpClient
from lodecore.crawler.urls import get_origin
from lodecore.protocols import AcquisitionTarget, StrategyKind, is_empty_payload

from .base import BaseStrategy


class ApiProbeStrategy(BaseStrategy):
    """Tries each conventional API path on the target's origin; the first non-empty JSON body wins."""

    kind = StrategyKind.API

    def __init__(self, http: HttpClient, *, api_paths: Sequence[str] = (), enabled: bool = True) -> None:
        super().__init__(enabled=enabled)
        self.http = http
        self.api_paths = list(api_paths)

    def applies_to(self, target: AcquisitionTarget) -> bool:
        return self.enabled and bool(self.api_paths) and not target.hints.blocks_plain_http

    async def run(self, target: AcquisitionTarget) -> Optional[Dict[str, Any]]:
        origin = get_origin(target.url)
        last_error: Optional[Exception] = None

        for path in self.api_paths:
            endpoint = origin + path
            try:
                response = await self.http.fetch(endpoint, accept="application/json")
            except Exception as e:
                last_error = e
                self.logger.debug("API probe failed", url=endpoint, error=str(e))
                continue

            if not response.ok or not response.is_json:
                continue
            try:
                data = json.loads(response.text)
            except ValueError as e:
                self.logger.debug("API endpoint returned malformed JSON", url=endpoint, error=str(e))
                continue
            if is_empty_payload(data):
                continue

            self.logger.info("API endpoint responded", url=endpoint)
            return {"endpoint": endpoint, "data": data}

        if last_error is not None:
            self.logger.debug("No API endpoint found", url=target.url, last_error=str(last_error))
        return None
