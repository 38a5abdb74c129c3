"""
Round-robin rotation of user agents and proxies.

Pools are immutable ordered lists; the only state is the cursor.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar

if TYPE_CHECKING:
    from lodecore.config.config import ProxySettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RotatingPool(Generic[T]):
    """Immutable ordered items with a rotating cursor."""

    def __init__(self, items: Iterable[T]):
        self._items: tuple[T, ...] = tuple(items)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def items(self) -> Sequence[T]:
        return self._items

    def next(self) -> Optional[T]:
        """Return the item under the cursor and advance it. None if the pool is empty."""
        if not self._items:
            return None
        item = self._items[self._cursor]
        self._cursor = (self._cursor + 1) % len(self._items)
        return item

    def reset(self) -> None:
        self._cursor = 0


class UserAgentRotator:
    """Hands out user agent strings in round-robin order."""

    def __init__(self, user_agents: Sequence[str]):
        if not user_agents:
            raise ValueError("at least one user agent is required")
        self._pool: RotatingPool[str] = RotatingPool(user_agents)
        self._usage: Dict[str, int] = {ua: 0 for ua in user_agents}

    def get_user_agent(self) -> str:
        ua = self._pool.next()
        assert ua is not None
        self._usage[ua] = self._usage.get(ua, 0) + 1
        return ua

    def get_stats(self) -> Dict[str, int]:
        return {"total_agents": len(self._pool), "total_served": sum(self._usage.values())}


class ProxyRotator:
    """Hands out Playwright proxy settings in round-robin order, or None when no proxies are configured."""

    def __init__(self, proxies: Sequence[ProxySettings]):
        self._pool: RotatingPool[ProxySettings] = RotatingPool(proxies)
        if proxies:
            logger.info(f"Proxy rotation enabled with {len(proxies)} proxies")

    def next_proxy(self) -> Optional[Dict[str, str]]:
        proxy = self._pool.next()
        return proxy.to_playwright() if proxy is not None else None

    @property
    def servers(self) -> List[str]:
        return [p.server for p in self._pool.items]
