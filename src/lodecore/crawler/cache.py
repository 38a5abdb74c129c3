"""
Short-TTL acquisition cache.

Keys are digests of the canonical target URL, so targets that differ only by
query-parameter order, a trailing slash or a fragment share one entry.
Expiry is checked lazily on read; an expired entry is evicted by the read
that observes it. Writes never raise: a failed write is logged and the
engine carries on without that entry.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import structlog

from lodecore.observability.metrics import record_cache_lookup
from lodecore.protocols import AcquisitionTarget
from lodecore.utils.atomic import atomic_json_dump, read_json

from .urls import cache_key, canonicalize_url

logger = structlog.get_logger(__name__)

TargetLike = Union[AcquisitionTarget, str]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "payload": self.payload, "stored_at": self.stored_at, "ttl": self.ttl}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CacheEntry:
        return cls(
            key=str(data["key"]),
            payload=data.get("payload"),
            stored_at=float(data["stored_at"]),
            ttl=float(data["ttl"]),
        )


def _url_of(target: TargetLike) -> str:
    return target.url if isinstance(target, AcquisitionTarget) else str(target)


class AcquisitionCache:
    """
    TTL cache for acquisition payloads.

    Entries live in memory unless ``directory`` is given, in which case each
    entry is one JSON file named after its key.
    """

    def __init__(
        self,
        ttl: float = 3600.0,
        directory: Optional[Path] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        self.ttl = ttl
        self.directory = Path(directory) if directory is not None else None
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

        self.hits = 0
        self.misses = 0
        self.expired = 0
        self.write_failures = 0

    @staticmethod
    def key_for(target: TargetLike) -> str:
        return cache_key(_url_of(target))

    async def get(self, target: TargetLike) -> Optional[Any]:
        """Return the cached payload, or None on a miss or an expired entry."""
        key = self.key_for(target)
        entry = await self._load(key)

        if entry is None:
            self.misses += 1
            record_cache_lookup("miss")
            return None

        if entry.is_expired(self._clock()):
            self.expired += 1
            self.misses += 1
            record_cache_lookup("expired")
            logger.debug("Cache entry expired", key=key, age=self._clock() - entry.stored_at)
            await self._evict(key)
            return None

        self.hits += 1
        record_cache_lookup("hit")
        return entry.payload

    async def set(self, target: TargetLike, payload: Any) -> None:
        """Store ``payload`` for ``target``. Failures are logged, never raised."""
        key = self.key_for(target)
        entry = CacheEntry(key=key, payload=payload, stored_at=self._clock(), ttl=self.ttl)

        if self.directory is None:
            self._entries[key] = entry
            return

        data = entry.to_dict()
        data["url"] = canonicalize_url(_url_of(target))
        if not await atomic_json_dump(data, self._path_for(key)):
            self.write_failures += 1
            logger.warning("Cache write failed, continuing without cache entry", key=key)

    async def clear(self) -> None:
        self._entries.clear()
        if self.directory is None or not self.directory.exists():
            return
        for path in self.directory.glob("*.json"):
            try:
                path.unlink()
            except OSError as e:
                logger.warning("Failed to remove cache file", path=str(path), error=str(e))

    def __len__(self) -> int:
        if self.directory is None:
            return len(self._entries)
        if not self.directory.exists():
            return 0
        return sum(1 for _ in self.directory.glob("*.json"))

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": "disk" if self.directory is not None else "memory",
            "entries": len(self),
            "hits": self.hits,
            "misses": self.misses,
            "expired": self.expired,
            "write_failures": self.write_failures,
        }

    def _path_for(self, key: str) -> Path:
        assert self.directory is not None
        return self.directory / f"{key}.json"

    async def _load(self, key: str) -> Optional[CacheEntry]:
        if self.directory is None:
            return self._entries.get(key)

        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, read_json, self._path_for(key))
        if data is None:
            return None
        try:
            return CacheEntry.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Corrupt cache entry treated as miss", key=key, error=str(e))
            await self._evict(key)
            return None

    async def _evict(self, key: str) -> None:
        if self.directory is None:
            self._entries.pop(key, None)
            return
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to evict cache file", key=key, error=str(e))
