"""Tests for the acquisition cache."""

import os

import pytest

from lodecore.crawler.cache import AcquisitionCache, CacheEntry
from lodecore.protocols import AcquisitionTarget
from lodecore.utils.atomic import atomic_write_json, read_json


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        cache = AcquisitionCache(ttl=60)
        await cache.set("https://example.com/a", {"items": [1, 2]})
        assert await cache.get("https://example.com/a") == {"items": [1, 2]}
        assert cache.hits == 1

    @pytest.mark.asyncio
    async def test_miss(self):
        cache = AcquisitionCache(ttl=60)
        assert await cache.get("https://example.com/unknown") is None
        assert cache.misses == 1

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self):
        clock = Clock()
        cache = AcquisitionCache(ttl=10, clock=clock)
        await cache.set("https://example.com/a", {"v": 1})

        clock.now += 10
        assert await cache.get("https://example.com/a") == {"v": 1}

        clock.now += 0.001
        assert await cache.get("https://example.com/a") is None
        assert cache.expired == 1
        # The expiring read evicts the entry
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_equivalent_urls_share_an_entry(self):
        cache = AcquisitionCache(ttl=60)
        await cache.set("https://Example.com/blog/?b=2&a=1#top", {"v": 1})

        assert await cache.get("https://example.com/blog?a=1&b=2") == {"v": 1}
        assert await cache.get(AcquisitionTarget("https://example.com/blog/?a=1&b=2")) == {"v": 1}
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = AcquisitionCache(ttl=60)
        await cache.set("https://example.com/a", 1)
        await cache.clear()
        assert len(cache) == 0

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            AcquisitionCache(ttl=-1)


@pytest.mark.unit
class TestDiskCache:
    @pytest.mark.asyncio
    async def test_round_trip_survives_new_instance(self, tmp_path):
        cache = AcquisitionCache(ttl=60, directory=tmp_path)
        await cache.set("https://example.com/a", {"title": "Hello"})

        reopened = AcquisitionCache(ttl=60, directory=tmp_path)
        assert await reopened.get("https://example.com/a/") == {"title": "Hello"}

        stored = read_json(tmp_path / f"{cache.key_for('https://example.com/a')}.json")
        assert stored is not None
        assert stored["url"] == "https://example.com/a"

    @pytest.mark.asyncio
    async def test_expired_file_is_removed(self, tmp_path):
        clock = Clock()
        cache = AcquisitionCache(ttl=1, directory=tmp_path, clock=clock)
        await cache.set("https://example.com/a", {"v": 1})
        clock.now += 5

        assert await cache.get("https://example.com/a") is None
        assert list(tmp_path.glob("*.json")) == []

    @pytest.mark.asyncio
    async def test_corrupt_file_is_a_miss(self, tmp_path):
        cache = AcquisitionCache(ttl=60, directory=tmp_path)
        path = tmp_path / f"{cache.key_for('https://example.com/a')}.json"
        atomic_write_json(path, {"unexpected": True})

        assert await cache.get("https://example.com/a") is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_write_failure_does_not_raise(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        cache = AcquisitionCache(ttl=60, directory=blocker / "cache")

        await cache.set("https://example.com/a", {"v": 1})

        assert cache.write_failures == 1
        assert await cache.get("https://example.com/a") is None

    @pytest.mark.asyncio
    async def test_unserialisable_payload_is_a_write_failure(self, tmp_path):
        cache = AcquisitionCache(ttl=60, directory=tmp_path)
        await cache.set("https://example.com/a", {"v": object()})
        assert cache.write_failures == 1
        assert not [p for p in os.listdir(tmp_path) if p.endswith(".tmp")]


@pytest.mark.unit
def test_cache_entry_round_trip():
    entry = CacheEntry(key="k", payload={"a": 1}, stored_at=5.0, ttl=10.0)
    assert CacheEntry.from_dict(entry.to_dict()) == entry
    assert not entry.is_expired(15.0)
    assert entry.is_expired(15.5)
