from __future__ import annotations

import pytest

from alpha_screener.services import cache as cache_module
from alpha_screener.services.cache import InMemoryCache, RedisCache, build_cache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    """Records calls made through ``redis.asyncio.Redis``'s string API."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiries: dict[str, int] = {}
        self.closed = False

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiries[key] = ex

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store.clear()

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_in_memory_cache_round_trips_json_values():
    cache = InMemoryCache()
    await cache.set("k", {"a": [1, 2], "b": None})

    assert await cache.get("k") == {"a": [1, 2], "b": None}
    assert await cache.exists("k")
    assert await cache.get("missing") is None


@pytest.mark.asyncio
async def test_in_memory_cache_expires_entries():
    clock = FakeClock()
    cache = InMemoryCache(clock=clock)
    await cache.set("k", "v", ttl_seconds=10)

    clock.now += 10
    assert await cache.get("k") == "v"
    clock.now += 1
    assert await cache.get("k") is None
    assert not await cache.exists("k")


@pytest.mark.asyncio
async def test_in_memory_cache_returns_copies():
    cache = InMemoryCache()
    value = {"items": [1]}
    await cache.set("k", value)
    value["items"].append(2)

    fetched = await cache.get("k")
    fetched["items"].append(3)

    assert await cache.get("k") == {"items": [1]}


@pytest.mark.asyncio
async def test_in_memory_cache_delete_and_clear():
    cache = InMemoryCache()
    await cache.set("a", 1)
    await cache.set("b", 2)

    await cache.delete("a")
    await cache.delete("never-set")
    assert await cache.get("a") is None

    await cache.clear()
    assert await cache.get("b") is None


@pytest.mark.asyncio
async def test_redis_cache_stores_json_with_expiry():
    redis = FakeRedis()
    cache = RedisCache("redis://unused", client=redis)

    await cache.set("analysis:Lendr", {"score": 70}, ttl_seconds=120)

    assert redis.store["analysis:Lendr"] == '{"score": 70}'
    assert redis.expiries["analysis:Lendr"] == 120
    assert await cache.get("analysis:Lendr") == {"score": 70}
    assert await cache.exists("analysis:Lendr") is True

    await cache.delete("analysis:Lendr")
    assert await cache.exists("analysis:Lendr") is False
    assert await cache.get("analysis:Lendr") is None

    await cache.close()
    assert redis.closed


def test_build_cache_follows_settings(monkeypatch):
    monkeypatch.setattr(cache_module.settings, "redis_enabled", False)
    assert isinstance(build_cache(), InMemoryCache)

    monkeypatch.setattr(cache_module.settings, "redis_enabled", True)
    monkeypatch.setattr(cache_module.settings, "redis_url", "redis://localhost:6399/0")
    assert isinstance(build_cache(), RedisCache)
