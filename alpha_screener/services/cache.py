"""Key-value cache with per-key TTL, backed by Redis or process memory."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Protocol

from redis import asyncio as redis_async

from alpha_screener.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


class CachePort(Protocol):
    """Eventually-consistent JSON cache; no cross-key transactions."""

    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def clear(self) -> None:
        ...


@dataclass(frozen=True)
class _CacheEntry:
    expires_at: float
    payload: str


class InMemoryCache:
    """Process-local cache storing JSON-encoded values; expired keys are evicted lazily."""

    def __init__(self, *, clock=time.monotonic) -> None:
        self._entries: dict[str, _CacheEntry] = {}
        self._clock = clock
        self._lock = Lock()

    async def get(self, key: str) -> Any | None:
        entry = self._live_entry(key)
        if entry is None:
            return None
        return json.loads(entry.payload)

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        entry = _CacheEntry(expires_at=self._clock() + ttl_seconds, payload=json.dumps(value))
        with self._lock:
            self._entries[key] = entry

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        return self._live_entry(key) is not None

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _live_entry(self, key: str) -> _CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry


class RedisCache:
    """Thin async wrapper around Redis storing JSON values with an expiry."""

    def __init__(self, url: str, *, client: redis_async.Redis | None = None) -> None:
        self._redis = client or redis_async.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def get(self, key: str) -> Any | None:
        payload = await self._redis.get(key)
        if not payload:
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        await self._redis.set(key, json.dumps(value), ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def exists(self, key: str) -> bool:
        return await self._redis.exists(key) == 1

    async def clear(self) -> None:
        await self._redis.flushdb()

    async def close(self) -> None:
        await self._redis.aclose()


def build_cache() -> CachePort:
    if settings.redis_enabled:
        logger.info("cache.backend", extra={"backend": "redis"})
        return RedisCache(settings.redis_url)
    logger.info("cache.backend", extra={"backend": "memory"})
    return InMemoryCache()
