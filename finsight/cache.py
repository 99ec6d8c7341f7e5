"""Response caches shared by the failover runners (memória local ou Redis)."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def stable_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)


def cache_key(namespace: str, payload: Any) -> str:
    """Key ``namespace:sha256`` over a normalized JSON rendering of ``payload``."""

    digest = hashlib.sha256(stable_json(payload).encode("utf-8")).hexdigest()
    return f"{namespace}:{digest}"


class ChartCache(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl: int) -> None:
        ...


class InMemoryCache:
    """TTL dict; oldest entry evicted once ``max_entries`` is exceeded."""

    def __init__(self, max_entries: int = 500, clock=time.monotonic) -> None:
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float, float]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        now = self._clock()
        self._entries[key] = (value, now, now + ttl)
        if len(self._entries) > self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest]

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache:
    """JSON values stored with ``SETEX``."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Valor corrompido no cache para %s; ignorando.", key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self.client.setex(key, ttl, json.dumps(value, ensure_ascii=False, default=str))


def build_cache(redis_url: Optional[str]) -> ChartCache:
    if redis_url:
        logger.info("Usando cache Redis em %s", redis_url.split("@")[-1])
        return RedisCache.from_url(redis_url)
    return InMemoryCache()
