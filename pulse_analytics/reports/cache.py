# pulse_analytics/reports/cache.py
"""
TTL cache in front of the report builders.

Values are stored as JSON so the in-process backend and Redis behave the
same: whatever a producer returns is what a later hit returns. Concurrent
writers of the same key are not serialized; the last write wins.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import redis

from pulse_analytics.core.errors import CacheUnavailable
from pulse_analytics.reports.cache_keys import user_cache_key

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    payload: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryCacheBackend:
    """Per-process backend; used for single worker deployments and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._next_expiry = float("inf")

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.payload

    def set(self, key: str, payload: str, ttl: int) -> None:
        with self._lock:
            now = self._clock()
            if now >= self._next_expiry:
                self._sweep(now)
            expires_at = now + ttl
            self._entries[key] = CacheEntry(payload, expires_at)
            self._next_expiry = min(self._next_expiry, expires_at)

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        self._next_expiry = min((e.expires_at for e in self._entries.values()), default=float("inf"))
        if expired:
            logger.debug("[cache] swept %s expired entries", len(expired))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._next_expiry = float("inf")
        logger.info("[cache] cleared %s entries", count)


class RedisCacheBackend:
    """Shared backend, one Redis key per cache key (`SETEX`)."""

    def __init__(self, client: redis.Redis, prefix: str = "pulse:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "pulse:") -> "RedisCacheBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True, socket_timeout=2), prefix)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(self.prefix + key)
        except redis.RedisError as e:
            raise CacheUnavailable(f"redis get failed: {e}") from e

    def set(self, key: str, payload: str, ttl: int) -> None:
        try:
            self.client.setex(self.prefix + key, ttl, payload)
        except redis.RedisError as e:
            raise CacheUnavailable(f"redis set failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self.prefix + key)
        except redis.RedisError as e:
            raise CacheUnavailable(f"redis delete failed: {e}") from e

    def clear(self) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            raise CacheUnavailable(f"redis clear failed: {e}") from e
        logger.info("[cache] cleared %s redis keys", len(keys))


class ResultCache:
    def __init__(self, backend) -> None:
        self.backend = backend

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.backend.get(key)
        except CacheUnavailable as e:
            logger.warning("[cache] get %s skipped: %s", key, e)
            return default
        return default if raw is None else json.loads(raw)

    def put(self, key: str, value: Any, ttl: int) -> None:
        if ttl <= 0:
            return
        try:
            self.backend.set(key, json.dumps(value, default=str), ttl)
        except CacheUnavailable as e:
            logger.warning("[cache] put %s skipped: %s", key, e)

    def invalidate(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except CacheUnavailable as e:
            logger.warning("[cache] invalidate %s skipped: %s", key, e)

    def clear(self) -> None:
        try:
            self.backend.clear()
        except CacheUnavailable as e:
            logger.warning("[cache] clear skipped: %s", e)

    def get_or_compute(
        self,
        key: str,
        ttl: int,
        producer: Callable[[], Any],
        bypass_cache: bool = False,
    ) -> Any:
        """
        Return the cached value for `key`, running `producer` only on a miss.
        `ttl <= 0` or `bypass_cache` computes without touching the store.
        Producer errors propagate; store errors fall back to computing.
        """
        if bypass_cache or ttl <= 0:
            return _as_stored(producer())

        try:
            raw = self.backend.get(key)
        except CacheUnavailable as e:
            logger.warning("[cache] %s unavailable, computing directly: %s", key, e)
            return _as_stored(producer())

        if raw is not None:
            logger.debug("[cache] hit %s", key)
            return json.loads(raw)

        logger.debug("[cache] miss %s", key)
        payload = json.dumps(producer(), default=str)
        try:
            self.backend.set(key, payload, ttl)
        except CacheUnavailable as e:
            logger.warning("[cache] could not store %s: %s", key, e)
        return json.loads(payload)


def _as_stored(value: Any) -> Any:
    # same shape a cache hit would give
    return json.loads(json.dumps(value, default=str))


class LastGoodMirror:
    """
    Last value each user's dashboard computed for a report family, so other
    widgets can read it without recomputing. Scoped by tenant and user.
    """

    def __init__(self, cache: ResultCache, ttl: int) -> None:
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def key(family: str, tenant_id: int, user_id: int) -> str:
        return user_cache_key(family, tenant_id, user_id)

    def remember(self, family: str, tenant_id: int, user_id: int, value: Any) -> None:
        self.cache.put(self.key(family, tenant_id, user_id), value, self.ttl)

    def read(self, family: str, tenant_id: int, user_id: int, default: Any = None) -> Any:
        return self.cache.get(self.key(family, tenant_id, user_id), default)

    def clear(self, family: str, tenant_id: int, user_id: int, neutral: Any) -> None:
        self.cache.put(self.key(family, tenant_id, user_id), neutral, self.ttl)


def build_result_cache(settings) -> ResultCache:
    if settings.CACHE_BACKEND == "redis":
        logger.info("[cache] using redis backend")
        return ResultCache(RedisCacheBackend.from_url(settings.REDIS_URL))
    logger.info("[cache] using in-memory backend")
    return ResultCache(MemoryCacheBackend())
