# app/services/cache.py
"""
Read-model cache for dashboard aggregates.

Keys embed the current hour (YYYYMMDDHH), so every entry also expires at the
top of the hour regardless of its TTL. The cache is an accelerator only: a
miss (or an unreachable Redis) recomputes from the database.

Backends:
  - MemoryBackend: per-process dict, default, clock-driven expiry.
  - RedisBackend: shared across workers, enabled with ENABLE_REDIS=true.
"""

import json
from datetime import datetime
from typing import Any, Callable, Optional

import redis

from app.config import settings
from app.utils.logger import get_logger
from app.utils import timeutils

logger = get_logger(__name__)

STATS_CACHE_KEY = "dashboard_stats_"
CATEGORIES = (
    "main",
    "additional",
    "alerts",
    "quick_stats",
    "monthly_trends",
    "recent_activity",
    "summary",
)

_MISSING = object()


class MemoryBackend:
    def __init__(self, clock: Callable[[], datetime] = timeutils.now):
        self._clock = clock
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str):
        entry = self._store.get(key)
        if entry is None:
            return _MISSING
        expires_at, value = entry
        if self._clock().timestamp() >= expires_at:
            self._store.pop(key, None)
            return _MISSING
        return value

    def set(self, key: str, value: Any, ttl: int):
        now = self._clock().timestamp()
        # Past hour buckets and one-off range keys are never read again
        for stale in [k for k, (expires_at, _) in self._store.items() if expires_at <= now]:
            del self._store[stale]
        self._store[key] = (now + ttl, value)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def ping(self) -> bool:
        return True


class RedisBackend:
    """JSON-serialised values in Redis; Redis owns TTL expiry."""

    def __init__(self, url: str = None, client: Optional[redis.Redis] = None):
        self._redis = client or redis.Redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )

    def get(self, key: str):
        try:
            raw = self._redis.get(key)
        except redis.RedisError as e:
            logger.warning(f"[cache] Redis get failed for {key}: {e}")
            return _MISSING
        return _MISSING if raw is None else json.loads(raw)

    def set(self, key: str, value: Any, ttl: int):
        try:
            self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except redis.RedisError as e:
            logger.warning(f"[cache] Redis set failed for {key}: {e}")

    def delete(self, key: str) -> bool:
        try:
            return self._redis.delete(key) > 0
        except redis.RedisError as e:
            logger.warning(f"[cache] Redis delete failed for {key}: {e}")
            return False

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError:
            return False


class ReadModelCache:
    def __init__(self, backend=None, clock: Callable[[], datetime] = timeutils.now):
        self.clock = clock
        self.backend = backend or MemoryBackend(clock)

    def key_for(self, category: str) -> str:
        return f"{STATS_CACHE_KEY}{category}_{self.clock():%Y%m%d%H}"

    def get_or_compute(self, key: str, ttl: int, compute: Callable[[], Any]) -> Any:
        value = self.backend.get(key)
        if value is not _MISSING:
            return value
        value = compute()
        self.backend.set(key, value, ttl)
        logger.debug(f"[cache] miss {key}, recomputed, ttl={ttl}s")
        return value

    def remember(self, category: str, compute: Callable[[], Any], ttl: int = None) -> Any:
        """get_or_compute under the hour-bucketed key of a dashboard category."""
        if ttl is None:
            ttl = settings.CACHE_TTLS[category]
        return self.get_or_compute(self.key_for(category), ttl, compute)

    def invalidate(self, key: str) -> bool:
        return self.backend.delete(key)

    def clear(self) -> list[str]:
        """Drop every dashboard category key of the current hour."""
        keys = [self.key_for(category) for category in CATEGORIES]
        for key in keys:
            self.invalidate(key)
        logger.info("[cache] dashboard cache cleared")
        return keys


# Global cache instance
_cache: Optional[ReadModelCache] = None


def get_cache() -> ReadModelCache:
    """FastAPI dependency: process-wide cache, Redis-backed when enabled."""
    global _cache
    if _cache is None:
        backend = RedisBackend(settings.REDIS_URL) if settings.ENABLE_REDIS else None
        _cache = ReadModelCache(backend)
    return _cache


def reset_cache():
    global _cache
    _cache = None
