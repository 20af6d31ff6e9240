"""
Cache strategies using Strategy Pattern.
Allows switching between cache backends (Redis, In-Memory, Null).

A cache failure must never fail a redirect: every strategy turns backend
errors into a miss (get) or False (set/delete) and logs them.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def redirect_key(short_code: str) -> str:
    """Cache key of a redirect lookup"""
    return f"url:{short_code}"


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations may involve network I/O.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on a miss"""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if stored
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Drop a key. Returns True if something was removed."""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache, shared by every app instance.

    TTLs are enforced by Redis itself (SETEX).
    """

    def __init__(self, redis_client):
        """
        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode('utf-8') if value else None
        except Exception as e:
            logger.error("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.error("Redis set error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.error("Redis delete error for %s: %s", key, e)
            return False


class InMemoryCache(CacheStrategy):
    """
    Per-process dict cache with lazy expiry.

    Entries are dropped when read after their deadline.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - every lookup misses.

    Used to disable caching, and as the cache of tests that count backend calls.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True
