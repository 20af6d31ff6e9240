"""
Factory for the redirect lookup cache.
Builds the configured strategy once and degrades when Redis is down.
"""

import logging
from enum import Enum
from typing import Optional

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from linksnap_app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Builds the redirect lookup cache (singleton).

    - ``cache_ttl <= 0`` turns caching off whatever the backend.
    - An unreachable Redis degrades to ``settings.cache_fallback``. Use
      "null" when several workers serve redirects: a per-process entry keeps
      a deleted link redirecting on every worker but the one that deleted it.
    """

    _instance: Optional[CacheStrategy] = None

    @classmethod
    def create(cls, backend: Optional[CacheBackend] = None) -> CacheStrategy:
        """
        Create or return the cache instance.

        Args:
            backend: Cache backend, defaults to ``settings.cache_backend``

        Returns:
            Singleton cache instance
        """
        if cls._instance is None:
            cls._instance = cls._build(backend or CacheBackend(settings.cache_backend))
        return cls._instance

    @classmethod
    def _build(cls, backend: CacheBackend) -> CacheStrategy:
        if settings.cache_ttl <= 0:
            logger.info("Redirect cache disabled (cache_ttl=%s)", settings.cache_ttl)
            return NullCache()

        if backend == CacheBackend.REDIS:
            client = cls._connect_redis()
            if client is not None:
                logger.info("Redis redirect cache initialized")
                return RedisCache(client)
            backend = CacheBackend(settings.cache_fallback)
            logger.warning("Falling back to %s redirect cache", backend.value)

        if backend == CacheBackend.MEMORY:
            logger.info("In-memory redirect cache initialized")
            return InMemoryCache()
        if backend == CacheBackend.NULL:
            logger.info("Redirect cache disabled")
            return NullCache()
        raise ValueError(f"Unsupported cache backend: {backend}")

    @staticmethod
    def _connect_redis():
        """A pinged Redis client, or None when Redis cannot be reached"""
        import redis

        try:
            client = redis.from_url(
                settings.redis_url,
                decode_responses=False,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            client.ping()
            return client
        except redis.RedisError as e:
            logger.warning("Redis connection failed: %s", e)
            return None

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
