"""
Factory for creating change feed instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum
from .strategies import ChangeFeedStrategy, RedisChangeFeed, InMemoryChangeFeed
from linksnap_app.config import settings

logger = logging.getLogger(__name__)


class FeedBackend(Enum):
    """Available change feed backends"""
    REDIS = "redis"
    MEMORY = "memory"


class ChangeFeedFactory:
    """
    Simple factory for creating change feed instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: ChangeFeedStrategy = None

    @classmethod
    def create(cls, backend: FeedBackend) -> ChangeFeedStrategy:
        """
        Create or return cached change feed instance.

        Args:
            backend: Type of feed backend (from enum)

        Returns:
            Singleton change feed instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == FeedBackend.REDIS:
            import redis
            import redis.asyncio

            try:
                # Probe with a blocking client; the feed itself runs on the event loop
                probe = redis.from_url(
                    settings.redis_url,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                probe.ping()
                probe.close()

                cls._instance = RedisChangeFeed(redis.asyncio.from_url(settings.redis_url))
                logger.info("Redis change feed initialized")

            except Exception as e:
                logger.warning("Redis connection failed: %s; falling back to in-memory change feed", e)
                cls._instance = InMemoryChangeFeed()

        elif backend == FeedBackend.MEMORY:
            cls._instance = InMemoryChangeFeed()
            logger.info("In-memory change feed initialized")

        else:
            raise ValueError(f"Unknown feed backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
