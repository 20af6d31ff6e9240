"""
Change notifications for the urls table.
Implements Strategy Pattern for flexible pub/sub backends.
"""

from .models import ChangeEvent, ChangeType
from .strategies import ChangeFeedStrategy, RedisChangeFeed, InMemoryChangeFeed, Subscription
from .factory import ChangeFeedFactory, FeedBackend

__all__ = [
    "ChangeEvent",
    "ChangeType",
    "ChangeFeedStrategy",
    "RedisChangeFeed",
    "InMemoryChangeFeed",
    "Subscription",
    "ChangeFeedFactory",
    "FeedBackend",
]
