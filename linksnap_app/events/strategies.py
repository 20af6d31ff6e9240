"""
Change feed strategies using Strategy Pattern.
Allows switching between pub/sub backends (Redis, In-Memory).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Awaitable, Callable, Dict, Set

from .models import ChangeEvent

logger = logging.getLogger(__name__)


class Subscription:
    """
    A registered subscription to one channel.

    Events published after ``subscribe()`` returned are delivered, even
    those published before iteration starts. ``aclose()`` releases it.
    """

    def __init__(self, events: AsyncIterator[ChangeEvent], on_close: Callable[[], Awaitable[None]]):
        self._events = events
        self._on_close = on_close
        self._closed = False

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._events.aclose()
        await self._on_close()


class ChangeFeedStrategy(ABC):
    """
    Abstract base class for change feeds.

    Unlike a work queue every subscriber sees every event published after it
    subscribed; nothing is stored for late subscribers.
    """

    @abstractmethod
    async def publish(self, channel: str, event: ChangeEvent) -> bool:
        """
        Publish an event to all current subscribers of a channel.

        Args:
            channel: Channel name
            event: Event to deliver

        Returns:
            True if the event was handed to the backend, False otherwise
        """
        pass

    @abstractmethod
    async def subscribe(self, channel: str) -> Subscription:
        """
        Register a subscription to a channel.

        The subscription is active once this returns; close it with
        ``aclose()``.
        """
        pass


class RedisChangeFeed(ChangeFeedStrategy):
    """
    Redis pub/sub implementation.

    Every app instance connected to the same Redis sees the same events,
    so a list open on one instance refreshes after a delete on another.
    """

    def __init__(self, redis_client):
        """
        Args:
            redis_client: redis.asyncio.Redis instance
        """
        self.redis = redis_client

    async def publish(self, channel: str, event: ChangeEvent) -> bool:
        try:
            await self.redis.publish(channel, event.model_dump_json())
            return True
        except Exception as e:
            logger.error("Redis publish error on %s: %s", channel, e)
            return False

    async def subscribe(self, channel: str) -> Subscription:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)

        async def close():
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

        return Subscription(self._events(pubsub, channel), close)

    @staticmethod
    async def _events(pubsub, channel: str) -> AsyncIterator[ChangeEvent]:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                yield ChangeEvent.model_validate_json(message["data"])
            except ValueError as e:
                logger.warning("Dropping malformed change event on %s: %s", channel, e)


class InMemoryChangeFeed(ChangeFeedStrategy):
    """
    In-process implementation: one asyncio.Queue per subscriber.

    Good for development, tests and single-process deployments.
    """

    def __init__(self):
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    async def publish(self, channel: str, event: ChangeEvent) -> bool:
        for queue in list(self._subscribers.get(channel, ())):
            queue.put_nowait(event)
        return True

    async def subscribe(self, channel: str) -> Subscription:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(channel, set()).add(queue)

        async def close():
            self._subscribers[channel].discard(queue)

        return Subscription(self._drain(queue), close)

    @staticmethod
    async def _drain(queue: asyncio.Queue) -> AsyncIterator[ChangeEvent]:
        while True:
            yield await queue.get()
