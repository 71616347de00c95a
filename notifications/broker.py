"""
Notification broker — topic-based publish/subscribe over Redis.

Topics map to Redis channels:

    "jobs"          → reports:jobs          every lifecycle event
    "user:<id>"     → reports:user:<id>     targeted delivery to one session identity

Publishing is fire-and-forget (Redis PUBLISH). Each WebSocket connection owns
one Subscription, which wraps a Redis PubSub connection and yields decoded
NotificationEvents.

The broker is created once in the API lifespan and handed to whoever needs
it. `close()` tears down every subscription still open at shutdown.
"""

import logging
from typing import AsyncIterator

from redis.asyncio import Redis

from notifications.events import NotificationEvent

logger = logging.getLogger(__name__)

JOBS_TOPIC = "jobs"
CHANNEL_PREFIX = "reports:"


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


class Subscription:

    def __init__(self, broker: "NotificationBroker", redis: Redis):
        self._broker = broker
        self._pubsub = redis.pubsub()
        self._topics: set[str] = set()

    @property
    def topics(self) -> frozenset[str]:
        return frozenset(self._topics)

    async def add(self, topic: str) -> None:
        if topic not in self._topics:
            await self._pubsub.subscribe(self._broker.channel(topic))
            self._topics.add(topic)

    async def remove(self, topic: str) -> None:
        if topic in self._topics:
            await self._pubsub.unsubscribe(self._broker.channel(topic))
            self._topics.discard(topic)

    async def events(self, poll_timeout: float = 1.0) -> AsyncIterator[NotificationEvent]:
        """Yield events until the subscription is closed. Malformed payloads are skipped."""
        while self._topics:
            message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=poll_timeout)
            if message is None or message.get("type") != "message":
                continue
            try:
                yield NotificationEvent.model_validate_json(message["data"])
            except ValueError as e:
                logger.warning(f"Dropping malformed notification on {message.get('channel')}: {e}")

    async def close(self) -> None:
        self._topics.clear()
        self._broker._forget(self)
        await self._pubsub.aclose()


class NotificationBroker:

    def __init__(self, redis: Redis, prefix: str = CHANNEL_PREFIX):
        self._redis = redis
        self._prefix = prefix
        self._subscriptions: set[Subscription] = set()

    def channel(self, topic: str) -> str:
        return f"{self._prefix}{topic}"

    async def publish(self, event: NotificationEvent, topic: str = JOBS_TOPIC) -> int:
        """Publish to one topic. Returns the number of Redis subscribers that received it."""
        return await self._redis.publish(self.channel(topic), event.model_dump_json())

    async def publish_to_user(self, user_id: str, event: NotificationEvent) -> int:
        return await self.publish(event, topic=user_topic(user_id))

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._redis)
        self._subscriptions.add(subscription)
        return subscription

    def _forget(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            try:
                await subscription.close()
            except Exception as e:
                logger.error(f"Failed to close notification subscription: {e}")
        logger.info("Notification broker closed")
