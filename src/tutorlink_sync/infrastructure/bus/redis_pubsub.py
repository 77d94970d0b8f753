"""Redis Pub/Sub relay so a push reaches sessions held by any server process."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as aioredis

from tutorlink_sync.application.ports.realtime import UserPusher
from tutorlink_sync.infrastructure.bus.serializer import deserialize_push, serialize_push

logger = logging.getLogger(__name__)


class RedisPubSubPusher:
    """Implements application.ports.realtime.UserPusher across processes."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def push(self, user_id: str, event: str, data: dict[str, Any]) -> int:
        raw = serialize_push(user_id, event, data)
        # number of subscribed processes, not sessions
        return await self._redis.publish(self._channel, raw)


class RedisPubSubSubscriber:
    """Background task that relays published pushes to local sessions."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        local: UserPusher,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._local = local
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def handle(self, raw: str | bytes) -> int:
        user_id, event, data = deserialize_push(raw)
        return await self._local.push(user_id, event, data)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self.handle(message["data"])
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
