"""
Redis relay -- forwards bus traffic to Redis pub/sub.

An external transport adapter: out-of-process consumers (map front-ends,
dashboards) subscribe to ``"{prefix}:{topic}"`` channels and receive each
``BusMessage`` serialised as JSON.  Redis failures are logged and never
propagate back into the bus.
"""

from __future__ import annotations

import logging
from typing import Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ridehail.domain.events import ALL_TOPICS, BusMessage
from ridehail.infrastructure.bus import RealtimeBus

logger = logging.getLogger(__name__)


class RedisRelay:
    def __init__(self, client: aioredis.Redis, prefix: str = "ridehail"):
        self.client = client
        self.prefix = prefix
        self._unsubscribers: list[Callable[[], None]] = []

    def channel_for(self, topic: str) -> str:
        return f"{self.prefix}:{topic}"

    def attach(self, bus: RealtimeBus, topics: list[str] | None = None) -> None:
        for topic in topics or ALL_TOPICS:
            self._unsubscribers.append(bus.subscribe(topic, self.forward))
        logger.info("Redis relay attached (prefix=%s)", self.prefix)

    async def forward(self, message: BusMessage) -> None:
        channel = self.channel_for(message.topic)
        try:
            await self.client.publish(channel, message.model_dump_json())
        except RedisError as e:
            logger.error("Failed to publish to channel %s: %s", channel, e)

    async def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        await self.client.aclose()
