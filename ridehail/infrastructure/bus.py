"""
Realtime event bus
==================

Topic-based publish / subscribe that decouples producers (lifecycle
transitions, location updates) from consumers (rider, driver and admin
views, the dispatcher, the Redis relay).

Delivery model
--------------
* ``publish`` never blocks the producer: each current subscriber gets its
  own delivery task which sleeps for a delay drawn from the configured
  ``LatencyModel`` and then calls the handler.
* Handlers run independently; an exception in one is logged and does not
  affect delivery to the others.
* No ordering guarantee across publishes on the same topic.  Every
  ``BusMessage`` carries ``published_at`` so consumers can discard
  out-of-order snapshots.

The bus also hosts the periodic location generator (a stand-in for a real
GPS ingestion pipeline), so ``shutdown`` stops everything in one call.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections import defaultdict
from typing import Awaitable, Callable, Iterable, Optional, Protocol, Union

from ridehail.domain.entities import utcnow
from ridehail.domain.events import (
    DRIVER_STATUS,
    LOCATION_UPDATE,
    TRIP_STATUS,
    BusMessage,
    DriverStatusEvent,
    Event,
    LocationUpdateEvent,
    TripStatusEvent,
)

logger = logging.getLogger(__name__)

Handler = Callable[[BusMessage], Union[None, Awaitable[None]]]
Tick = Callable[[], Awaitable[Iterable[LocationUpdateEvent]]]

TOPIC_EVENTS: dict[str, type] = {
    LOCATION_UPDATE: LocationUpdateEvent,
    TRIP_STATUS: TripStatusEvent,
    DRIVER_STATUS: DriverStatusEvent,
}


# ── Latency models ────────────────────────────────────────────────────


class LatencyModel(Protocol):
    def sample(self) -> float: ...


class ZeroLatency:
    """Deliver on the next loop iteration; used by tests."""

    def sample(self) -> float:
        return 0.0


class JitterLatency:
    """Uniform delay in ``[min_seconds, max_seconds]``."""

    def __init__(
        self,
        min_seconds: float = 0.010,
        max_seconds: float = 0.030,
        rng: Optional[random.Random] = None,
    ):
        if min_seconds < 0 or max_seconds < min_seconds:
            raise ValueError("jitter window must satisfy 0 <= min <= max")
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self.rng = rng or random.Random()

    def sample(self) -> float:
        return self.rng.uniform(self.min_seconds, self.max_seconds)


# ── Bus ───────────────────────────────────────────────────────────────


class _Subscription:
    __slots__ = ("topic", "handler", "active")

    def __init__(self, topic: str, handler: Handler):
        self.topic = topic
        self.handler = handler
        self.active = True


class RealtimeBus:
    def __init__(
        self,
        latency: Optional[LatencyModel] = None,
        clock: Callable = utcnow,
    ):
        self.latency = latency or ZeroLatency()
        self.clock = clock
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)
        self._deliveries: set[asyncio.Task] = set()
        self._generator: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, ()))

    @property
    def in_flight(self) -> int:
        return len(self._deliveries)

    # -- subscribe / publish -------------------------------------------

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* on *topic*; the returned callable deregisters it."""
        if topic not in TOPIC_EVENTS:
            raise ValueError(f"Unknown topic {topic!r}. Valid topics: {list(TOPIC_EVENTS)}")
        if self._closed:
            raise RuntimeError("Cannot subscribe to a bus that has been shut down")

        subscription = _Subscription(topic, handler)
        self._subscriptions[topic].append(subscription)

        def unsubscribe() -> None:
            subscription.active = False
            subs = self._subscriptions.get(topic)
            if subs and subscription in subs:
                subs.remove(subscription)
                if not subs:
                    del self._subscriptions[topic]

        return unsubscribe

    def publish(self, topic: str, event: Event) -> None:
        """Schedule delivery of *event* to every current subscriber of *topic*."""
        if self._closed:
            logger.debug("Bus is shut down; dropping %s event", topic)
            return

        expected = TOPIC_EVENTS.get(topic)
        if expected is None:
            raise ValueError(f"Unknown topic {topic!r}. Valid topics: {list(TOPIC_EVENTS)}")
        if not isinstance(event, expected):
            raise ValueError(
                f"Topic {topic!r} carries {expected.__name__}, got {type(event).__name__}"
            )

        message = BusMessage(topic=topic, event=event, published_at=self.clock())
        for subscription in list(self._subscriptions.get(topic, ())):
            task = asyncio.create_task(
                self._deliver(subscription, message, self.latency.sample())
            )
            self._deliveries.add(task)
            task.add_done_callback(self._deliveries.discard)

    async def _deliver(
        self, subscription: _Subscription, message: BusMessage, delay: float
    ) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        # Unsubscribed (or shut down) while the message was in flight
        if not subscription.active or self._closed:
            return
        try:
            result = subscription.handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Subscriber %r failed on topic %s", subscription.handler, message.topic
            )

    async def drain(self) -> None:
        """Wait until every in-flight delivery has finished."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    # -- location generator --------------------------------------------

    def start_generator(self, tick: Tick, interval_seconds: float) -> None:
        """Publish the events returned by *tick* every *interval_seconds*."""
        if self._closed:
            raise RuntimeError("Cannot start the generator on a shut-down bus")
        if self._generator is not None:
            raise RuntimeError("Location generator already running")
        self._stop_event = asyncio.Event()
        self._generator = asyncio.create_task(self._generate(tick, interval_seconds))
        logger.info("Location generator started (interval=%.1fs)", interval_seconds)

    async def stop_generator(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._generator:
            self._generator.cancel()
            try:
                await self._generator
            except asyncio.CancelledError:
                pass
            self._generator = None
            logger.info("Location generator stopped")

    async def _generate(self, tick: Tick, interval_seconds: float) -> None:
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                for event in await tick():
                    self.publish(LOCATION_UPDATE, event)
            except Exception:
                logger.exception("Unhandled error in location generator")
            # Wait for the interval or until stop is signalled
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval_seconds)
                break
            except asyncio.TimeoutError:
                pass  # next tick

    # -- shutdown ------------------------------------------------------

    async def shutdown(self) -> None:
        """Stop the generator, drop all subscriptions and pending deliveries."""
        if self._closed:
            return
        self._closed = True
        await self.stop_generator()

        for subs in self._subscriptions.values():
            for subscription in subs:
                subscription.active = False
        self._subscriptions.clear()

        pending = list(self._deliveries)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Realtime bus shut down")
