"""
Dispatch Worker
===============

``DispatchMatcher.match`` assigns the nearest available driver to one
pending trip.  ``Dispatcher`` decides *when* to call it.

Concurrency safety
------------------
* The whole check-availability -> assign -> mark-busy sequence runs inside
  ``store.atomic()``, so two trips can never claim the same driver.
* The matcher never touches statuses itself; the assignment goes through
  ``TripLifecycle.apply`` so validation stays in one place.
* A trip that was cancelled or already matched by the time its attempt
  runs is skipped silently -- duplicate or stale attempts are harmless.

Scheduling
----------
1. ``submit`` queues the trip and schedules one attempt after a random
   delay (simulated dispatch latency).
2. Whenever a ``driver_status`` event reports a driver becoming
   ``available``, every queued trip is retried oldest-first.
3. A sweep loop retries the queue every ``sweep_interval`` seconds and
   cancels trips that waited longer than ``max_wait_seconds`` with reason
   ``no_driver``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from ridehail.domain.distance import eta_minutes
from ridehail.domain.entities import Trip, utcnow
from ridehail.domain.enums import CancellationReason, DriverStatus, TripStatus
from ridehail.domain.events import DRIVER_STATUS, BusMessage
from ridehail.domain.matching import select_nearest_driver
from ridehail.infrastructure.bus import RealtimeBus
from ridehail.infrastructure.store import DriverFilter, EntityStore
from ridehail.services.lifecycle import TransitionContext, TripLifecycle

logger = logging.getLogger(__name__)


class DispatchMatcher:
    def __init__(
        self,
        store: EntityStore,
        lifecycle: TripLifecycle,
        average_speed_kmh: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.lifecycle = lifecycle
        self.average_speed_kmh = average_speed_kmh
        self.clock = clock

    async def match(self, trip_id: str) -> Optional[Trip]:
        """Assign the nearest available driver.  Returns ``None`` on no-op."""
        async with self.store.atomic():
            trip = await self.store.find_trip(trip_id)
            if trip is None or trip.status is not TripStatus.REQUESTED:
                logger.debug("Trip %s no longer awaiting a driver -- skipping", trip_id)
                return None

            drivers = await self.store.list_drivers(
                DriverFilter(status=DriverStatus.AVAILABLE)
            )
            choice = select_nearest_driver(
                trip.pickup.latitude, trip.pickup.longitude, drivers
            )
            if choice is None:
                logger.info("No driver available for trip %s", trip_id)
                return None

            driver, distance = choice
            eta = eta_minutes(distance, self.average_speed_kmh)
            context = TransitionContext(
                driver_id=driver.id,
                estimated_arrival=self.clock() + timedelta(minutes=eta),
            )
            return await self.lifecycle.apply(trip_id, TripStatus.ASSIGNED, context)


class Dispatcher:
    def __init__(
        self,
        matcher: DispatchMatcher,
        bus: RealtimeBus,
        *,
        delay_min_seconds: float = 2.0,
        delay_max_seconds: float = 5.0,
        max_wait_seconds: float = 300.0,
        sweep_interval_seconds: float = 5.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.matcher = matcher
        self.bus = bus
        self.delay_min_seconds = delay_min_seconds
        self.delay_max_seconds = delay_max_seconds
        self.max_wait_seconds = max_wait_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.rng = rng or random.Random()
        self.clock = clock

        # trip id -> requested at; dicts keep insertion order, so this is FIFO
        self._pending: dict[str, datetime] = {}
        self._first_attempt_due: set[str] = set()
        self._attempts: set[asyncio.Task] = set()
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def in_flight(self) -> int:
        return len(self._attempts)

    # ── Public API ────────────────────────────────────────────────────

    async def start(self) -> None:
        self._unsubscribe = self.bus.subscribe(DRIVER_STATUS, self._on_driver_status)
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Dispatcher started (delay=%.1f-%.1fs, max_wait=%.0fs)",
            self.delay_min_seconds,
            self.delay_max_seconds,
            self.max_wait_seconds,
        )

    async def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        attempts = list(self._attempts)
        for task in attempts:
            task.cancel()
        await asyncio.gather(*attempts, return_exceptions=True)
        logger.info("Dispatcher stopped")

    def submit(self, trip_id: str, requested_at: datetime) -> None:
        """Queue a new trip and schedule its first match attempt."""
        self._pending[trip_id] = requested_at
        self._first_attempt_due.add(trip_id)
        delay = self.rng.uniform(self.delay_min_seconds, self.delay_max_seconds)
        task = asyncio.create_task(self._attempt_later(trip_id, delay))
        self._attempts.add(task)
        task.add_done_callback(self._attempts.discard)

    async def attempt(self, trip_id: str) -> Optional[Trip]:
        """Try to match one trip and keep the queue in step with the result."""
        trip = await self.matcher.match(trip_id)
        if trip is not None:
            self._forget(trip_id)
            return trip

        current = await self.matcher.store.find_trip(trip_id)
        if current is None or current.status is not TripStatus.REQUESTED:
            self._forget(trip_id)
        return None

    async def rematch_pending(self) -> int:
        """Retry queued trips oldest-first.  Returns the number matched."""
        matched = 0
        for trip_id in list(self._pending):
            if trip_id in self._first_attempt_due:
                continue
            if await self.attempt(trip_id) is not None:
                matched += 1
            elif trip_id in self._pending:
                # Still requested after a failed attempt: nobody is free
                break
        if matched:
            logger.info("Re-match: %d queued trips matched", matched)
        return matched

    async def expire_stale(self) -> list[str]:
        """Cancel queued trips that waited longer than ``max_wait_seconds``."""
        if self.max_wait_seconds <= 0:
            return []

        now = self.clock()
        expired: list[str] = []
        for trip_id, requested_at in list(self._pending.items()):
            if (now - requested_at).total_seconds() < self.max_wait_seconds:
                continue
            # Re-check under the lock: a match may have landed while we waited
            async with self.matcher.store.atomic():
                if trip_id not in self._pending:
                    continue
                self._forget(trip_id)
                trip = await self.matcher.store.find_trip(trip_id)
                if trip is None or trip.status is not TripStatus.REQUESTED:
                    logger.debug("Trip %s left the queue before expiring", trip_id)
                    continue
                await self.matcher.lifecycle.apply(
                    trip_id,
                    TripStatus.CANCELLED,
                    TransitionContext(reason=CancellationReason.NO_DRIVER),
                )
            logger.info(
                "Trip %s cancelled after waiting %.0fs without a driver",
                trip_id,
                self.max_wait_seconds,
            )
            expired.append(trip_id)
        return expired

    async def run_sweep(self) -> None:
        await self.expire_stale()
        await self.rematch_pending()

    async def drain(self) -> None:
        """Wait for every scheduled attempt to finish."""
        while self._attempts:
            await asyncio.gather(*list(self._attempts), return_exceptions=True)

    # ── Internals ─────────────────────────────────────────────────────

    def _forget(self, trip_id: str) -> None:
        self._pending.pop(trip_id, None)
        self._first_attempt_due.discard(trip_id)

    async def _attempt_later(self, trip_id: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        self._first_attempt_due.discard(trip_id)
        try:
            await self.attempt(trip_id)
        except Exception:
            logger.exception("Match attempt for trip %s failed", trip_id)

    async def _on_driver_status(self, message: BusMessage) -> None:
        if message.event.status is DriverStatus.AVAILABLE and self._pending:
            await self.rematch_pending()

    async def _loop(self) -> None:
        """Periodic loop: run a sweep then sleep."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.sweep_interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass
            try:
                await self.run_sweep()
            except Exception:
                logger.exception("Unhandled error in dispatch sweep")
