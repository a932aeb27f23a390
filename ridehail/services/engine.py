"""
Fleet engine -- composition root of the dispatch core.

Builds one isolated set of collaborators (store, bus, lifecycle, matcher,
dispatcher, location feed) and exposes the inbound operations external
adapters call.  Nothing here is a module-level singleton: create as many
engines as you need, e.g. one per test.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ridehail.config import Settings, settings
from ridehail.domain.entities import (
    Driver,
    InvalidTransition,
    Location,
    Place,
    Rider,
    Trip,
    utcnow,
)
from ridehail.domain.enums import (
    ACTIVE_TRIP_STATUSES,
    CancellationReason,
    DriverStatus,
    TripStatus,
)
from ridehail.domain.events import (
    DRIVER_STATUS,
    LOCATION_UPDATE,
    TRIP_STATUS,
    DriverStatusEvent,
    LocationUpdateEvent,
    TripStatusEvent,
)
from ridehail.domain.matching import location_cell
from ridehail.domain.pricing import PricingEngine
from ridehail.infrastructure.bus import JitterLatency, RealtimeBus
from ridehail.infrastructure.store import (
    DriverFilter,
    EntityStore,
    InMemoryEntityStore,
    TripFilter,
)
from ridehail.services.analytics import FleetAnalytics, compute_analytics
from ridehail.services.lifecycle import TransitionContext, TripLifecycle
from ridehail.workers.location_feed import LocationFeed, RandomWalkFeed
from ridehail.workers.matcher import DispatchMatcher, Dispatcher

logger = logging.getLogger(__name__)


def new_trip_id() -> str:
    return f"trip_{uuid.uuid4().hex[:12]}"


class FleetEngine:
    def __init__(
        self,
        store: Optional[EntityStore] = None,
        bus: Optional[RealtimeBus] = None,
        config: Optional[Settings] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        feed: Optional[LocationFeed] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or settings
        self.clock = clock
        self.rng = rng or random.Random()
        self.store = store or InMemoryEntityStore()
        self.bus = bus or RealtimeBus(
            JitterLatency(
                self.config.bus_jitter_min_seconds,
                self.config.bus_jitter_max_seconds,
                self.rng,
            ),
            clock=clock,
        )
        self.pricing = PricingEngine(self.config.base_fare, self.config.rate_per_km)
        self.lifecycle = TripLifecycle(self.store, self.bus, clock)
        self.matcher = DispatchMatcher(
            self.store, self.lifecycle, self.config.average_speed_kmh, clock
        )
        self.dispatcher = Dispatcher(
            self.matcher,
            self.bus,
            delay_min_seconds=self.config.dispatch_delay_min_seconds,
            delay_max_seconds=self.config.dispatch_delay_max_seconds,
            max_wait_seconds=self.config.max_wait_seconds,
            sweep_interval_seconds=self.config.pending_sweep_interval_seconds,
            rng=self.rng,
            clock=clock,
        )
        self.feed = feed or RandomWalkFeed(
            self.config.city_center_lat,
            self.config.city_center_lng,
            rng=self.rng,
            clock=clock,
        )

    # ── Lifecycle of the engine itself ────────────────────────────────

    async def start(self, simulate_locations: Optional[bool] = None) -> None:
        await self.dispatcher.start()
        if simulate_locations is None:
            simulate_locations = self.config.simulate_locations
        if simulate_locations:
            self.bus.start_generator(
                self.simulate_locations, self.config.location_interval_seconds
            )

    async def drain(self) -> None:
        """Wait until no match attempt or bus delivery is in flight."""
        while self.dispatcher.in_flight or self.bus.in_flight:
            await self.dispatcher.drain()
            await self.bus.drain()

    async def shutdown(self) -> None:
        await self.dispatcher.stop()
        await self.bus.shutdown()

    async def __aenter__(self) -> FleetEngine:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.shutdown()

    # ── Registration ──────────────────────────────────────────────────

    async def register_driver(self, driver: Driver) -> Driver:
        if driver.status is DriverStatus.BUSY:
            raise ValueError("A driver can only be onboarded available or offline")
        if driver.location.timestamp is None:
            driver = replace(driver, location=replace(driver.location, timestamp=self.clock()))
        async with self.store.atomic():
            if await self.store.find_driver(driver.id) is not None:
                raise ValueError(f"Driver {driver.id} is already registered")
            driver = await self.store.upsert_driver(driver)

        logger.info("Driver %s onboarded (%s)", driver.id, driver.status.value)
        self.bus.publish(LOCATION_UPDATE, self._location_event(driver))
        # Wakes the dispatcher for trips already waiting
        self.bus.publish(
            DRIVER_STATUS,
            DriverStatusEvent(driver_id=driver.id, previous_status=None, status=driver.status),
        )
        return driver

    async def register_rider(self, rider: Rider) -> Rider:
        return await self.store.upsert_rider(rider)

    # ── Inbound operations ────────────────────────────────────────────

    async def request_trip(
        self, rider_id: str, pickup: Place, destination: Place
    ) -> Trip:
        """Create a ``requested`` trip and hand it to the dispatcher."""
        await self.store.get_rider(rider_id)
        distance, fare = self.pricing.quote(
            pickup.latitude,
            pickup.longitude,
            destination.latitude,
            destination.longitude,
        )
        trip = Trip(
            id=new_trip_id(),
            rider_id=rider_id,
            pickup=Place.at(pickup.latitude, pickup.longitude, pickup.address),
            destination=Place.at(
                destination.latitude, destination.longitude, destination.address
            ),
            fare=fare,
            distance_km=distance,
            created_at=self.clock(),
        )
        trip = await self.store.upsert_trip(trip)
        logger.info("Trip %s requested by %s (%.2f km, fare %d)", trip.id, rider_id, distance, fare)
        self.bus.publish(TRIP_STATUS, TripStatusEvent.for_trip(trip))
        self.dispatcher.submit(trip.id, trip.created_at)
        return trip

    async def update_trip_status(
        self,
        trip_id: str,
        status: TripStatus,
        reason: Optional[CancellationReason] = None,
    ) -> Trip:
        return await self.lifecycle.transition(
            trip_id, status, TransitionContext(reason=reason)
        )

    async def cancel_trip(
        self, trip_id: str, reason: CancellationReason = CancellationReason.RIDER
    ) -> Trip:
        return await self.update_trip_status(trip_id, TripStatus.CANCELLED, reason)

    async def update_driver_status(self, driver_id: str, status: DriverStatus) -> Driver:
        """Toggle a driver between ``available`` and ``offline``."""
        async with self.store.atomic():
            driver = await self.store.get_driver(driver_id)
            if status is driver.status:
                return driver
            if status is DriverStatus.BUSY:
                raise InvalidTransition(
                    f"Driver {driver_id} becomes busy only through trip assignment"
                )
            active = await self.store.list_trips(
                TripFilter(driver_id=driver_id, statuses=ACTIVE_TRIP_STATUSES)
            )
            if active:
                raise InvalidTransition(
                    f"Driver {driver_id} is on trip {active[0].id}"
                )
            previous = driver.status
            driver.status = status
            driver = await self.store.upsert_driver(driver)

        logger.info("Driver %s: %s -> %s", driver_id, previous.value, status.value)
        self.bus.publish(
            DRIVER_STATUS,
            DriverStatusEvent(driver_id=driver_id, previous_status=previous, status=status),
        )
        return driver

    async def update_driver_location(self, driver_id: str, location: Location) -> Driver:
        if location.timestamp is None:
            location = replace(location, timestamp=self.clock())
        async with self.store.atomic():
            driver = await self.store.get_driver(driver_id)
            driver.location = location
            driver = await self.store.upsert_driver(driver)
        self.bus.publish(LOCATION_UPDATE, self._location_event(driver))
        return driver

    async def update_rider_location(self, rider_id: str, location: Location) -> Rider:
        if location.timestamp is None:
            location = replace(location, timestamp=self.clock())
        async with self.store.atomic():
            rider = await self.store.get_rider(rider_id)
            rider.location = location
            return await self.store.upsert_rider(rider)

    # ── Queries ───────────────────────────────────────────────────────

    async def get_trip(self, trip_id: str) -> Trip:
        return await self.store.get_trip(trip_id)

    async def list_trips(self, where: TripFilter | None = None) -> list[Trip]:
        trips = await self.store.list_trips(where)
        return sorted(trips, key=lambda t: t.created_at, reverse=True)

    async def get_driver(self, driver_id: str) -> Driver:
        return await self.store.get_driver(driver_id)

    async def list_drivers(self, where: DriverFilter | None = None) -> list[Driver]:
        drivers = await self.store.list_drivers(where)
        return sorted(drivers, key=lambda d: d.id)

    async def get_rider(self, rider_id: str) -> Rider:
        return await self.store.get_rider(rider_id)

    async def get_analytics(self) -> FleetAnalytics:
        trips = await self.store.list_trips()
        drivers = await self.store.list_drivers()
        return compute_analytics(trips, drivers)

    # ── Simulation ────────────────────────────────────────────────────

    async def simulate_locations(self) -> list[LocationUpdateEvent]:
        """Advance every driver one step along the simulated GPS feed."""
        events: list[LocationUpdateEvent] = []
        async with self.store.atomic():
            for driver in await self.store.list_drivers():
                driver.location = self.feed.next_location(driver)
                driver = await self.store.upsert_driver(driver)
                events.append(self._location_event(driver))
        return events

    def _location_event(self, driver: Driver) -> LocationUpdateEvent:
        cell = location_cell(
            driver.location.latitude,
            driver.location.longitude,
            self.config.h3_resolution,
        )
        return LocationUpdateEvent.for_driver(driver, h3_cell=cell)
