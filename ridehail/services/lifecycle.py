"""
Trip lifecycle
==============

The only component allowed to change a trip's status.  Every transition is
validated against ``TRIP_TRANSITIONS`` and its side effects on the driver
are applied together with the status change:

* -> ``assigned``:  driver reference + ETA set, driver becomes ``busy``.
* -> ``completed``: arrival time and duration recorded, driver's trip count
  incremented, driver becomes ``available``.
* -> ``cancelled``: an assigned driver is released (no trip count).

Each successful transition publishes a ``trip_status`` event, plus a
``driver_status`` event whenever the driver's availability changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ridehail.domain.entities import Driver, InvalidTransition, Trip, utcnow
from ridehail.domain.enums import CancellationReason, DriverStatus, TripStatus
from ridehail.domain.events import (
    DRIVER_STATUS,
    TRIP_STATUS,
    DriverStatusEvent,
    TripStatusEvent,
)
from ridehail.infrastructure.bus import RealtimeBus
from ridehail.infrastructure.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionContext:
    driver_id: Optional[str] = None
    estimated_arrival: Optional[datetime] = None
    reason: Optional[CancellationReason] = None


class TripLifecycle:
    def __init__(
        self,
        store: EntityStore,
        bus: RealtimeBus,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.bus = bus
        self.clock = clock

    async def transition(
        self,
        trip_id: str,
        target: TripStatus,
        context: TransitionContext | None = None,
    ) -> Trip:
        """Validate and apply a transition atomically."""
        async with self.store.atomic():
            return await self.apply(trip_id, target, context)

    async def apply(
        self,
        trip_id: str,
        target: TripStatus,
        context: TransitionContext | None = None,
    ) -> Trip:
        """Same as :meth:`transition`; the caller must hold ``store.atomic()``."""
        context = context or TransitionContext()
        trip = await self.store.get_trip(trip_id)
        previous = trip.status
        trip.transition_to(target)

        driver: Optional[Driver] = None
        if target is TripStatus.ASSIGNED:
            driver = await self._claim_driver(trip, context)
        elif target is TripStatus.COMPLETED:
            driver = await self.store.get_driver(trip.driver_id)
            now = self.clock()
            trip.actual_arrival = now
            trip.duration_minutes = round((now - trip.created_at).total_seconds() / 60)
            driver.total_trips += 1
        elif target is TripStatus.CANCELLED:
            trip.cancellation_reason = context.reason or CancellationReason.RIDER
            if trip.driver_id is not None:
                driver = await self.store.get_driver(trip.driver_id)

        driver_before = driver.status if driver else None
        if driver is not None:
            # Only assignment, completion and cancellation touch the driver
            driver.status = (
                DriverStatus.BUSY if target is TripStatus.ASSIGNED else DriverStatus.AVAILABLE
            )

        # All checks passed; write both records before anyone can observe them
        trip = await self.store.upsert_trip(trip)
        if driver is not None:
            await self.store.upsert_driver(driver)

        logger.info(
            "Trip %s: %s -> %s%s",
            trip.id,
            previous.value,
            target.value,
            f" (driver {trip.driver_id})" if trip.driver_id else "",
        )
        self.bus.publish(TRIP_STATUS, TripStatusEvent.for_trip(trip))
        if driver is not None and driver.status is not driver_before:
            self.bus.publish(
                DRIVER_STATUS,
                DriverStatusEvent(
                    driver_id=driver.id,
                    previous_status=driver_before,
                    status=driver.status,
                ),
            )
        return trip

    async def _claim_driver(self, trip: Trip, context: TransitionContext) -> Driver:
        if context.driver_id is None:
            raise InvalidTransition(f"Assigning trip {trip.id} requires a driver")
        driver = await self.store.get_driver(context.driver_id)
        if driver.status is not DriverStatus.AVAILABLE:
            raise InvalidTransition(
                f"Driver {driver.id} is {driver.status.value}, cannot take trip {trip.id}"
            )
        trip.driver_id = driver.id
        trip.estimated_arrival = context.estimated_arrival
        return driver
