"""
Entity store -- the single owner of mutable driver / rider / trip state.

``EntityStore`` is the contract every other component talks to; it could
be backed by memory, a database or a distributed cache.  Records go in
and come out as copies, so no caller ever holds a reference into the
store's own state and a reader never sees a half-applied update.

Read-modify-write sequences (check driver availability -> assign -> mark
busy) must run inside ``async with store.atomic():``, which serialises
them against each other.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, replace
from typing import AsyncIterator, Optional

import h3

from ridehail.domain.entities import Driver, NotFound, Rider, Trip
from ridehail.domain.enums import DriverStatus, TripStatus
from ridehail.domain.matching import location_cell


# ── Filters ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DriverFilter:
    status: Optional[DriverStatus] = None
    h3_cell: Optional[str] = None

    def __post_init__(self) -> None:
        if self.h3_cell is not None and not h3.is_valid_cell(self.h3_cell):
            raise ValueError(f"Invalid H3 cell {self.h3_cell!r}")

    def matches(self, driver: Driver) -> bool:
        if self.status is not None and driver.status is not self.status:
            return False
        if self.h3_cell is not None:
            cell = location_cell(
                driver.location.latitude,
                driver.location.longitude,
                h3.get_resolution(self.h3_cell),
            )
            if cell != self.h3_cell:
                return False
        return True


@dataclass(frozen=True)
class TripFilter:
    rider_id: Optional[str] = None
    driver_id: Optional[str] = None
    statuses: Optional[frozenset[TripStatus]] = None

    def matches(self, trip: Trip) -> bool:
        if self.rider_id is not None and trip.rider_id != self.rider_id:
            return False
        if self.driver_id is not None and trip.driver_id != self.driver_id:
            return False
        if self.statuses is not None and trip.status not in self.statuses:
            return False
        return True


# ── Contract ──────────────────────────────────────────────────────────


class EntityStore(ABC):
    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """Async context manager serialising read-modify-write sequences."""

    @abstractmethod
    async def upsert_driver(self, driver: Driver) -> Driver: ...

    @abstractmethod
    async def upsert_rider(self, rider: Rider) -> Rider: ...

    @abstractmethod
    async def upsert_trip(self, trip: Trip) -> Trip: ...

    @abstractmethod
    async def find_driver(self, driver_id: str) -> Optional[Driver]: ...

    @abstractmethod
    async def find_rider(self, rider_id: str) -> Optional[Rider]: ...

    @abstractmethod
    async def find_trip(self, trip_id: str) -> Optional[Trip]: ...

    @abstractmethod
    async def list_drivers(self, where: DriverFilter | None = None) -> list[Driver]: ...

    @abstractmethod
    async def list_riders(self) -> list[Rider]: ...

    @abstractmethod
    async def list_trips(self, where: TripFilter | None = None) -> list[Trip]: ...

    # Lookups that treat a missing record as an error

    async def get_driver(self, driver_id: str) -> Driver:
        driver = await self.find_driver(driver_id)
        if driver is None:
            raise NotFound("driver", driver_id)
        return driver

    async def get_rider(self, rider_id: str) -> Rider:
        rider = await self.find_rider(rider_id)
        if rider is None:
            raise NotFound("rider", rider_id)
        return rider

    async def get_trip(self, trip_id: str) -> Trip:
        trip = await self.find_trip(trip_id)
        if trip is None:
            raise NotFound("trip", trip_id)
        return trip


# ── In-memory implementation ──────────────────────────────────────────


class InMemoryEntityStore(EntityStore):
    """Dictionary-backed store for a single event loop."""

    def __init__(self) -> None:
        self._drivers: dict[str, Driver] = {}
        self._riders: dict[str, Rider] = {}
        self._trips: dict[str, Trip] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    async def upsert_driver(self, driver: Driver) -> Driver:
        if not driver.id:
            raise ValueError("driver id is required")
        self._drivers[driver.id] = replace(driver)
        return replace(driver)

    async def upsert_rider(self, rider: Rider) -> Rider:
        if not rider.id:
            raise ValueError("rider id is required")
        self._riders[rider.id] = replace(rider)
        return replace(rider)

    async def upsert_trip(self, trip: Trip) -> Trip:
        if not trip.id:
            raise ValueError("trip id is required")
        trip.check_invariants()
        self._trips[trip.id] = replace(trip)
        return replace(trip)

    async def find_driver(self, driver_id: str) -> Optional[Driver]:
        driver = self._drivers.get(driver_id)
        return replace(driver) if driver else None

    async def find_rider(self, rider_id: str) -> Optional[Rider]:
        rider = self._riders.get(rider_id)
        return replace(rider) if rider else None

    async def find_trip(self, trip_id: str) -> Optional[Trip]:
        trip = self._trips.get(trip_id)
        return replace(trip) if trip else None

    async def list_drivers(self, where: DriverFilter | None = None) -> list[Driver]:
        return [
            replace(d)
            for d in self._drivers.values()
            if where is None or where.matches(d)
        ]

    async def list_riders(self) -> list[Rider]:
        return [replace(r) for r in self._riders.values()]

    async def list_trips(self, where: TripFilter | None = None) -> list[Trip]:
        return [
            replace(t)
            for t in self._trips.values()
            if where is None or where.matches(t)
        ]
