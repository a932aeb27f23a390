"""
Concurrency safety tests.

Demonstrates:
1. Two trips racing for one driver: exactly one wins, the other waits.
2. A driver on an active trip cannot be toggled offline.
3. Concurrent lifecycle calls on the same trip apply at most once.
"""

import asyncio

import pytest

from ridehail.domain.entities import InvalidTransition
from ridehail.domain.enums import DriverStatus, TripStatus
from tests.factories import make_driver, make_rider, make_trip


class TestDriverRace:
    @pytest.mark.asyncio
    async def test_two_trips_one_driver(self, engine, store):
        await store.upsert_driver(make_driver("driver_1"))
        await store.upsert_trip(make_trip("trip_a"))
        await store.upsert_trip(make_trip("trip_b"))

        results = await asyncio.gather(
            engine.matcher.match("trip_a"),
            engine.matcher.match("trip_b"),
        )

        assert sum(r is not None for r in results) == 1
        trips = [await store.get_trip("trip_a"), await store.get_trip("trip_b")]
        assert sorted(t.status.value for t in trips) == ["assigned", "requested"]
        assert [t.driver_id for t in trips if t.driver_id] == ["driver_1"]

    @pytest.mark.asyncio
    async def test_burst_of_requests_never_double_books(self, engine):
        for i in range(6):
            await engine.register_rider(make_rider(f"rider_{i}"))
        for i in range(3):
            await engine.register_driver(make_driver(f"driver_{i}"))

        pickup = make_trip().pickup
        destination = make_trip().destination
        await asyncio.gather(*(
            engine.request_trip(f"rider_{i}", pickup, destination) for i in range(6)
        ))
        await engine.drain()

        assigned = [t for t in await engine.list_trips() if t.status is TripStatus.ASSIGNED]
        assert len(assigned) == 3
        assert len({t.driver_id for t in assigned}) == 3
        drivers = await engine.list_drivers()
        assert all(d.status is DriverStatus.BUSY for d in drivers)
        assert len(engine.dispatcher.pending) == 3


class TestDriverStatusGuard:
    @pytest.mark.asyncio
    async def test_cannot_go_offline_mid_trip(self, engine, store):
        await engine.register_rider(make_rider())
        await engine.register_driver(make_driver("driver_1"))
        trip = await engine.request_trip(
            "rider_1", make_trip().pickup, make_trip().destination
        )
        await engine.drain()
        assert (await engine.get_trip(trip.id)).status is TripStatus.ASSIGNED

        with pytest.raises(InvalidTransition):
            await engine.update_driver_status("driver_1", DriverStatus.OFFLINE)
        assert (await engine.get_driver("driver_1")).status is DriverStatus.BUSY

    @pytest.mark.asyncio
    async def test_cannot_mark_busy_by_hand(self, engine):
        await engine.register_driver(make_driver("driver_1"))
        with pytest.raises(InvalidTransition):
            await engine.update_driver_status("driver_1", DriverStatus.BUSY)


class TestTransitionRace:
    @pytest.mark.asyncio
    async def test_double_cancel_applies_once(self, engine, store):
        await store.upsert_trip(make_trip())
        results = await asyncio.gather(
            engine.cancel_trip("trip_1"),
            engine.cancel_trip("trip_1"),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidTransition)
        assert (await store.get_trip("trip_1")).status is TripStatus.CANCELLED
