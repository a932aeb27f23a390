"""Builders for test entities."""

import math
from datetime import datetime, timedelta, timezone

from ridehail.domain.entities import Driver, Location, Place, Rider, Trip, Vehicle
from ridehail.domain.enums import DriverStatus, TripStatus, VehicleType

START = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

# Connaught Place, New Delhi
CENTER_LAT, CENTER_LNG = 28.6139, 77.2090

# Degrees of latitude per km on the haversine sphere
DEG_PER_KM = 180 / (6371.0 * math.pi)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def north_of(lat: float, km: float) -> float:
    return lat + km * DEG_PER_KM


def make_driver(
    driver_id: str,
    lat: float = CENTER_LAT,
    lng: float = CENTER_LNG,
    status: DriverStatus = DriverStatus.AVAILABLE,
    total_trips: int = 0,
    rating: float = 4.5,
) -> Driver:
    return Driver(
        id=driver_id,
        name=f"Driver {driver_id}",
        phone="+91-9000000000",
        vehicle=Vehicle(type=VehicleType.CAR, plate=f"DL-{driver_id}"),
        location=Location(lat, lng, heading=0.0, timestamp=START),
        status=status,
        rating=rating,
        total_trips=total_trips,
    )


def make_rider(rider_id: str = "rider_1") -> Rider:
    return Rider(id=rider_id, name=f"Rider {rider_id}", phone="+91-8000000000", rating=4.7)


def make_trip(
    trip_id: str = "trip_1",
    status: TripStatus = TripStatus.REQUESTED,
    driver_id: str | None = None,
    created_at: datetime = START,
    fare: int = 80,
) -> Trip:
    return Trip(
        id=trip_id,
        rider_id="rider_1",
        pickup=Place.at(CENTER_LAT, CENTER_LNG),
        destination=Place.at(28.62, 77.22),
        fare=fare,
        distance_km=1.2,
        created_at=created_at,
        status=status,
        driver_id=driver_id,
    )
