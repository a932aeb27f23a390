"""
Realtime event schemas.

One pydantic model per topic, each tagged with a literal ``kind`` and a
``schema_version`` so consumers can dispatch on the variant and reject
payloads they do not understand.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from .entities import Driver, Location, Trip, utcnow
from .enums import CancellationReason, DriverStatus, TripStatus

# Topic names
LOCATION_UPDATE = "location_update"
TRIP_STATUS = "trip_status"
DRIVER_STATUS = "driver_status"

ALL_TOPICS = [LOCATION_UPDATE, TRIP_STATUS, DRIVER_STATUS]


class LocationPayload(BaseModel):
    latitude: float
    longitude: float
    heading: float = 0.0
    timestamp: Optional[datetime] = None

    @classmethod
    def from_location(cls, location: Location) -> LocationPayload:
        return cls(
            latitude=location.latitude,
            longitude=location.longitude,
            heading=location.heading,
            timestamp=location.timestamp,
        )


class LocationUpdateEvent(BaseModel):
    """Driver position and status, emitted on every location change."""

    kind: Literal["location_update"] = LOCATION_UPDATE
    schema_version: Literal[1] = 1
    driver_id: str
    location: LocationPayload
    status: DriverStatus
    h3_cell: Optional[str] = None

    @classmethod
    def for_driver(cls, driver: Driver, h3_cell: str | None = None) -> LocationUpdateEvent:
        return cls(
            driver_id=driver.id,
            location=LocationPayload.from_location(driver.location),
            status=driver.status,
            h3_cell=h3_cell,
        )


class TripStatusEvent(BaseModel):
    """Trip state after a successful lifecycle transition."""

    kind: Literal["trip_status"] = TRIP_STATUS
    schema_version: Literal[1] = 1
    trip_id: str
    rider_id: str
    driver_id: Optional[str] = None
    status: TripStatus
    fare: int
    distance_km: float
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    cancellation_reason: Optional[CancellationReason] = None

    @classmethod
    def for_trip(cls, trip: Trip) -> TripStatusEvent:
        return cls(
            trip_id=trip.id,
            rider_id=trip.rider_id,
            driver_id=trip.driver_id,
            status=trip.status,
            fare=trip.fare,
            distance_km=trip.distance_km,
            estimated_arrival=trip.estimated_arrival,
            actual_arrival=trip.actual_arrival,
            duration_minutes=trip.duration_minutes,
            cancellation_reason=trip.cancellation_reason,
        )


class DriverStatusEvent(BaseModel):
    """Driver availability change."""

    kind: Literal["driver_status"] = DRIVER_STATUS
    schema_version: Literal[1] = 1
    driver_id: str
    previous_status: Optional[DriverStatus] = None
    status: DriverStatus


Event = Union[LocationUpdateEvent, TripStatusEvent, DriverStatusEvent]


class BusMessage(BaseModel):
    """Envelope handed to subscribers."""

    topic: str
    event: Event = Field(discriminator="kind")
    published_at: datetime = Field(default_factory=utcnow)
