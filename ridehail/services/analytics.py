"""Fleet analytics, computed on demand from a store snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ridehail.domain.entities import Driver, Trip
from ridehail.domain.enums import DriverStatus, TripStatus

RECENT_TRIPS_LIMIT = 10


@dataclass
class FleetAnalytics:
    total_trips: int = 0
    completed_trips: int = 0
    completion_rate: float = 0.0
    active_drivers: int = 0
    total_drivers: int = 0
    average_rating: float = 0.0
    total_revenue: int = 0
    recent_trips: list[Trip] = field(default_factory=list)


def compute_analytics(
    trips: Sequence[Trip], drivers: Sequence[Driver]
) -> FleetAnalytics:
    completed = [t for t in trips if t.status is TripStatus.COMPLETED]
    recent = sorted(trips, key=lambda t: t.created_at, reverse=True)
    return FleetAnalytics(
        total_trips=len(trips),
        completed_trips=len(completed),
        completion_rate=len(completed) / len(trips) if trips else 0.0,
        active_drivers=sum(1 for d in drivers if d.status is not DriverStatus.OFFLINE),
        total_drivers=len(drivers),
        average_rating=(
            sum(d.rating for d in drivers) / len(drivers) if drivers else 0.0
        ),
        total_revenue=sum(t.fare for t in completed),
        recent_trips=recent[:RECENT_TRIPS_LIMIT],
    )
