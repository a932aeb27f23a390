"""
Simulated GPS feed.

Stand-in for a real telemetry pipeline: anything implementing
``LocationFeed.next_location`` can replace ``RandomWalkFeed`` without the
engine noticing.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable, Optional, Protocol

from ridehail.domain.distance import haversine_km, random_point_near
from ridehail.domain.entities import Driver, Location, utcnow


class LocationFeed(Protocol):
    def next_location(self, driver: Driver) -> Location: ...


class RandomWalkFeed:
    """Moves each driver a short random hop, staying near an anchor point."""

    def __init__(
        self,
        anchor_lat: float,
        anchor_lng: float,
        step_km: float = 0.2,
        max_radius_km: float = 6.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.anchor_lat = anchor_lat
        self.anchor_lng = anchor_lng
        self.step_km = step_km
        self.max_radius_km = max_radius_km
        self.rng = rng or random.Random()
        self.clock = clock

    def next_location(self, driver: Driver) -> Location:
        lat, lng = random_point_near(
            driver.location.latitude,
            driver.location.longitude,
            self.rng.uniform(0, self.step_km),
            self.rng,
        )
        if haversine_km(self.anchor_lat, self.anchor_lng, lat, lng) > self.max_radius_km:
            # Wandered off the map: respawn somewhere inside the service area
            lat, lng = random_point_near(
                self.anchor_lat,
                self.anchor_lng,
                self.rng.uniform(0, self.max_radius_km),
                self.rng,
            )
        return Location(
            latitude=lat,
            longitude=lng,
            heading=float(self.rng.randrange(360)),
            timestamp=self.clock(),
        )
