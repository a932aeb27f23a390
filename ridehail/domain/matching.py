"""
Nearest-Driver Selection
========================

1. **Filtering**  -- only drivers whose status is ``available`` compete.
2. **Scoring**    -- Haversine distance from the trip pickup to the
   driver's last known location.
3. **Selection**  -- minimum distance wins; equal distances are broken by
   the lowest driver id so the winner is reproducible.

Complexity
----------
Let D = number of available drivers.

* Selection:  O(D) -- one Haversine call per driver, single pass.

H3 cells are attached to location updates so consumers can bucket drivers
by area; the selection itself always scans every candidate, so the result
is the exact nearest driver rather than the nearest within a cell ring.
"""

from __future__ import annotations

from typing import Iterable, Optional

import h3

from .distance import haversine_km
from .entities import Driver
from .enums import DriverStatus


def location_cell(lat: float, lng: float, resolution: int = 7) -> str:
    """Map a geo-point to an H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(lat, lng, resolution)


def select_nearest_driver(
    pickup_lat: float,
    pickup_lng: float,
    drivers: Iterable[Driver],
) -> Optional[tuple[Driver, float]]:
    """
    Return ``(driver, distance_km)`` for the closest available driver, or
    ``None`` when nobody is available.

    Ties on distance go to the lexicographically lowest driver id.
    """
    best: Optional[tuple[float, str, Driver]] = None
    for driver in drivers:
        if driver.status is not DriverStatus.AVAILABLE:
            continue
        distance = haversine_km(
            pickup_lat,
            pickup_lng,
            driver.location.latitude,
            driver.location.longitude,
        )
        candidate = (distance, driver.id, driver)
        if best is None or candidate[:2] < best[:2]:
            best = candidate

    if best is None:
        return None
    return best[2], best[0]
