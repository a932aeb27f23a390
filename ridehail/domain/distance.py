"""
Distance and ETA calculations using the Haversine formula.

Assumption
----------
We use great-circle (Haversine) distance instead of a real routing engine
(OSRM / Google Maps) to keep the engine self-contained.  ETAs assume a
constant average speed.  In production this module would be replaced by a
routing-service client that returns actual road distances and times.

Complexity: O(1) per call.
"""

import math
import random
from typing import Optional

EARTH_RADIUS_KM = 6_371.0
KM_PER_DEGREE = 111.32  # rough, good enough for scattering seed data


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def eta_minutes(distance_km: float, average_speed_kmh: float = 30.0) -> int:
    """Whole minutes needed to cover *distance_km*, rounded up."""
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be positive")
    return math.ceil(distance_km / average_speed_kmh * 60)


def random_point_near(
    center_lat: float,
    center_lng: float,
    radius_km: float = 5.0,
    rng: Optional[random.Random] = None,
) -> tuple[float, float]:
    """Point on a circle of *radius_km* around the centre, random bearing."""
    rng = rng or random.Random()
    r = radius_km / KM_PER_DEGREE
    theta = rng.random() * 2 * math.pi
    return center_lat + r * math.cos(theta), center_lng + r * math.sin(theta)
