"""
Fare Engine  (Strategy Pattern)
===============================

Formula
-------
Fare = ceil(Distance x Rate_Per_KM + Base_Fare)

Fares are whole currency units and are computed exactly once, when the
trip is requested, from the pickup / destination coordinates.

Complexity: O(1) per fare calculation.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

from .distance import haversine_km


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> int: ...


class StandardPricing(PricingStrategy):
    def calculate(
        self, distance_km: float, base_fare: float, rate_per_km: float
    ) -> int:
        return math.ceil(distance_km * rate_per_km + base_fare)


def fare(
    distance_km: float, base_fare: float = 50.0, rate_per_km: float = 15.0
) -> int:
    return StandardPricing().calculate(distance_km, base_fare, rate_per_km)


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used when a trip is requested."""

    def __init__(
        self,
        base_fare: float = 50.0,
        rate_per_km: float = 15.0,
        strategy: PricingStrategy | None = None,
    ):
        self.base_fare = base_fare
        self.rate_per_km = rate_per_km
        self.strategy = strategy or StandardPricing()

    def fare_for_distance(self, distance_km: float) -> int:
        return self.strategy.calculate(distance_km, self.base_fare, self.rate_per_km)

    def quote(
        self,
        pickup_lat: float,
        pickup_lng: float,
        dropoff_lat: float,
        dropoff_lng: float,
    ) -> tuple[float, int]:
        """Return ``(distance_km, fare)`` for a pickup / drop-off pair."""
        distance = haversine_km(pickup_lat, pickup_lng, dropoff_lat, dropoff_lng)
        return distance, self.fare_for_distance(distance)
