"""Unit tests for the fare engine."""

import math

from ridehail.domain.distance import haversine_km
from ridehail.domain.pricing import PricingEngine, PricingStrategy, StandardPricing, fare


class TestStandardPricing:
    def test_whole_kilometres(self):
        assert StandardPricing().calculate(10.0, 50.0, 15.0) == 200  # 50 + 10*15

    def test_rounds_up(self):
        assert StandardPricing().calculate(1.01, 50.0, 15.0) == 66  # 65.15 -> 66

    def test_zero_distance_is_base_fare(self):
        assert fare(0.0) == 50

    def test_module_level_fare_uses_defaults(self):
        assert fare(2.0) == 80


class TestPricingEngine:
    def test_quote_matches_formula(self):
        engine = PricingEngine(base_fare=50.0, rate_per_km=15.0)
        distance, price = engine.quote(28.6139, 77.2090, 28.62, 77.22)
        assert distance == haversine_km(28.6139, 77.2090, 28.62, 77.22)
        assert price == math.ceil(distance * 15 + 50)

    def test_configured_rates(self):
        engine = PricingEngine(base_fare=30.0, rate_per_km=10.0)
        assert engine.fare_for_distance(4.0) == 70

    def test_strategy_is_replaceable(self):
        class FlatPricing(PricingStrategy):
            def calculate(self, distance_km, base_fare, rate_per_km):
                return 99

        engine = PricingEngine(strategy=FlatPricing())
        assert engine.fare_for_distance(42.0) == 99
