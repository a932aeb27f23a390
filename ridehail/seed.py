"""
Seed data -- onboards a sample fleet so the engine has something to dispatch.

Creates:
  - 8 drivers (cars, autos and bikes) scattered around the city centre
  - 3 riders near the centre

Positions and trip counts come from the supplied ``random.Random`` so a
seeded generator gives the same fleet every run.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from ridehail.domain.distance import random_point_near
from ridehail.domain.entities import Driver, Location, Rider, Vehicle
from ridehail.domain.enums import DriverStatus, VehicleType
from ridehail.services.engine import FleetEngine

logger = logging.getLogger(__name__)


DRIVERS = [
    {"id": "driver_1", "name": "Rajesh Kumar", "phone": "+91-9876543210", "vehicle_type": VehicleType.CAR, "plate": "DL01AB1234", "rating": 4.8},
    {"id": "driver_2", "name": "Priya Sharma", "phone": "+91-9876543211", "vehicle_type": VehicleType.AUTO, "plate": "DL02CD5678", "rating": 4.6},
    {"id": "driver_3", "name": "Amit Singh", "phone": "+91-9876543212", "vehicle_type": VehicleType.BIKE, "plate": "DL03EF9012", "rating": 4.9},
    {"id": "driver_4", "name": "Sunita Patel", "phone": "+91-9876543213", "vehicle_type": VehicleType.CAR, "plate": "DL04GH3456", "rating": 4.7},
    {"id": "driver_5", "name": "Vikram Gupta", "phone": "+91-9876543214", "vehicle_type": VehicleType.AUTO, "plate": "DL05IJ7890", "rating": 4.5},
    {"id": "driver_6", "name": "Kavya Reddy", "phone": "+91-9876543215", "vehicle_type": VehicleType.CAR, "plate": "DL06KL1234", "rating": 4.8},
    {"id": "driver_7", "name": "Rohit Jain", "phone": "+91-9876543216", "vehicle_type": VehicleType.BIKE, "plate": "DL07MN5678", "rating": 4.6},
    {"id": "driver_8", "name": "Neha Agarwal", "phone": "+91-9876543217", "vehicle_type": VehicleType.AUTO, "plate": "DL08OP9012", "rating": 4.9},
]

RIDERS = [
    {"id": "rider_1", "name": "Ananya Mehta", "phone": "+91-8765432109", "rating": 4.7},
    {"id": "rider_2", "name": "Arjun Kapoor", "phone": "+91-8765432108", "rating": 4.8},
    {"id": "rider_3", "name": "Isha Verma", "phone": "+91-8765432107", "rating": 4.6},
]


async def seed_fleet(
    engine: FleetEngine, rng: Optional[random.Random] = None
) -> tuple[list[Driver], list[Rider]]:
    rng = rng or engine.rng
    center_lat = engine.config.city_center_lat
    center_lng = engine.config.city_center_lng
    now = engine.clock()

    drivers = []
    for d in DRIVERS:
        lat, lng = random_point_near(center_lat, center_lng, rng.uniform(0, 5.5), rng)
        driver = Driver(
            id=d["id"],
            name=d["name"],
            phone=d["phone"],
            vehicle=Vehicle(type=d["vehicle_type"], plate=d["plate"]),
            location=Location(lat, lng, heading=float(rng.randrange(360)), timestamp=now),
            status=DriverStatus.AVAILABLE,
            rating=d["rating"],
            total_trips=rng.randrange(50, 550),
        )
        drivers.append(await engine.register_driver(driver))

    riders = []
    for r in RIDERS:
        lat, lng = random_point_near(center_lat, center_lng, rng.uniform(0, 2.75), rng)
        rider = Rider(
            id=r["id"],
            name=r["name"],
            phone=r["phone"],
            rating=r["rating"],
            location=Location(lat, lng, timestamp=now),
        )
        riders.append(await engine.register_rider(rider))

    logger.info("Seeded %d drivers and %d riders", len(drivers), len(riders))
    return drivers, riders
