"""
Shared test fixtures.

Every test gets its own store, bus and engine.  The bus runs with zero
latency, the dispatcher with zero delay and the clock is frozen, so no
test depends on wall-clock timing.
"""

import random
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from ridehail.api.middleware import limiter
from ridehail.config import Settings
from ridehail.infrastructure.bus import RealtimeBus, ZeroLatency
from ridehail.infrastructure.store import InMemoryEntityStore
from ridehail.services.engine import FleetEngine
from tests.factories import FakeClock


@pytest.fixture(autouse=True)
def _disable_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        dispatch_delay_min_seconds=0,
        dispatch_delay_max_seconds=0,
        bus_jitter_min_seconds=0,
        bus_jitter_max_seconds=0,
        max_wait_seconds=300,
        pending_sweep_interval_seconds=3600,
        simulate_locations=False,
        seed_on_startup=False,
        redis_relay_enabled=False,
    )


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def bus(clock) -> RealtimeBus:
    return RealtimeBus(ZeroLatency(), clock=clock)


@pytest_asyncio.fixture
async def engine(store, bus, test_settings, clock) -> AsyncGenerator[FleetEngine, None]:
    """Started engine without the location generator."""
    fleet = FleetEngine(store, bus, test_settings, clock=clock, rng=random.Random(7))
    await fleet.start(simulate_locations=False)
    yield fleet
    await fleet.shutdown()
