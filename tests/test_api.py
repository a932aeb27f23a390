"""
Integration tests for the REST API endpoints.

The app is built around the per-test ``engine`` fixture, which is already
started, so the lifespan (seeding, location generator, Redis relay) is not
involved.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ridehail.api.app import create_app
from ridehail.domain.matching import location_cell
from tests.factories import CENTER_LAT, CENTER_LNG, make_driver, make_rider, north_of

TRIP_BODY = {
    "rider_id": "rider_1",
    "pickup": {"latitude": CENTER_LAT, "longitude": CENTER_LNG, "address": "Connaught Place"},
    "destination": {"latitude": 28.6129, "longitude": 77.2295},
}


@pytest_asyncio.fixture
async def client(engine):
    await engine.register_rider(make_rider())
    app = create_app(engine=engine)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create_trip(client: AsyncClient) -> dict:
    resp = await client.post("/api/v1/trips", json=TRIP_BODY)
    assert resp.status_code == 202
    return resp.json()


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_trip_returns_202(client: AsyncClient):
    data = await _create_trip(client)
    assert data["status"] == "requested"
    assert data["id"].startswith("trip_")
    assert data["driver_id"] is None
    assert data["pickup"]["address"] == "Connaught Place"
    assert data["destination"]["address"] == "28.6129, 77.2295"
    assert data["fare"] >= 50


@pytest.mark.asyncio
async def test_create_trip_unknown_rider(client: AsyncClient):
    resp = await client.post("/api/v1/trips", json={**TRIP_BODY, "rider_id": "ghost"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_trip_rejects_bad_coordinates(client: AsyncClient):
    body = {**TRIP_BODY, "pickup": {"latitude": 123.0, "longitude": 0.0}}
    resp = await client.post("/api/v1/trips", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_trip_is_matched(client: AsyncClient, engine):
    await engine.register_driver(make_driver("driver_1", north_of(CENTER_LAT, 1.0)))
    trip_id = (await _create_trip(client))["id"]
    await engine.drain()

    resp = await client.get(f"/api/v1/trips/{trip_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "assigned"
    assert data["driver_id"] == "driver_1"
    assert data["estimated_arrival"] is not None


@pytest.mark.asyncio
async def test_get_trip_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/trips/trip_missing")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_full_lifecycle(client: AsyncClient, engine):
    await engine.register_driver(make_driver("driver_1"))
    trip_id = (await _create_trip(client))["id"]
    await engine.drain()

    for status in ("picked_up", "in_progress", "completed"):
        resp = await client.patch(f"/api/v1/trips/{trip_id}/status", json={"status": status})
        assert resp.status_code == 200
        assert resp.json()["status"] == status

    data = resp.json()
    assert data["actual_arrival"] is not None
    assert data["duration_minutes"] == 0

    driver = (await client.get("/api/v1/drivers/driver_1")).json()
    assert driver["status"] == "available"
    assert driver["total_trips"] == 1


@pytest.mark.asyncio
async def test_illegal_status_change_is_409(client: AsyncClient):
    trip_id = (await _create_trip(client))["id"]
    resp = await client.patch(f"/api/v1/trips/{trip_id}/status", json={"status": "completed"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cancel_requested_trip(client: AsyncClient):
    trip_id = (await _create_trip(client))["id"]
    resp = await client.patch(f"/api/v1/trips/{trip_id}/cancel")
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancellation_reason"] == "rider"


@pytest.mark.asyncio
async def test_cancel_already_cancelled_trip_fails(client: AsyncClient):
    trip_id = (await _create_trip(client))["id"]
    await client.patch(f"/api/v1/trips/{trip_id}/cancel")
    resp = await client.patch(f"/api/v1/trips/{trip_id}/cancel")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_list_trips_by_status(client: AsyncClient):
    kept = (await _create_trip(client))["id"]
    dropped = (await _create_trip(client))["id"]
    await client.patch(f"/api/v1/trips/{dropped}/cancel", json={"reason": "driver"})

    resp = await client.get("/api/v1/trips", params={"status": "requested"})
    assert [t["id"] for t in resp.json()] == [kept]
    resp = await client.get("/api/v1/trips", params={"rider_id": "rider_1"})
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_driver_endpoints(client: AsyncClient, engine):
    await engine.register_driver(make_driver("driver_1"))

    resp = await client.patch("/api/v1/drivers/driver_1/status", json={"status": "offline"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "offline"

    resp = await client.get("/api/v1/drivers", params={"status": "available"})
    assert resp.json() == []

    resp = await client.put(
        "/api/v1/drivers/driver_1/location",
        json={"latitude": 28.62, "longitude": 77.22, "heading": 45},
    )
    assert resp.status_code == 200
    assert resp.json()["location"]["heading"] == 45

    resp = await client.patch("/api/v1/drivers/ghost/status", json={"status": "offline"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_drivers_by_cell(client: AsyncClient, engine):
    await engine.register_driver(make_driver("driver_1"))
    cell = location_cell(CENTER_LAT, CENTER_LNG, 7)

    resp = await client.get("/api/v1/drivers", params={"h3_cell": cell})
    assert [d["id"] for d in resp.json()] == ["driver_1"]

    resp = await client.get("/api/v1/drivers", params={"h3_cell": "nope"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_driver_cannot_be_set_busy(client: AsyncClient, engine):
    await engine.register_driver(make_driver("driver_1"))
    resp = await client.patch("/api/v1/drivers/driver_1/status", json={"status": "busy"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_rider_endpoints(client: AsyncClient):
    resp = await client.put(
        "/api/v1/riders/rider_1/location", json={"latitude": 28.6, "longitude": 77.2}
    )
    assert resp.status_code == 200
    assert resp.json()["location"]["latitude"] == 28.6

    resp = await client.get("/api/v1/riders/rider_1")
    assert resp.json()["name"] == "Rider rider_1"
    assert (await client.get("/api/v1/riders/ghost")).status_code == 404


@pytest.mark.asyncio
async def test_analytics(client: AsyncClient, engine):
    await _create_trip(client)
    resp = await client.get("/api/v1/admin/analytics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_trips"] == 1
    assert data["completed_trips"] == 0
    assert data["completion_rate"] == 0.0
    assert len(data["recent_trips"]) == 1
