"""
Driver and rider endpoints
==========================

GET   /api/v1/drivers                       -- list drivers (optionally by status)
GET   /api/v1/drivers/{driver_id}           -- one driver
PATCH /api/v1/drivers/{driver_id}/status    -- go available / offline
PUT   /api/v1/drivers/{driver_id}/location  -- report a GPS fix
GET   /api/v1/riders/{rider_id}             -- one rider
PUT   /api/v1/riders/{rider_id}/location    -- report a rider position
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ridehail.api.dependencies import get_engine
from ridehail.api.middleware import limiter
from ridehail.api.schemas import (
    DriverResponse,
    DriverStatusRequest,
    ErrorResponse,
    LocationIn,
    RiderResponse,
)
from ridehail.config import settings
from ridehail.domain.entities import Location
from ridehail.domain.enums import DriverStatus
from ridehail.infrastructure.store import DriverFilter
from ridehail.services.engine import FleetEngine

router = APIRouter(tags=["drivers"], responses={404: {"model": ErrorResponse}})


@router.get("/drivers", response_model=list[DriverResponse], summary="List drivers")
@limiter.limit(settings.rate_limit)
async def list_drivers(
    request: Request,
    status: Optional[DriverStatus] = None,
    h3_cell: Optional[str] = None,
    engine: FleetEngine = Depends(get_engine),
):
    try:
        where = DriverFilter(status=status, h3_cell=h3_cell)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    drivers = await engine.list_drivers(where)
    return [DriverResponse.model_validate(d) for d in drivers]


@router.get("/drivers/{driver_id}", response_model=DriverResponse, summary="Get a driver")
@limiter.limit(settings.rate_limit)
async def get_driver(
    request: Request,
    driver_id: str,
    engine: FleetEngine = Depends(get_engine),
):
    return DriverResponse.model_validate(await engine.get_driver(driver_id))


@router.patch(
    "/drivers/{driver_id}/status",
    response_model=DriverResponse,
    summary="Set driver availability",
    description="Drivers on an active trip cannot change status (409).",
)
@limiter.limit(settings.rate_limit)
async def update_driver_status(
    request: Request,
    driver_id: str,
    body: DriverStatusRequest,
    engine: FleetEngine = Depends(get_engine),
):
    driver = await engine.update_driver_status(driver_id, body.status)
    return DriverResponse.model_validate(driver)


@router.put(
    "/drivers/{driver_id}/location",
    response_model=DriverResponse,
    summary="Report a driver location",
)
@limiter.limit(settings.rate_limit)
async def update_driver_location(
    request: Request,
    driver_id: str,
    body: LocationIn,
    engine: FleetEngine = Depends(get_engine),
):
    driver = await engine.update_driver_location(
        driver_id, Location(body.latitude, body.longitude, body.heading)
    )
    return DriverResponse.model_validate(driver)


@router.get("/riders/{rider_id}", response_model=RiderResponse, summary="Get a rider")
@limiter.limit(settings.rate_limit)
async def get_rider(
    request: Request,
    rider_id: str,
    engine: FleetEngine = Depends(get_engine),
):
    return RiderResponse.model_validate(await engine.get_rider(rider_id))


@router.put(
    "/riders/{rider_id}/location",
    response_model=RiderResponse,
    summary="Report a rider location",
)
@limiter.limit(settings.rate_limit)
async def update_rider_location(
    request: Request,
    rider_id: str,
    body: LocationIn,
    engine: FleetEngine = Depends(get_engine),
):
    rider = await engine.update_rider_location(
        rider_id, Location(body.latitude, body.longitude, body.heading)
    )
    return RiderResponse.model_validate(rider)
