"""
Trip endpoints
==============

POST  /api/v1/trips                  -- request a trip (returns 202 Accepted)
GET   /api/v1/trips                  -- list trips, newest first
GET   /api/v1/trips/{trip_id}        -- check assignment, ETA and fare
PATCH /api/v1/trips/{trip_id}/status -- advance the trip lifecycle
PATCH /api/v1/trips/{trip_id}/cancel -- cancel a requested / assigned trip
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ridehail.api.dependencies import get_engine
from ridehail.api.middleware import limiter
from ridehail.api.schemas import (
    ErrorResponse,
    TripCancelRequest,
    TripCreateRequest,
    TripResponse,
    TripStatusRequest,
)
from ridehail.config import settings
from ridehail.domain.entities import Place
from ridehail.domain.enums import TripStatus
from ridehail.infrastructure.store import TripFilter
from ridehail.services.engine import FleetEngine

router = APIRouter(
    prefix="/trips",
    tags=["trips"],
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)


@router.post(
    "",
    status_code=202,
    response_model=TripResponse,
    summary="Request a trip",
    responses={202: {"description": "Trip accepted; driver matching is async."}},
)
@limiter.limit(settings.rate_limit)
async def request_trip(
    request: Request,
    body: TripCreateRequest,
    engine: FleetEngine = Depends(get_engine),
):
    trip = await engine.request_trip(
        body.rider_id,
        Place.at(body.pickup.latitude, body.pickup.longitude, body.pickup.address),
        Place.at(
            body.destination.latitude,
            body.destination.longitude,
            body.destination.address,
        ),
    )
    return TripResponse.model_validate(trip)


@router.get("", response_model=list[TripResponse], summary="List trips")
@limiter.limit(settings.rate_limit)
async def list_trips(
    request: Request,
    rider_id: Optional[str] = None,
    driver_id: Optional[str] = None,
    status: Optional[list[TripStatus]] = Query(None),
    engine: FleetEngine = Depends(get_engine),
):
    where = TripFilter(
        rider_id=rider_id,
        driver_id=driver_id,
        statuses=frozenset(status) if status else None,
    )
    return [TripResponse.model_validate(t) for t in await engine.list_trips(where)]


@router.get(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Get trip status, ETA and fare",
)
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: str,
    engine: FleetEngine = Depends(get_engine),
):
    return TripResponse.model_validate(await engine.get_trip(trip_id))


@router.patch(
    "/{trip_id}/status",
    response_model=TripResponse,
    summary="Advance a trip",
    description=(
        "Applies one lifecycle transition (assigned -> picked_up -> "
        "in_progress -> completed). Illegal transitions return 409."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_trip_status(
    request: Request,
    trip_id: str,
    body: TripStatusRequest,
    engine: FleetEngine = Depends(get_engine),
):
    trip = await engine.update_trip_status(trip_id, body.status, body.reason)
    return TripResponse.model_validate(trip)


@router.patch(
    "/{trip_id}/cancel",
    response_model=TripResponse,
    summary="Cancel a trip",
    description=(
        "Transitions a requested or assigned trip to cancelled. "
        "An assigned driver becomes available again."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: str,
    body: Optional[TripCancelRequest] = None,
    engine: FleetEngine = Depends(get_engine),
):
    reason = (body or TripCancelRequest()).reason
    return TripResponse.model_validate(await engine.cancel_trip(trip_id, reason))
