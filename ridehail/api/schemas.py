"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ridehail.domain.enums import CancellationReason, DriverStatus, TripStatus, VehicleType


# ── Requests ──────────────────────────────────────────────────────────


class PlaceIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=255)


class TripCreateRequest(BaseModel):
    rider_id: str
    pickup: PlaceIn
    destination: PlaceIn


class TripStatusRequest(BaseModel):
    status: TripStatus
    reason: Optional[CancellationReason] = None


class TripCancelRequest(BaseModel):
    reason: CancellationReason = CancellationReason.RIDER


class DriverStatusRequest(BaseModel):
    status: DriverStatus


class LocationIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    heading: float = Field(0.0, ge=0, lt=360)


# ── Responses ─────────────────────────────────────────────────────────


class PlaceResponse(BaseModel):
    latitude: float
    longitude: float
    address: str

    model_config = {"from_attributes": True}


class LocationResponse(BaseModel):
    latitude: float
    longitude: float
    heading: float
    timestamp: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: str
    rider_id: str
    driver_id: Optional[str] = None
    pickup: PlaceResponse
    destination: PlaceResponse
    status: TripStatus
    fare: int
    distance_km: float
    created_at: datetime
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    cancellation_reason: Optional[CancellationReason] = None

    model_config = {"from_attributes": True}


class VehicleResponse(BaseModel):
    type: VehicleType
    plate: str

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: str
    name: str
    phone: str
    vehicle: VehicleResponse
    location: LocationResponse
    status: DriverStatus
    rating: float
    total_trips: int

    model_config = {"from_attributes": True}


class RiderResponse(BaseModel):
    id: str
    name: str
    rating: float
    location: Optional[LocationResponse] = None

    model_config = {"from_attributes": True}


class AnalyticsResponse(BaseModel):
    total_trips: int
    completed_trips: int
    completion_rate: float
    active_drivers: int
    total_drivers: int
    average_rating: float
    total_revenue: int
    recent_trips: list[TripResponse] = []

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
