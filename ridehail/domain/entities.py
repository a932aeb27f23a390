"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Trip``: enforces valid lifecycle transitions
  (requested -> assigned -> picked_up -> in_progress -> completed, or
  requested / assigned -> cancelled).
- Value objects (``Location``, ``Place``, ``Vehicle``) are frozen, so a
  shallow copy of an entity never shares mutable state with the original.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .enums import (
    ACTIVE_TRIP_STATUSES,
    TRIP_TRANSITIONS,
    CancellationReason,
    DriverStatus,
    TripStatus,
    VehicleType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Errors ────────────────────────────────────────────────────────────


class DispatchError(Exception):
    """Base class for errors reported by the dispatch engine."""


class NotFound(DispatchError):
    """Raised when an identity does not resolve to a record."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} {entity_id!r} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidTransition(DispatchError):
    """Raised when a status change violates the state machine."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    heading: float = 0.0
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Place:
    latitude: float
    longitude: float
    address: str = ""

    @classmethod
    def at(cls, latitude: float, longitude: float, address: str | None = None) -> Place:
        """Build a place, falling back to a coordinate label for the address."""
        return cls(latitude, longitude, address or f"{latitude:.4f}, {longitude:.4f}")


@dataclass(frozen=True)
class Vehicle:
    type: VehicleType
    plate: str


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Driver:
    id: str
    name: str
    phone: str
    vehicle: Vehicle
    location: Location
    status: DriverStatus = DriverStatus.AVAILABLE
    rating: float = 5.0
    total_trips: int = 0


@dataclass
class Rider:
    id: str
    name: str
    phone: str
    rating: float = 5.0
    location: Optional[Location] = None


@dataclass
class Trip:
    id: str
    rider_id: str
    pickup: Place
    destination: Place
    fare: int
    distance_km: float
    created_at: datetime
    status: TripStatus = TripStatus.REQUESTED
    driver_id: Optional[str] = None
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    cancellation_reason: Optional[CancellationReason] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TRIP_STATUSES

    def can_transition_to(self, new_status: TripStatus) -> bool:
        return new_status in TRIP_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: TripStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        if not self.can_transition_to(new_status):
            raise InvalidTransition(
                f"Cannot transition trip {self.id} from "
                f"{self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def check_invariants(self) -> None:
        """A driver is held from assignment onwards, never while requested."""
        holds_driver = self.status in ACTIVE_TRIP_STATUSES or self.status is TripStatus.COMPLETED
        if holds_driver and self.driver_id is None:
            raise ValueError(f"Trip {self.id} is {self.status.value} without a driver")
        if self.status is TripStatus.REQUESTED and self.driver_id is not None:
            raise ValueError(f"Trip {self.id} is requested but references a driver")
