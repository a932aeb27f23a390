"""Domain enumerations and state-transition rules."""

import enum


class TripStatus(str, enum.Enum):
    REQUESTED = "requested"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.REQUESTED: {TripStatus.ASSIGNED, TripStatus.CANCELLED},
    TripStatus.ASSIGNED: {TripStatus.PICKED_UP, TripStatus.CANCELLED},
    TripStatus.PICKED_UP: {TripStatus.IN_PROGRESS},
    TripStatus.IN_PROGRESS: {TripStatus.COMPLETED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}

# Statuses in which a trip holds its driver
ACTIVE_TRIP_STATUSES = frozenset(
    {TripStatus.ASSIGNED, TripStatus.PICKED_UP, TripStatus.IN_PROGRESS}
)


class DriverStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleType(str, enum.Enum):
    CAR = "car"
    BIKE = "bike"
    AUTO = "auto"


class CancellationReason(str, enum.Enum):
    RIDER = "rider"
    DRIVER = "driver"
    NO_DRIVER = "no_driver"
