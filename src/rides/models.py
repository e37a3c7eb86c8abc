"""Ride state machine and models."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from fares.quote import FareQuote


class RideStatus(str, Enum):
    """Ride lifecycle states."""

    PENDING = "pending"
    DRIVER_ASSIGNED = "driver_assigned"
    RIDE_STARTED = "ride_started"
    RIDE_ENDED = "ride_ended"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RideEvent(str, Enum):
    """Actions that drive a ride between states."""

    CREATE = "create"
    ASSIGN_DRIVER = "assign_driver"
    VERIFY_START = "verify_start"
    VERIFY_END = "verify_end"
    CONFIRM_SETTLEMENT = "confirm_settlement"
    CANCEL = "cancel"


TRANSITIONS: dict[RideStatus, dict[RideEvent, RideStatus]] = {
    RideStatus.PENDING: {
        RideEvent.ASSIGN_DRIVER: RideStatus.DRIVER_ASSIGNED,
        RideEvent.CANCEL: RideStatus.CANCELLED,
    },
    RideStatus.DRIVER_ASSIGNED: {
        RideEvent.VERIFY_START: RideStatus.RIDE_STARTED,
        RideEvent.CANCEL: RideStatus.CANCELLED,
    },
    RideStatus.RIDE_STARTED: {RideEvent.VERIFY_END: RideStatus.RIDE_ENDED},
    RideStatus.RIDE_ENDED: {RideEvent.CONFIRM_SETTLEMENT: RideStatus.COMPLETED},
    RideStatus.COMPLETED: {},
    RideStatus.CANCELLED: {},
}

TERMINAL_STATES = frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED})

CancelledBy = Literal["rider", "driver", "admin", "system"]
PaymentMethod = Literal["cash", "online", "upi"]


class PickupLocation(BaseModel):
    """Fixed booth/station pickup point."""

    booth_name: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class DropLocation(BaseModel):
    address: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Ride(BaseModel):
    """A single trip, owned by RideLifecycle while active."""

    ride_id: str
    rider_id: str
    driver_id: str | None = None
    booth_ride_number: str | None = None
    pickup: PickupLocation
    drop: DropLocation
    vehicle_class: str
    distance_km: float = Field(ge=0)
    quote: FareQuote
    final_quote: FareQuote | None = None
    status: RideStatus = Field(default=RideStatus.PENDING)
    start_code: str | None = None
    end_code: str | None = None
    created_at: datetime
    accepted_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: CancelledBy | None = None
    payment_method: PaymentMethod | None = None
    payment_collected_at: datetime | None = None
    # Optimistic concurrency token, maintained by the repository
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def settled_quote(self) -> FareQuote:
        """Final fare if the ride has ended, otherwise the booking quote."""
        return self.final_quote or self.quote
