from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

RideEventType = Literal[
    "ride.requested",
    "ride.driver_assigned",
    "ride.started",
    "ride.ended",
    "ride.completed",
    "ride.cancelled",
]


class CorrelationMixin(BaseModel):
    """Mixin adding tracing fields to events."""

    correlation_id: str | None = Field(
        default=None, description="Primary correlation ID (the ride_id)"
    )
    causation_id: str | None = Field(default=None, description="ID of event that caused this one")


class RideLifecycleEvent(CorrelationMixin):
    """Event for ride state transitions.

    Consumed by notification sinks (socket broadcast, SMS, push). The payload
    never carries verification codes; sinks that must deliver codes to the
    rider read them from the ride itself.
    """

    event_id: UUID = Field(default_factory=uuid4)
    event_type: RideEventType
    ride_id: str
    timestamp: str
    rider_id: str
    driver_id: str | None = None
    status: str
    payload: dict[str, Any] = Field(default_factory=dict)
