"""Event factory for creating ride events with tracing fields."""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from core.correlation import get_current_correlation_id
from events.schemas import RideEventType, RideLifecycleEvent

if TYPE_CHECKING:
    from rides.models import Ride


class EventFactory:
    """Factory for creating ride events with tracing fields populated."""

    @staticmethod
    def create_for_ride(
        event_type: RideEventType,
        ride: "Ride",
        timestamp: datetime,
        *,
        causation_id: str | None = None,
        **payload: Any,
    ) -> RideLifecycleEvent:
        """Create a lifecycle event for a ride.

        Uses the bound correlation ID if one is set, otherwise the ride_id.

        Args:
            event_type: The ride event type
            ride: The ride after the transition has been applied
            timestamp: Transition time
            causation_id: ID of event that caused this one
            **payload: Event-specific fields for notification sinks

        Returns:
            Event instance with tracing fields populated
        """
        return RideLifecycleEvent(
            event_type=event_type,
            ride_id=ride.ride_id,
            timestamp=timestamp.isoformat(),
            rider_id=ride.rider_id,
            driver_id=ride.driver_id,
            status=ride.status.value,
            payload=payload,
            correlation_id=get_current_correlation_id() or ride.ride_id,
            causation_id=causation_id,
        )
