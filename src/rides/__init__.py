"""Ride state machine, verification codes, archiving and the ride service."""

from .analytics import DriverAnalytics, RiderAnalytics
from .booth_queue import BoothQueueStatus, QueueTicket
from .history import JourneyStats, RideHistoryRecord, SettlementRecord, build_history_record
from .lifecycle import RideLifecycle, TransitionResult, guard_transition
from .models import (
    TERMINAL_STATES,
    TRANSITIONS,
    DropLocation,
    PickupLocation,
    Ride,
    RideEvent,
    RideStatus,
)
from .service import RideService

__all__ = [
    "TERMINAL_STATES",
    "TRANSITIONS",
    "BoothQueueStatus",
    "DriverAnalytics",
    "DropLocation",
    "JourneyStats",
    "PickupLocation",
    "QueueTicket",
    "Ride",
    "RideEvent",
    "RideHistoryRecord",
    "RideLifecycle",
    "RideService",
    "RiderAnalytics",
    "RideStatus",
    "SettlementRecord",
    "TransitionResult",
    "build_history_record",
    "guard_transition",
]
