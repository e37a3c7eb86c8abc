"""Ride lifecycle event schemas."""

from .factory import EventFactory
from .schemas import RideEventType, RideLifecycleEvent

__all__ = ["EventFactory", "RideEventType", "RideLifecycleEvent"]
