"""Repository layer for database CRUD operations."""

from .booth_queue_repository import BoothQueueRepository
from .fare_config_repository import FareConfigRepository
from .ride_repository import RideRepository

__all__ = [
    "BoothQueueRepository",
    "FareConfigRepository",
    "RideRepository",
]
