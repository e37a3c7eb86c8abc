"""Database persistence module."""

from .database import init_database
from .schema import FareConfigRecord, RideHistoryEntry, RideRecord, ServiceMetadata
from .transaction import transaction

__all__ = [
    "init_database",
    "FareConfigRecord",
    "RideHistoryEntry",
    "RideRecord",
    "ServiceMetadata",
    "transaction",
]
