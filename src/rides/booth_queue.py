"""Pickup booth queue models.

A ride joins its booth's queue once a driver accepts it, moves to
in_progress when the trip starts, and leaves the queue when it is archived.
Queue positions restart at 1 every day.
"""

import re
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

MINUTES_PER_QUEUED_RIDE = 3

# Short codes for the metro booths the service launched with. Checked in
# order, so longer names come before their prefixes.
_BOOTH_CODES: tuple[tuple[str, str], ...] = (
    ("kashmere gate", "KASH"),
    ("kashmere", "KASH"),
    ("rajiv chowk", "RAJV"),
    ("rajiv", "RAJV"),
    ("connaught place", "CP"),
    ("new delhi", "NDLS"),
    ("central secretariat", "CSEC"),
    ("hauz khas", "HAUZ"),
    ("dwarka sector 21", "DWRK"),
    ("dwarka", "DWRK"),
    ("noida city centre", "NOID"),
    ("noida", "NOID"),
    ("chandni chowk", "CCHK"),
    ("indira gandhi international airport", "IGIA"),
    ("airport", "AIRP"),
    ("anand vihar", "ANVH"),
    ("sarai kale khan", "SSKH"),
)


class QueueStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"


def booth_code(booth_name: str) -> str:
    """Short booth code, e.g. 'Rajiv Chowk' -> 'RAJV'.

    Unknown booths fall back to the first four letters of the name.
    """
    name = " ".join(booth_name.lower().split())
    for key, code in _BOOTH_CODES:
        if name == key:
            return code
    for key, code in _BOOTH_CODES:
        if key in name or (name and name in key):
            return code
    return re.sub(r"[^A-Z]", "", booth_name.upper())[:4] or "UNKN"


def format_queue_number(booth_name: str, day: date, position: int) -> str:
    """Queue token shown to the rider, e.g. RAJV-20240501-Q007."""
    return f"{booth_code(booth_name)}-{day.strftime('%Y%m%d')}-Q{position:03d}"


class QueueTicket(BaseModel):
    model_config = ConfigDict(frozen=True)

    ride_id: str
    booth_name: str
    day: date
    queue_number: str
    queue_position: int
    status: QueueStatus
    assigned_at: datetime


class BoothQueueStatus(BaseModel):
    """Snapshot of one booth's queue for one day."""

    model_config = ConfigDict(frozen=True)

    booth_name: str
    booth_code: str
    day: date
    total_today: int = 0
    currently_serving: int = 0
    queued_count: int = 0
    in_progress_count: int = 0
    next_queue_position: int = 1

    @property
    def estimated_wait_min(self) -> int:
        return self.queued_count * MINUTES_PER_QUEUED_RIDE
