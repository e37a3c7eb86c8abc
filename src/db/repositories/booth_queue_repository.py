"""Booth counters and the per-booth ride queue."""

import logging
from datetime import date, datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from rides.booth_queue import (
    BoothQueueStatus,
    QueueStatus,
    QueueTicket,
    booth_code,
    format_queue_number,
)
from rides.ids import booth_ride_number

from ..schema import BoothDailyCounter, BoothQueueEntry
from ..transaction import transaction

logger = logging.getLogger(__name__)


def _queued_at(booth_name: str, day: date) -> tuple:
    return (BoothQueueEntry.booth_name == booth_name, BoothQueueEntry.day == day.isoformat())


class BoothQueueRepository:
    """Daily counters and queue entries for pickup booths.

    allocate_ride_number commits on its own. add, mark_in_progress and
    remove only stage changes on the session: RideRepository calls them
    inside the transaction that saves the ride, so a ride's queue slot
    changes together with its status.
    """

    def __init__(self, session: Session):
        self.session = session

    def allocate_ride_number(self, booth_name: str, day: date) -> str:
        """Next booth ride number for the day, e.g. RAJIV-CHOWK-2024-05-01-003."""
        with transaction(self.session, f"allocate ride number at {booth_name}"):
            sequence = self._increment(booth_name, day, BoothDailyCounter.ride_count)
        return booth_ride_number(booth_name, day, sequence)

    def add(self, ride_id: str, booth_name: str, day: date, assigned_at: datetime) -> QueueTicket:
        """Give ride_id the next queue slot at its booth. Adding twice is a no-op."""
        existing = self.session.get(BoothQueueEntry, ride_id)
        if existing is not None:
            return self._to_ticket(existing)

        position = self._increment(booth_name, day, BoothDailyCounter.queue_count)
        entry = BoothQueueEntry(
            ride_id=ride_id,
            booth_name=booth_name,
            day=day.isoformat(),
            queue_number=format_queue_number(booth_name, day, position),
            queue_position=position,
            status=QueueStatus.QUEUED.value,
            assigned_at=assigned_at,
        )
        self.session.add(entry)
        self.session.flush()
        logger.info(f"Ride {ride_id} queued at {booth_name} as {entry.queue_number}")
        return self._to_ticket(entry)

    def mark_in_progress(self, ride_id: str) -> bool:
        entry = self.session.get(BoothQueueEntry, ride_id)
        if entry is None:
            return False
        entry.status = QueueStatus.IN_PROGRESS.value
        self.session.execute(
            update(BoothDailyCounter)
            .where(
                BoothDailyCounter.booth_name == entry.booth_name,
                BoothDailyCounter.day == entry.day,
            )
            .values(currently_serving=entry.queue_position)
        )
        return True

    def remove(self, ride_id: str) -> bool:
        result = self.session.execute(
            delete(BoothQueueEntry).where(BoothQueueEntry.ride_id == ride_id)
        )
        return result.rowcount > 0

    def get_ticket(self, ride_id: str) -> QueueTicket:
        entry = self.session.get(BoothQueueEntry, ride_id)
        if entry is None:
            raise NotFoundError(f"Ride {ride_id} is not queued", {"ride_id": ride_id})
        return self._to_ticket(entry)

    def list_queue(self, booth_name: str, day: date) -> list[QueueTicket]:
        """Rides still queued or in progress at a booth, in queue order."""
        stmt = (
            select(BoothQueueEntry)
            .where(*_queued_at(booth_name, day))
            .order_by(BoothQueueEntry.queue_position)
        )
        return [self._to_ticket(e) for e in self.session.execute(stmt).scalars().all()]

    def queue_status(self, booth_name: str, day: date) -> BoothQueueStatus:
        counter = self.session.get(BoothDailyCounter, (booth_name, day.isoformat()))
        if counter is None:
            return BoothQueueStatus(
                booth_name=booth_name, booth_code=booth_code(booth_name), day=day
            )

        stmt = (
            select(BoothQueueEntry.status, func.count())
            .where(*_queued_at(booth_name, day))
            .group_by(BoothQueueEntry.status)
        )
        counts = {status: n for status, n in self.session.execute(stmt).all()}
        return BoothQueueStatus(
            booth_name=booth_name,
            booth_code=booth_code(booth_name),
            day=day,
            total_today=counter.queue_count,
            currently_serving=counter.currently_serving,
            queued_count=counts.get(QueueStatus.QUEUED.value, 0),
            in_progress_count=counts.get(QueueStatus.IN_PROGRESS.value, 0),
            next_queue_position=counter.queue_count + 1,
        )

    def _increment(self, booth_name: str, day: date, column) -> int:
        """Atomically bump one counter column and return its new value."""
        key = (booth_name, day.isoformat())
        if self.session.get(BoothDailyCounter, key) is None:
            self.session.add(BoothDailyCounter(booth_name=booth_name, day=day.isoformat()))
            self.session.flush()

        where = (BoothDailyCounter.booth_name == booth_name, BoothDailyCounter.day == key[1])
        self.session.execute(
            update(BoothDailyCounter)
            .where(*where)
            .values({column.key: column + 1})
        )
        return self.session.execute(select(column).where(*where)).scalar_one()

    def _to_ticket(self, entry: BoothQueueEntry) -> QueueTicket:
        return QueueTicket(
            ride_id=entry.ride_id,
            booth_name=entry.booth_name,
            day=date.fromisoformat(entry.day),
            queue_number=entry.queue_number,
            queue_position=entry.queue_position,
            status=QueueStatus(entry.status),
            assigned_at=entry.assigned_at,
        )
