"""Ride repository with optimistic concurrency and archiving."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from core.exceptions import (
    ConcurrentModificationError,
    InvalidInputError,
    NotFoundError,
)
from rides.history import RideHistoryRecord
from rides.models import Ride, RideStatus

from ..schema import RideHistoryEntry, RideRecord
from ..transaction import transaction
from .booth_queue_repository import BoothQueueRepository

logger = logging.getLogger(__name__)

_JSON_EXCLUDE = {"version"}


class RideRepository:
    """Persistence for live rides and their archived history.

    Every ride row carries a version column. save_ride and save_and_archive
    only succeed when the ride being saved was loaded at the version currently
    stored, which serializes transitions per ride: of two concurrent writers
    that loaded the same version, the second one fails with
    ConcurrentModificationError.
    """

    def __init__(self, session: Session):
        self.session = session
        self.booth_queue = BoothQueueRepository(session)

    def load_ride(self, ride_id: str) -> Ride:
        """Get live ride by ID, raising NotFoundError if absent."""
        record = self.session.get(RideRecord, ride_id)
        if record is None:
            raise NotFoundError(f"Ride {ride_id} not found", {"ride_id": ride_id})
        return self._to_domain(record)

    def create_ride(self, ride: Ride) -> None:
        """Insert a newly booked ride."""
        if self.session.get(RideRecord, ride.ride_id) is not None:
            raise InvalidInputError(
                f"Ride {ride.ride_id} already exists", {"ride_id": ride.ride_id}
            )

        record = RideRecord(ride_id=ride.ride_id)
        self._apply(record, ride)
        with transaction(self.session, f"create ride {ride.ride_id}"):
            self.session.add(record)
        ride.version = record.version

    def save_ride(self, ride: Ride) -> None:
        """Persist a transition, enforcing the version check.

        The ride's booth queue slot follows its status in the same commit:
        a driver assignment queues the ride and a started trip marks its
        slot in progress.
        """
        record = self._checked_record(ride)

        try:
            with transaction(self.session, f"save ride {ride.ride_id}"):
                self._apply(record, ride)
                self._sync_booth_queue(ride)
        except StaleDataError as e:
            raise self._conflict(ride) from e

        ride.version = record.version

    def save_and_archive(self, ride: Ride, history: RideHistoryRecord) -> None:
        """Move a terminal ride into history in one commit.

        The version check, the history insert, the queue slot removal and the
        live-row delete succeed or fail together. On failure the live row keeps
        its previous status, so the transition can be retried.
        """
        if not ride.is_terminal:
            raise InvalidInputError(
                f"Ride {ride.ride_id} is '{ride.status.value}', only terminal rides are archived",
                {"ride_id": ride.ride_id},
            )
        record = self._checked_record(ride)

        settlement = history.settlement
        entry = RideHistoryEntry(
            ride_id=history.ride_id,
            rider_id=history.rider_id,
            driver_id=history.driver_id,
            final_status=history.final_status,
            customer_total=settlement.customer_total if settlement else None,
            driver_payout=settlement.driver_payout if settlement else None,
            record_json=history.model_dump_json(),
            archived_at=history.archived_at,
        )
        try:
            with transaction(self.session, f"archive ride {ride.ride_id}"):
                self.session.merge(entry)
                self.booth_queue.remove(ride.ride_id)
                self.session.delete(record)
        except StaleDataError as e:
            raise self._conflict(ride) from e

        logger.debug(f"Ride {ride.ride_id} archived as {history.final_status}")

    def list_by_status(self, status: RideStatus) -> list[Ride]:
        """List live rides in a given status, oldest first."""
        stmt = (
            select(RideRecord)
            .where(RideRecord.status == status.value)
            .order_by(RideRecord.created_at)
        )
        result = self.session.execute(stmt)
        return [self._to_domain(r) for r in result.scalars().all()]

    def list_by_driver(self, driver_id: str) -> list[Ride]:
        stmt = select(RideRecord).where(RideRecord.driver_id == driver_id)
        result = self.session.execute(stmt)
        return [self._to_domain(r) for r in result.scalars().all()]

    def get_history(self, ride_id: str) -> RideHistoryRecord:
        entry = self.session.get(RideHistoryEntry, ride_id)
        if entry is None:
            raise NotFoundError(f"No history for ride {ride_id}", {"ride_id": ride_id})
        return RideHistoryRecord.model_validate_json(entry.record_json)

    def list_history_by_driver(self, driver_id: str) -> list[RideHistoryRecord]:
        """Archived rides for a driver, most recent first."""
        return self._list_history(RideHistoryEntry.driver_id == driver_id)

    def list_history_by_rider(self, rider_id: str) -> list[RideHistoryRecord]:
        return self._list_history(RideHistoryEntry.rider_id == rider_id)

    def _list_history(self, condition) -> list[RideHistoryRecord]:
        stmt = (
            select(RideHistoryEntry)
            .where(condition)
            .order_by(RideHistoryEntry.archived_at.desc())
        )
        result = self.session.execute(stmt)
        return [
            RideHistoryRecord.model_validate_json(e.record_json) for e in result.scalars().all()
        ]

    def _checked_record(self, ride: Ride) -> RideRecord:
        record = self.session.get(RideRecord, ride.ride_id)
        if record is None:
            raise NotFoundError(f"Ride {ride.ride_id} not found", {"ride_id": ride.ride_id})
        if record.version != ride.version:
            raise ConcurrentModificationError(
                f"Ride {ride.ride_id} was modified concurrently",
                {"ride_id": ride.ride_id, "expected": ride.version, "stored": record.version},
            )
        return record

    def _conflict(self, ride: Ride) -> ConcurrentModificationError:
        return ConcurrentModificationError(
            f"Ride {ride.ride_id} was modified concurrently",
            {"ride_id": ride.ride_id, "expected": ride.version},
        )

    def _sync_booth_queue(self, ride: Ride) -> None:
        if ride.status == RideStatus.DRIVER_ASSIGNED:
            assigned_at = ride.accepted_at or ride.created_at
            self.booth_queue.add(
                ride.ride_id, ride.pickup.booth_name, assigned_at.date(), assigned_at
            )
        elif ride.status == RideStatus.RIDE_STARTED:
            self.booth_queue.mark_in_progress(ride.ride_id)

    def _apply(self, record: RideRecord, ride: Ride) -> None:
        record.rider_id = ride.rider_id
        record.driver_id = ride.driver_id
        record.status = ride.status.value
        record.vehicle_class = ride.vehicle_class
        record.pickup_booth = ride.pickup.booth_name
        record.distance_km = ride.distance_km
        record.customer_total = ride.settled_quote.customer_total
        record.ride_json = ride.model_dump_json(exclude=_JSON_EXCLUDE)
        record.created_at = ride.created_at

    def _to_domain(self, record: RideRecord) -> Ride:
        """Convert ORM model to domain model."""
        ride = Ride.model_validate_json(record.ride_json)
        ride.version = record.version
        return ride
