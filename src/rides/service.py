"""Ride application service.

Wires the pure fare engine and ride lifecycle to their collaborators. Each
operation follows the same order: load the ride, apply the transition in
memory, save it (version-checked, and archived in the same commit when
terminal), then notify. Notification runs last and cannot undo a saved
transition.
"""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from core.correlation import with_correlation
from core.exceptions import ConfigurationError, RideServiceError
from fares.config import VehicleClass
from fares.demand import DriverDirectory, station_demand_multiplier
from fares.engine import compute_distance, estimate_all
from fares.engine import quote as compute_quote
from fares.provider import FareConfigSource
from fares.quote import FareEstimate, FareQuote
from geo.distance import GeoPoint
from notifications.dispatch import NotificationDispatch

from .analytics import DriverAnalytics, RiderAnalytics, summarize_driver, summarize_rider
from .booth_queue import BoothQueueStatus, QueueTicket
from .history import RideHistoryRecord
from .ids import generate_ride_id
from .lifecycle import RideLifecycle, TransitionResult
from .models import CancelledBy, DropLocation, PaymentMethod, PickupLocation, Ride, RideStatus

logger = logging.getLogger(__name__)


class RideStore(Protocol):
    def load_ride(self, ride_id: str) -> Ride: ...

    def create_ride(self, ride: Ride) -> None: ...

    def save_ride(self, ride: Ride) -> None: ...

    def save_and_archive(self, ride: Ride, history: RideHistoryRecord) -> None: ...

    def list_by_status(self, status: RideStatus) -> list[Ride]: ...

    def list_by_driver(self, driver_id: str) -> list[Ride]: ...

    def list_history_by_driver(self, driver_id: str) -> list[RideHistoryRecord]: ...

    def list_history_by_rider(self, rider_id: str) -> list[RideHistoryRecord]: ...


class BoothQueueStore(Protocol):
    def allocate_ride_number(self, booth_name: str, day: date) -> str: ...

    def get_ticket(self, ride_id: str) -> QueueTicket: ...

    def list_queue(self, booth_name: str, day: date) -> list[QueueTicket]: ...

    def queue_status(self, booth_name: str, day: date) -> BoothQueueStatus: ...


class RideService:
    """Booking, estimation and lifecycle operations for rides."""

    def __init__(
        self,
        config_provider: FareConfigSource,
        repository: RideStore,
        dispatcher: NotificationDispatch,
        lifecycle: RideLifecycle | None = None,
        directory: DriverDirectory | None = None,
        booth_queue: BoothQueueStore | None = None,
        clock: Callable[[], datetime] | None = None,
        apply_surge: bool = True,
        pending_timeout: timedelta = timedelta(minutes=30),
        assigned_timeout: timedelta = timedelta(minutes=15),
    ):
        self.config_provider = config_provider
        self.repository = repository
        self.dispatcher = dispatcher
        self.directory = directory
        self.booth_queue = booth_queue
        self.apply_surge = apply_surge
        self.pending_timeout = pending_timeout
        self.assigned_timeout = assigned_timeout
        self._clock = clock or (lambda: datetime.now(UTC))
        self.lifecycle = lifecycle or RideLifecycle(clock=self._clock)

    # Fare estimation

    def estimate(self, pickup: GeoPoint, drop: GeoPoint) -> FareEstimate:
        """Fare estimates for every vehicle class."""
        config = self.config_provider.get_active_fare_configuration()
        return estimate_all(config, pickup, drop, self._clock(), self.apply_surge)

    def quote(
        self, vehicle_class: "str | VehicleClass", distance_km: float, waiting_minutes: float = 0
    ) -> FareQuote:
        config = self.config_provider.get_active_fare_configuration()
        return compute_quote(
            config, vehicle_class, distance_km, waiting_minutes, self._clock(), self.apply_surge
        )

    def demand_multiplier(self, vehicle_class: str, station: str) -> float:
        if self.directory is None:
            raise ConfigurationError("No driver directory configured for demand pricing")
        config = self.config_provider.get_active_fare_configuration()
        return station_demand_multiplier(config, self.directory, vehicle_class, station)

    # Lifecycle

    def book_ride(
        self,
        rider_id: str,
        pickup: PickupLocation,
        drop: DropLocation,
        vehicle_class: "str | VehicleClass",
        ride_id: str | None = None,
        booth_ride_number: str | None = None,
    ) -> Ride:
        """Quote and create a pending ride."""
        now = self._clock()
        ride_id = ride_id or generate_ride_id(now)
        with with_correlation(ride_id):
            distance_km = round(
                compute_distance(
                    GeoPoint(latitude=pickup.latitude, longitude=pickup.longitude),
                    GeoPoint(latitude=drop.latitude, longitude=drop.longitude),
                ),
                2,
            )
            config = self.config_provider.get_active_fare_configuration()
            fare = compute_quote(config, vehicle_class, distance_km, 0, now, self.apply_surge)
            if booth_ride_number is None and self.booth_queue is not None:
                booth_ride_number = self.booth_queue.allocate_ride_number(
                    pickup.booth_name, now.date()
                )

            result = self.lifecycle.create(
                ride_id=ride_id,
                rider_id=rider_id,
                pickup=pickup,
                drop=drop,
                quote=fare,
                booth_ride_number=booth_ride_number,
                now=now,
            )
            self.repository.create_ride(result.ride)
            self._notify(result)
            return result.ride

    def assign_driver(self, ride_id: str, driver_id: str) -> Ride:
        with with_correlation(ride_id):
            ride = self.repository.load_ride(ride_id)
            result = self.lifecycle.assign_driver(ride, driver_id, now=self._clock())
            return self._commit(result).ride

    def start_ride(self, ride_id: str, code: str) -> Ride:
        with with_correlation(ride_id):
            ride = self.repository.load_ride(ride_id)
            result = self.lifecycle.verify_start(ride, code, now=self._clock())
            return self._commit(result).ride

    def end_ride(
        self,
        ride_id: str,
        code: str,
        corrected_distance_km: float | None = None,
        waiting_minutes: float | None = None,
    ) -> Ride:
        with with_correlation(ride_id):
            ride = self.repository.load_ride(ride_id)
            config = None
            if corrected_distance_km is not None or waiting_minutes is not None:
                config = self.config_provider.get_active_fare_configuration()
            result = self.lifecycle.verify_end(
                ride,
                code,
                now=self._clock(),
                config=config,
                corrected_distance_km=corrected_distance_km,
                waiting_minutes=waiting_minutes,
            )
            return self._commit(result).ride

    def settle_ride(
        self, ride_id: str, payment_confirmed: bool, payment_method: PaymentMethod = "cash"
    ) -> RideHistoryRecord:
        """Complete an ended ride and archive it."""
        with with_correlation(ride_id):
            ride = self.repository.load_ride(ride_id)
            result = self.lifecycle.confirm_settlement(
                ride, payment_confirmed, payment_method, now=self._clock()
            )
            return self._commit(result).history

    def cancel_ride(
        self, ride_id: str, reason: str, cancelled_by: CancelledBy = "rider"
    ) -> RideHistoryRecord:
        with with_correlation(ride_id):
            ride = self.repository.load_ride(ride_id)
            result = self.lifecycle.cancel(ride, reason, cancelled_by, now=self._clock())
            return self._commit(result).history

    def expire_stale_rides(self, now: datetime | None = None) -> list[str]:
        """Cancel rides stuck waiting for a driver or for the trip to start.

        Meant to be called periodically by an external scheduler. Rides that
        fail to cancel (e.g. a driver acted concurrently) are logged and left
        for the next sweep.
        """
        now = now or self._clock()
        stale: list[tuple[Ride, str]] = []

        for ride in self.repository.list_by_status(RideStatus.PENDING):
            if now - ride.created_at > self.pending_timeout:
                stale.append((ride, "No driver found within time limit"))

        for ride in self.repository.list_by_status(RideStatus.DRIVER_ASSIGNED):
            accepted_at = ride.accepted_at or ride.created_at
            if now - accepted_at > self.assigned_timeout:
                stale.append((ride, "Driver did not start ride within time limit"))

        cancelled: list[str] = []
        for ride, reason in stale:
            with with_correlation(ride.ride_id):
                try:
                    result = self.lifecycle.cancel(ride, reason, "system", now=now)
                    self._commit(result)
                except RideServiceError as e:
                    logger.warning(f"Could not expire ride {ride.ride_id}: {e.message}")
                    continue
            cancelled.append(ride.ride_id)

        if cancelled:
            logger.info(f"Expired {len(cancelled)} stale rides")
        return cancelled

    # Booth queue

    def queue_ticket(self, ride_id: str) -> QueueTicket:
        return self._require_booth_queue().get_ticket(ride_id)

    def booth_queue_status(self, booth_name: str, day: date | None = None) -> BoothQueueStatus:
        return self._require_booth_queue().queue_status(booth_name, day or self._clock().date())

    def list_booth_queue(self, booth_name: str, day: date | None = None) -> list[QueueTicket]:
        """Rides queued or in progress at a booth, in queue order."""
        return self._require_booth_queue().list_queue(booth_name, day or self._clock().date())

    # Analytics

    def rider_analytics(self, rider_id: str) -> RiderAnalytics:
        return summarize_rider(rider_id, self.repository.list_history_by_rider(rider_id))

    def driver_analytics(self, driver_id: str) -> DriverAnalytics:
        return summarize_driver(
            driver_id,
            self.repository.list_history_by_driver(driver_id),
            self.repository.list_by_driver(driver_id),
        )

    def _require_booth_queue(self) -> BoothQueueStore:
        if self.booth_queue is None:
            raise ConfigurationError("No booth queue configured")
        return self.booth_queue

    def _commit(self, result: TransitionResult) -> TransitionResult:
        if result.history is not None:
            self.repository.save_and_archive(result.ride, result.history)
        else:
            self.repository.save_ride(result.ride)
        self._notify(result)
        return result

    def _notify(self, result: TransitionResult) -> None:
        delivered = self.dispatcher.dispatch(result.event)
        logger.debug(
            f"{result.event.event_type} for ride {result.ride.ride_id} "
            f"delivered to {delivered} sinks"
        )
