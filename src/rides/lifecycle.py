"""Ride lifecycle controller.

RideLifecycle applies guarded transitions to a Ride and returns the event
that describes each one. It performs no I/O: loading, saving, archiving and
notifying are the caller's job (see rides.service). Every method validates
completely before touching the ride, so a failed call leaves it unchanged.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import get_args

from core.exceptions import (
    AlreadyTerminalError,
    ConfigurationError,
    InvalidInputError,
    InvalidTransitionError,
    OTPMismatchError,
    PaymentNotConfirmedError,
)
from events.factory import EventFactory
from events.schemas import RideLifecycleEvent
from fares.config import FareConfiguration
from fares.engine import quote as compute_quote
from fares.quote import FareQuote

from .codes import CodeVerifier, ExactMatchVerifier, generate_code_pair, mask_code
from .history import RideHistoryRecord, build_history_record
from .models import (
    TERMINAL_STATES,
    TRANSITIONS,
    CancelledBy,
    DropLocation,
    PaymentMethod,
    PickupLocation,
    Ride,
    RideEvent,
    RideStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a successful transition.

    history is set when the ride reached a terminal state and should be
    archived by the caller.
    """

    ride: Ride
    event: RideLifecycleEvent
    history: RideHistoryRecord | None = None


def guard_transition(ride: Ride, event: RideEvent) -> RideStatus:
    """Return the target state for event, or raise if it is not legal now."""
    if ride.status in TERMINAL_STATES:
        raise AlreadyTerminalError(ride.status.value, event.value, {"ride_id": ride.ride_id})

    target = TRANSITIONS[ride.status].get(event)
    if target is None:
        raise InvalidTransitionError(ride.status.value, event.value, {"ride_id": ride.ride_id})
    return target


class RideLifecycle:
    """Finite-state machine for a ride from booking to settlement."""

    def __init__(
        self,
        verifier: CodeVerifier | None = None,
        code_length: int = 4,
        clock: Callable[[], datetime] | None = None,
    ):
        self.verifier = verifier or ExactMatchVerifier()
        self.code_length = code_length
        self._clock = clock or (lambda: datetime.now(UTC))

    def _resolve_now(self, now: datetime | None) -> datetime:
        return now if now is not None else self._clock()

    def create(
        self,
        *,
        ride_id: str,
        rider_id: str,
        pickup: PickupLocation,
        drop: DropLocation,
        quote: FareQuote,
        booth_ride_number: str | None = None,
        now: datetime | None = None,
    ) -> TransitionResult:
        """Create a pending ride with the booking quote locked in."""
        if not isinstance(quote, FareQuote):
            raise InvalidInputError("A fare quote is required to create a ride")
        if not ride_id or not rider_id:
            raise InvalidInputError(
                "ride_id and rider_id are required",
                {"ride_id": ride_id, "rider_id": rider_id},
            )

        now = self._resolve_now(now)
        ride = Ride(
            ride_id=ride_id,
            rider_id=rider_id,
            booth_ride_number=booth_ride_number,
            pickup=pickup,
            drop=drop,
            vehicle_class=quote.vehicle_class,
            distance_km=quote.distance_km,
            quote=quote,
            status=RideStatus.PENDING,
            created_at=now,
        )
        logger.info(
            f"Ride {ride_id} created at {pickup.booth_name} "
            f"({quote.vehicle_class}, {quote.distance_km:.2f} km, total {quote.customer_total})"
        )
        event = EventFactory.create_for_ride(
            "ride.requested",
            ride,
            now,
            vehicle_class=ride.vehicle_class,
            booth_name=pickup.booth_name,
            customer_total=quote.customer_total,
        )
        return TransitionResult(ride=ride, event=event)

    def assign_driver(
        self, ride: Ride, driver_id: str, now: datetime | None = None
    ) -> TransitionResult:
        """Assign a driver and fix the ride's start and end codes."""
        target = guard_transition(ride, RideEvent.ASSIGN_DRIVER)
        if not driver_id:
            raise InvalidInputError("driver_id is required", {"ride_id": ride.ride_id})

        now = self._resolve_now(now)
        start_code, end_code = generate_code_pair(self.code_length)

        ride.driver_id = driver_id
        ride.start_code = start_code
        ride.end_code = end_code
        ride.accepted_at = now
        ride.status = target

        logger.info(f"Ride {ride.ride_id} assigned to driver {driver_id}")
        event = EventFactory.create_for_ride(
            "ride.driver_assigned",
            ride,
            now,
            driver_payout=ride.quote.driver_base,
        )
        return TransitionResult(ride=ride, event=event)

    def verify_start(
        self, ride: Ride, code: str | None, now: datetime | None = None
    ) -> TransitionResult:
        """Start the trip once the driver enters the rider's start code."""
        target = guard_transition(ride, RideEvent.VERIFY_START)
        self._check_code(ride, code, ride.start_code, "start")

        now = self._resolve_now(now)
        ride.started_at = now
        ride.status = target

        logger.info(f"Ride {ride.ride_id} started")
        event = EventFactory.create_for_ride("ride.started", ride, now)
        return TransitionResult(ride=ride, event=event)

    def verify_end(
        self,
        ride: Ride,
        code: str | None,
        now: datetime | None = None,
        config: FareConfiguration | None = None,
        corrected_distance_km: float | None = None,
        waiting_minutes: float | None = None,
    ) -> TransitionResult:
        """End the trip on the rider's end code and fix the final fare.

        The booking quote is reused unless a corrected distance or waiting
        time is supplied. A correction is re-quoted against config using the
        booking time and surge choice of the original quote, so only the
        corrected inputs change the fare.
        """
        target = guard_transition(ride, RideEvent.VERIFY_END)
        self._check_code(ride, code, ride.end_code, "end")

        if corrected_distance_km is None and waiting_minutes is None:
            final_quote = ride.quote
        else:
            if config is None:
                raise ConfigurationError(
                    "Fare configuration is required to re-quote a corrected ride",
                    {"ride_id": ride.ride_id},
                )
            final_quote = compute_quote(
                config,
                ride.vehicle_class,
                corrected_distance_km
                if corrected_distance_km is not None
                else ride.quote.distance_km,
                waiting_minutes if waiting_minutes is not None else ride.quote.waiting_minutes,
                ride.quote.quoted_at,
                ride.quote.surge_applied,
            )

        now = self._resolve_now(now)
        ride.final_quote = final_quote
        ride.distance_km = final_quote.distance_km
        ride.ended_at = now
        ride.status = target

        revised = final_quote is not ride.quote
        if revised:
            logger.info(
                f"Ride {ride.ride_id} ended with revised fare "
                f"{ride.quote.customer_total} -> {final_quote.customer_total}"
            )
        else:
            logger.info(f"Ride {ride.ride_id} ended")

        event = EventFactory.create_for_ride(
            "ride.ended",
            ride,
            now,
            fare_revised=revised,
            customer_total=final_quote.customer_total,
            driver_payout=final_quote.driver_base,
        )
        return TransitionResult(ride=ride, event=event)

    def confirm_settlement(
        self,
        ride: Ride,
        payment_confirmed: bool,
        payment_method: PaymentMethod = "cash",
        now: datetime | None = None,
    ) -> TransitionResult:
        """Complete the ride once payment has been collected."""
        target = guard_transition(ride, RideEvent.CONFIRM_SETTLEMENT)
        if not payment_confirmed:
            raise PaymentNotConfirmedError(
                "Payment has not been confirmed as collected", {"ride_id": ride.ride_id}
            )
        if payment_method not in get_args(PaymentMethod):
            raise InvalidInputError(
                f"Unknown payment method: {payment_method}", {"ride_id": ride.ride_id}
            )

        now = self._resolve_now(now)
        ride.payment_method = payment_method
        ride.payment_collected_at = now
        ride.completed_at = now
        ride.status = target

        history = build_history_record(ride, now)
        logger.info(
            f"Ride {ride.ride_id} completed: customer paid {history.settlement.customer_total} "
            f"({payment_method}), driver payout {history.settlement.driver_payout}"
        )
        event = EventFactory.create_for_ride(
            "ride.completed",
            ride,
            now,
            payment_method=payment_method,
            customer_total=history.settlement.customer_total,
            driver_payout=history.settlement.driver_payout,
        )
        return TransitionResult(ride=ride, event=event, history=history)

    def cancel(
        self,
        ride: Ride,
        reason: str,
        cancelled_by: CancelledBy = "rider",
        now: datetime | None = None,
    ) -> TransitionResult:
        """Cancel a ride that has not started yet."""
        target = guard_transition(ride, RideEvent.CANCEL)
        if cancelled_by not in get_args(CancelledBy):
            raise InvalidInputError(
                f"Unknown cancelling party: {cancelled_by}", {"ride_id": ride.ride_id}
            )

        now = self._resolve_now(now)
        previous_status = ride.status
        ride.cancelled_at = now
        ride.cancellation_reason = reason
        ride.cancelled_by = cancelled_by
        ride.status = target

        history = build_history_record(ride, now)
        logger.info(
            f"Ride {ride.ride_id} cancelled by {cancelled_by} "
            f"from {previous_status.value}: {reason}"
        )
        event = EventFactory.create_for_ride(
            "ride.cancelled",
            ride,
            now,
            reason=reason,
            cancelled_by=cancelled_by,
            previous_status=previous_status.value,
        )
        return TransitionResult(ride=ride, event=event, history=history)

    def _check_code(
        self, ride: Ride, supplied: str | None, expected: str | None, stage: str
    ) -> None:
        if self.verifier.verify(supplied, expected):
            return
        logger.warning(
            f"Ride {ride.ride_id} {stage} verification failed "
            f"(supplied {mask_code(supplied)}, status {ride.status.value})"
        )
        raise OTPMismatchError(
            f"Incorrect {stage} code", {"ride_id": ride.ride_id, "stage": stage}
        )
