"""Immutable archive records for terminal rides."""

import math
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from fares.quote import FareQuote

from .models import (
    CancelledBy,
    DropLocation,
    PaymentMethod,
    PickupLocation,
    Ride,
    RideStatus,
)


def _minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes, halves rounded up."""
    return math.floor((end - start).total_seconds() / 60 + 0.5)


class JourneyStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_duration_min: int = 0
    waiting_time_min: int = 0
    ride_duration_min: int = 0
    average_speed_kmh: float = 0.0

    @classmethod
    def from_ride(cls, ride: Ride, finished_at: datetime) -> "JourneyStats":
        """Durations from booking to finish, booking to start, and start to end."""
        total = _minutes_between(ride.created_at, finished_at)
        waiting = _minutes_between(ride.created_at, ride.started_at) if ride.started_at else 0

        ride_duration = 0
        speed = 0.0
        if ride.started_at and ride.ended_at:
            ride_duration = _minutes_between(ride.started_at, ride.ended_at)
            if ride_duration > 0:
                distance = ride.settled_quote.distance_km
                speed = round(distance / (ride_duration / 60), 2)

        return cls(
            total_duration_min=total,
            waiting_time_min=waiting,
            ride_duration_min=ride_duration,
            average_speed_kmh=speed,
        )


class SettlementRecord(BaseModel):
    """Money movement for a completed ride."""

    model_config = ConfigDict(frozen=True)

    driver_payout: int
    commission: int
    tax: int
    night_surcharge: int
    customer_total: int
    payment_method: PaymentMethod
    collected_at: datetime

    @classmethod
    def from_quote(
        cls, quote: FareQuote, payment_method: PaymentMethod, collected_at: datetime
    ) -> "SettlementRecord":
        return cls(
            driver_payout=quote.driver_base,
            commission=quote.commission,
            tax=quote.tax,
            night_surcharge=quote.night_surcharge,
            customer_total=quote.customer_total,
            payment_method=payment_method,
            collected_at=collected_at,
        )


class RideHistoryRecord(BaseModel):
    """Frozen copy of a ride after it reached completed or cancelled."""

    model_config = ConfigDict(frozen=True)

    ride_id: str
    rider_id: str
    driver_id: str | None
    booth_ride_number: str | None
    pickup: PickupLocation
    drop: DropLocation
    vehicle_class: str
    distance_km: float
    quote: FareQuote
    final_quote: FareQuote | None
    final_status: Literal["completed", "cancelled"]
    created_at: datetime
    accepted_at: datetime | None
    started_at: datetime | None
    ended_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    cancelled_by: CancelledBy | None
    settlement: SettlementRecord | None
    journey: JourneyStats
    archived_at: datetime


def build_history_record(ride: Ride, archived_at: datetime) -> RideHistoryRecord:
    """Snapshot a terminal ride. Verification codes are not carried over."""
    if not ride.is_terminal:
        raise ValueError(f"Only terminal rides can be archived, ride is '{ride.status.value}'")

    settlement = None
    if ride.status == RideStatus.COMPLETED:
        settlement = SettlementRecord.from_quote(
            ride.settled_quote,
            ride.payment_method or "cash",
            ride.payment_collected_at or archived_at,
        )

    finished_at = ride.completed_at or ride.cancelled_at or archived_at

    return RideHistoryRecord(
        ride_id=ride.ride_id,
        rider_id=ride.rider_id,
        driver_id=ride.driver_id,
        booth_ride_number=ride.booth_ride_number,
        pickup=ride.pickup,
        drop=ride.drop,
        vehicle_class=ride.vehicle_class,
        distance_km=ride.settled_quote.distance_km,
        quote=ride.quote,
        final_quote=ride.final_quote,
        final_status=ride.status.value,
        created_at=ride.created_at,
        accepted_at=ride.accepted_at,
        started_at=ride.started_at,
        ended_at=ride.ended_at,
        completed_at=ride.completed_at,
        cancelled_at=ride.cancelled_at,
        cancellation_reason=ride.cancellation_reason,
        cancelled_by=ride.cancelled_by,
        settlement=settlement,
        journey=JourneyStats.from_ride(ride, finished_at),
        archived_at=archived_at,
    )
