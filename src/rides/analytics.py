"""Rider and driver statistics aggregated from archived rides."""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .history import RideHistoryRecord
from .models import Ride


class LongestRide(BaseModel):
    model_config = ConfigDict(frozen=True)

    ride_id: str
    distance_km: float
    fare: int
    completed_at: datetime | None


class StationUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    booth_name: str
    rides: int


class RiderAnalytics(BaseModel):
    model_config = ConfigDict(frozen=True)

    rider_id: str
    total_rides: int = 0
    completed_rides: int = 0
    cancelled_rides: int = 0
    total_spent: int = 0
    last_ride_at: datetime | None = None
    longest_ride: LongestRide | None = None
    favorite_vehicle_class: str | None = None
    preferred_stations: list[StationUsage] = []


class DriverAnalytics(BaseModel):
    model_config = ConfigDict(frozen=True)

    driver_id: str
    completed_rides: int = 0
    cancelled_rides: int = 0
    total_earnings: int = 0
    average_ride_duration_min: float = 0.0
    average_distance_km: float = 0.0
    active_ride_ids: list[str] = []


def _newest_first(history: Iterable[RideHistoryRecord]) -> list[RideHistoryRecord]:
    return sorted(history, key=lambda r: r.created_at, reverse=True)


def summarize_rider(rider_id: str, history: Iterable[RideHistoryRecord]) -> RiderAnalytics:
    """Totals for one rider. Spend and the longest ride count completed rides only.

    Ties for favorite vehicle class and preferred station go to the one used
    most recently.
    """
    records = [r for r in _newest_first(history) if r.rider_id == rider_id]
    completed = [r for r in records if r.final_status == "completed" and r.settlement]
    if not records:
        return RiderAnalytics(rider_id=rider_id)

    longest = max(completed, key=lambda r: r.distance_km, default=None)
    vehicle_counts = Counter(r.vehicle_class for r in records)
    station_counts = Counter(r.pickup.booth_name for r in records)

    return RiderAnalytics(
        rider_id=rider_id,
        total_rides=len(records),
        completed_rides=len(completed),
        cancelled_rides=sum(1 for r in records if r.final_status == "cancelled"),
        total_spent=sum(r.settlement.customer_total for r in completed),
        last_ride_at=max((r.completed_at for r in completed if r.completed_at), default=None),
        longest_ride=(
            LongestRide(
                ride_id=longest.ride_id,
                distance_km=longest.distance_km,
                fare=longest.settlement.customer_total,
                completed_at=longest.completed_at,
            )
            if longest
            else None
        ),
        favorite_vehicle_class=vehicle_counts.most_common(1)[0][0],
        preferred_stations=[
            StationUsage(booth_name=name, rides=n) for name, n in station_counts.most_common()
        ],
    )


def summarize_driver(
    driver_id: str,
    history: Iterable[RideHistoryRecord],
    live_rides: Iterable[Ride] = (),
) -> DriverAnalytics:
    """Earnings and trip averages for one driver.

    Averages cover completed rides; a ride cancelled before pickup has no
    duration or distance driven.
    """
    records = [r for r in history if r.driver_id == driver_id]
    completed = [r for r in records if r.final_status == "completed" and r.settlement]
    active = [r.ride_id for r in live_rides if r.driver_id == driver_id and not r.is_terminal]

    average_duration = 0.0
    average_distance = 0.0
    if completed:
        average_duration = round(
            sum(r.journey.ride_duration_min for r in completed) / len(completed), 2
        )
        average_distance = round(sum(r.distance_km for r in completed) / len(completed), 2)

    return DriverAnalytics(
        driver_id=driver_id,
        completed_rides=len(completed),
        cancelled_rides=sum(1 for r in records if r.final_status == "cancelled"),
        total_earnings=sum(r.settlement.driver_payout for r in completed),
        average_ride_duration_min=average_duration,
        average_distance_km=average_distance,
        active_ride_ids=active,
    )
