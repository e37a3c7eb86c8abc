"""Fare computation.

Every function here is a pure function of its arguments and a supplied
FareConfiguration snapshot. Nothing is cached or persisted; the caller is
responsible for loading the active configuration (see fares.provider).
"""

import logging
import math
from datetime import datetime

from core.exceptions import ConfigurationError, InvalidInputError
from geo.distance import GeoPoint, point_distance_km

from .config import FareConfiguration, VehicleClass
from .quote import FareEstimate, FareQuote

logger = logging.getLogger(__name__)


def round_currency(amount: float) -> int:
    """Round half-up to the nearest whole currency unit."""
    return math.floor(amount + 0.5)


def compute_distance(point_a: GeoPoint, point_b: GeoPoint) -> float:
    """Great-circle distance in kilometers."""
    return point_distance_km(point_a, point_b)


def hour_in_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """Check whether hour falls in [start_hour, end_hour).

    Windows with start_hour > end_hour wrap past midnight (22 -> 5 covers
    22:00 to 04:59). A window with start_hour == end_hour is empty.
    """
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return False


def current_surge_multiplier(config: FareConfiguration, now: datetime) -> float:
    """Factor of the first active surge window containing now's hour.

    Windows are evaluated in declaration order. Overlapping windows are not
    rejected; the earlier declaration wins.
    """
    for window in config.surge_windows:
        if window.is_active and hour_in_window(now.hour, window.start_hour, window.end_hour):
            return window.factor
    return 1.0


def is_night_surcharge_active(config: FareConfiguration, now: datetime) -> bool:
    night = config.night_surcharge
    if not night.is_active or night.percentage <= 0:
        return False
    return hour_in_window(now.hour, night.start_hour, night.end_hour)


def demand_multiplier(
    config: FareConfiguration,
    online_driver_count: int,
    active_request_count: int,
) -> float:
    """Demand factor from the requests-per-available-driver ratio.

    With zero online drivers and pending requests, the no_drivers band is
    used if one is configured; otherwise the ratio is treated as unbounded.
    With no drivers and no requests the ratio is 0.
    """
    if online_driver_count < 0 or active_request_count < 0:
        raise InvalidInputError(
            "Driver and request counts must be non-negative",
            {
                "online_driver_count": online_driver_count,
                "active_request_count": active_request_count,
            },
        )

    if online_driver_count == 0:
        if active_request_count > 0:
            for band in config.demand_bands:
                if band.no_drivers:
                    return band.factor
            ratio = math.inf
        else:
            ratio = 0.0
    else:
        ratio = active_request_count / online_driver_count

    for band in config.demand_bands:
        if band.no_drivers:
            continue
        if ratio < band.min_ratio:
            continue
        if band.max_ratio is None or ratio < band.max_ratio:
            return band.factor
    return 1.0


def _validate_non_negative(name: str, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise InvalidInputError(f"{name} must be a non-negative number", {name: value})


def quote(
    config: FareConfiguration | None,
    vehicle_class: "str | VehicleClass",
    distance_km: float,
    waiting_minutes: float,
    now: datetime,
    apply_surge: bool,
) -> FareQuote:
    """Compute a fare quote.

    The driver base (driver payout) is fixed from distance, vehicle rates and
    waiting time only. Surge inflates the customer-facing amount; commission
    is always taken on the un-surged driver base, tax on the surged amount
    plus commission, and the night surcharge on everything before it.
    """
    if config is None:
        raise ConfigurationError("No active fare configuration available")

    vehicle_key = vehicle_class.value if isinstance(vehicle_class, VehicleClass) else vehicle_class
    rates = config.rates_for(vehicle_key)
    if rates is None:
        raise ConfigurationError(
            f"Unknown vehicle class: {vehicle_key}",
            {"vehicle_class": vehicle_key, "config_version": config.version},
        )

    _validate_non_negative("distance_km", distance_km)
    _validate_non_negative("waiting_minutes", waiting_minutes)

    base_amount = rates.base_fare
    if distance_km > rates.included_km:
        distance_amount = (distance_km - rates.included_km) * rates.per_km_rate
    else:
        distance_amount = 0.0
    waiting_amount = waiting_minutes * rates.waiting_rate_per_min

    driver_base = round_currency(
        max(base_amount + distance_amount + waiting_amount, rates.minimum_fare)
    )
    commission = round_currency(driver_base * config.commission_percent / 100)

    if apply_surge:
        surge_factor = current_surge_multiplier(config, now)
        surged_amount = round_currency(driver_base * surge_factor)
    else:
        surge_factor = 1.0
        surged_amount = driver_base

    tax = round_currency((surged_amount + commission) * config.tax_percent / 100)

    if is_night_surcharge_active(config, now):
        night_surcharge = round_currency(
            (surged_amount + commission + tax) * config.night_surcharge.percentage / 100
        )
    else:
        night_surcharge = 0

    customer_total = surged_amount + commission + tax + night_surcharge

    return FareQuote(
        vehicle_class=vehicle_key,
        distance_km=distance_km,
        waiting_minutes=waiting_minutes,
        base_amount=base_amount,
        distance_amount=round(distance_amount, 2),
        waiting_amount=round(waiting_amount, 2),
        minimum_fare=rates.minimum_fare,
        driver_base=driver_base,
        surge_applied=apply_surge,
        surge_factor=surge_factor,
        surged_amount=surged_amount,
        commission=commission,
        tax=tax,
        night_surcharge=night_surcharge,
        customer_total=customer_total,
        config_version=config.version,
        quoted_at=now,
    )


def estimate_all(
    config: FareConfiguration | None,
    pickup: GeoPoint,
    drop: GeoPoint,
    now: datetime,
    apply_surge: bool = True,
) -> FareEstimate:
    """Quote every configured vehicle class for a pickup/drop pair."""
    if config is None:
        raise ConfigurationError("No active fare configuration available")

    distance_km = round(compute_distance(pickup, drop), 2)
    estimates = {
        vehicle_class: quote(config, vehicle_class, distance_km, 0, now, apply_surge)
        for vehicle_class in config.vehicle_rates
    }
    logger.debug(
        "Estimated %d vehicle classes for %.2f km (config v%d)",
        len(estimates),
        distance_km,
        config.version,
    )
    return FareEstimate(
        distance_km=distance_km,
        surge_factor=current_surge_multiplier(config, now) if apply_surge else 1.0,
        estimates=estimates,
        quoted_at=now,
    )
