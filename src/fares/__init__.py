"""Fare configuration, quoting and demand pricing."""

from .config import (
    DemandBand,
    FareConfiguration,
    NightSurchargeWindow,
    SurgeWindow,
    VehicleClass,
    VehicleRates,
    default_fare_configuration,
)
from .engine import (
    compute_distance,
    current_surge_multiplier,
    demand_multiplier,
    estimate_all,
    is_night_surcharge_active,
    quote,
)
from .quote import FareEstimate, FareQuote

__all__ = [
    "DemandBand",
    "FareConfiguration",
    "FareEstimate",
    "FareQuote",
    "NightSurchargeWindow",
    "SurgeWindow",
    "VehicleClass",
    "VehicleRates",
    "compute_distance",
    "current_surge_multiplier",
    "default_fare_configuration",
    "demand_multiplier",
    "estimate_all",
    "is_night_surcharge_active",
    "quote",
]
