"""Station-level demand pricing against the driver directory."""

import logging
from typing import Protocol

from .config import FareConfiguration
from .engine import demand_multiplier

logger = logging.getLogger(__name__)


class DriverDirectory(Protocol):
    """Read-only counts of drivers and requests at a booth/station."""

    def count_online_drivers(self, vehicle_class: str, station: str) -> int: ...

    def count_active_requests(self, station: str) -> int: ...


def station_demand_multiplier(
    config: FareConfiguration,
    directory: DriverDirectory,
    vehicle_class: str,
    station: str,
) -> float:
    """Demand factor for a vehicle class at a station."""
    online = directory.count_online_drivers(vehicle_class, station)
    active = directory.count_active_requests(station)
    factor = demand_multiplier(config, online, active)
    logger.debug(
        "Demand at %s for %s: %d requests / %d drivers -> %.2f",
        station,
        vehicle_class,
        active,
        online,
        factor,
    )
    return factor
