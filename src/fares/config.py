"""Versioned fare configuration models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VehicleClass(str, Enum):
    """Vehicle classes shipped in the default configuration."""

    BIKE = "bike"
    AUTO = "auto"
    CAR = "car"


class VehicleRates(BaseModel):
    """Per-vehicle-class pricing."""

    model_config = ConfigDict(frozen=True)

    base_fare: float = Field(ge=0)
    included_km: float = Field(default=0.0, ge=0, description="Distance covered by base fare")
    per_km_rate: float = Field(ge=0)
    minimum_fare: float = Field(ge=0)
    waiting_rate_per_min: float = Field(default=0.0, ge=0)


class SurgeWindow(BaseModel):
    """Time-of-day surge window, [start_hour, end_hour) in local hours."""

    model_config = ConfigDict(frozen=True)

    name: str
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=0, le=23)
    factor: float = Field(ge=1.0, le=3.0)
    is_active: bool = True


class DemandBand(BaseModel):
    """Requests-per-driver ratio band, [min_ratio, max_ratio).

    A band without max_ratio matches any ratio >= min_ratio. The no_drivers
    band applies only when there are requests but zero online drivers.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    min_ratio: float = Field(ge=0)
    max_ratio: float | None = Field(default=None, ge=0)
    factor: float = Field(ge=1.0, le=3.0)
    no_drivers: bool = False
    description: str | None = None


class NightSurchargeWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_hour: int = Field(default=23, ge=0, le=23)
    end_hour: int = Field(default=5, ge=0, le=23)
    percentage: float = Field(default=0.0, ge=0, le=100)
    is_active: bool = True


class FareConfiguration(BaseModel):
    """Immutable snapshot of all pricing rules.

    Edits never mutate a published configuration: they produce a new
    version through the config repository.
    """

    model_config = ConfigDict(frozen=True)

    version: int = Field(default=1, ge=1)
    vehicle_rates: dict[str, VehicleRates]
    surge_windows: list[SurgeWindow] = Field(default_factory=list)
    demand_bands: list[DemandBand] = Field(default_factory=list)
    night_surcharge: NightSurchargeWindow = Field(default_factory=NightSurchargeWindow)
    tax_percent: float = Field(default=0.0, ge=0, le=100)
    commission_percent: float = Field(default=0.0, ge=0, le=100)
    effective_from: datetime | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def validate_vehicle_rates(self) -> "FareConfiguration":
        if not self.vehicle_rates:
            raise ValueError("Fare configuration must define at least one vehicle class")
        return self

    def rates_for(self, vehicle_class: "str | VehicleClass") -> VehicleRates | None:
        key = vehicle_class.value if isinstance(vehicle_class, VehicleClass) else vehicle_class
        return self.vehicle_rates.get(key)

    def with_version(self, version: int, effective_from: datetime) -> "FareConfiguration":
        """Copy of this configuration stamped as a new published version."""
        return self.model_copy(update={"version": version, "effective_from": effective_from})


def default_fare_configuration() -> FareConfiguration:
    """Configuration used when no version has been published yet."""
    return FareConfiguration(
        vehicle_rates={
            VehicleClass.BIKE.value: VehicleRates(
                base_fare=30, included_km=2, per_km_rate=12, minimum_fare=30, waiting_rate_per_min=1
            ),
            VehicleClass.AUTO.value: VehicleRates(
                base_fare=40, included_km=2, per_km_rate=17, minimum_fare=40, waiting_rate_per_min=2
            ),
            VehicleClass.CAR.value: VehicleRates(
                base_fare=60, included_km=2, per_km_rate=25, minimum_fare=60, waiting_rate_per_min=3
            ),
        },
        surge_windows=[
            SurgeWindow(name="Morning Peak", start_hour=8, end_hour=10, factor=1.3),
            SurgeWindow(name="Evening Peak", start_hour=17, end_hour=20, factor=1.4),
            SurgeWindow(name="Night", start_hour=22, end_hour=5, factor=1.2),
        ],
        demand_bands=[
            DemandBand(
                name="No Drivers",
                min_ratio=0,
                max_ratio=0,
                factor=1.8,
                no_drivers=True,
                description="When no drivers are available",
            ),
            DemandBand(
                name="High Demand",
                min_ratio=3,
                max_ratio=None,
                factor=1.5,
                description="More than 3 requests per driver",
            ),
            DemandBand(
                name="Medium Demand",
                min_ratio=2,
                max_ratio=3,
                factor=1.3,
                description="2-3 requests per driver",
            ),
            DemandBand(
                name="Low Demand",
                min_ratio=1,
                max_ratio=2,
                factor=1.2,
                description="1-2 requests per driver",
            ),
            DemandBand(
                name="Normal",
                min_ratio=0,
                max_ratio=1,
                factor=1.0,
                description="Less than 1 request per driver",
            ),
        ],
        night_surcharge=NightSurchargeWindow(start_hour=23, end_hour=5, percentage=20),
        tax_percent=5,
        commission_percent=10,
    )
