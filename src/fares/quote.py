"""Fare quote models."""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FareQuote(BaseModel):
    """Immutable fare breakdown locked onto a ride at booking time.

    driver_base is the driver payout: base + distance + waiting, floored at
    the minimum fare. It never includes surge, commission, tax or night
    surcharge.
    """

    model_config = ConfigDict(frozen=True)

    vehicle_class: str
    distance_km: float = Field(ge=0)
    waiting_minutes: float = Field(default=0.0, ge=0)
    base_amount: float = Field(ge=0)
    distance_amount: float = Field(ge=0)
    waiting_amount: float = Field(ge=0)
    minimum_fare: float = Field(ge=0)
    driver_base: int = Field(ge=0)
    surge_applied: bool
    surge_factor: float = Field(ge=1.0)
    surged_amount: int = Field(ge=0)
    commission: int = Field(ge=0)
    tax: int = Field(ge=0)
    night_surcharge: int = Field(ge=0)
    customer_total: int = Field(ge=0)
    config_version: int
    quoted_at: datetime

    @model_validator(mode="after")
    def validate_total(self) -> Self:
        expected = self.surged_amount + self.commission + self.tax + self.night_surcharge
        if self.customer_total != expected:
            raise ValueError(
                f"customer_total {self.customer_total} does not match "
                f"surged amount + commission + tax + night surcharge ({expected})"
            )
        return self

    @property
    def surge_amount(self) -> int:
        """Customer-facing uplift from surge pricing."""
        return self.surged_amount - self.driver_base


class FareEstimate(BaseModel):
    """Quotes for every configured vehicle class over one pickup/drop pair."""

    model_config = ConfigDict(frozen=True)

    distance_km: float
    surge_factor: float
    estimates: dict[str, FareQuote]
    quoted_at: datetime
