from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FareSettings(BaseSettings):
    config_cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="How long the active fare configuration is cached before reloading",
    )
    apply_surge: bool = Field(
        default=True,
        description="Apply time-of-day surge to customer pricing on new bookings",
    )
    timezone: str = Field(
        default="Asia/Kolkata",
        description="Local timezone used to evaluate surge and night surcharge windows",
    )

    model_config = SettingsConfigDict(env_prefix="FARE_")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class LifecycleSettings(BaseSettings):
    code_length: int = Field(
        default=4,
        ge=4,
        le=6,
        description="Number of digits in ride start/end verification codes",
    )
    pending_timeout_minutes: int = Field(
        default=30,
        ge=1,
        description="Pending rides without a driver after this long are cancelled by the system",
    )
    assigned_timeout_minutes: int = Field(
        default=15,
        ge=1,
        description="Assigned rides not started after this long are cancelled by the system",
    )

    model_config = SettingsConfigDict(env_prefix="RIDE_")


class LoggingSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class DatabaseSettings(BaseSettings):
    url: str = "sqlite:///data/rides.db"

    model_config = SettingsConfigDict(env_prefix="DB_")


class RedisSettings(BaseSettings):
    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""
    channel: str = "ride-events"

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    @model_validator(mode="after")
    def validate_credentials_provided(self) -> "RedisSettings":
        if self.enabled and not self.password:
            raise ValueError("Required credential not provided: REDIS_PASSWORD")
        return self


class Settings(BaseSettings):
    fare: FareSettings = Field(default_factory=FareSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables."""
    return Settings()
