"""SQLAlchemy ORM models for ride persistence."""

from datetime import datetime

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .utils import utc_now


class Base(DeclarativeBase):
    pass


class RideRecord(Base):
    """Live ride. The full domain model is kept in ride_json; the other
    columns exist for querying."""

    __tablename__ = "rides"

    ride_id: Mapped[str] = mapped_column(String, primary_key=True)
    rider_id: Mapped[str] = mapped_column(String, nullable=False)
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    vehicle_class: Mapped[str] = mapped_column(String, nullable=False)
    pickup_booth: Mapped[str] = mapped_column(String, nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    customer_total: Mapped[int] = mapped_column(Integer, nullable=False)
    ride_json: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_ride_status", "status"),
        Index("idx_ride_driver", "driver_id"),
        Index("idx_ride_rider", "rider_id"),
        Index("idx_ride_booth_status", "pickup_booth", "status"),
    )


class RideHistoryEntry(Base):
    __tablename__ = "ride_history"

    ride_id: Mapped[str] = mapped_column(String, primary_key=True)
    rider_id: Mapped[str] = mapped_column(String, nullable=False)
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    final_status: Mapped[str] = mapped_column(String, nullable=False)
    customer_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    driver_payout: Mapped[int | None] = mapped_column(Integer, nullable=True)
    record_json: Mapped[str] = mapped_column(Text, nullable=False)
    archived_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())

    __table_args__ = (
        Index("idx_history_driver", "driver_id"),
        Index("idx_history_rider", "rider_id"),
    )


class FareConfigRecord(Base):
    __tablename__ = "fare_configs"

    version: Mapped[int] = mapped_column(Integer, primary_key=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    config_json: Mapped[str] = mapped_column(Text, nullable=False)
    published_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())

    __table_args__ = (Index("idx_fare_config_active", "is_active"),)


class BoothDailyCounter(Base):
    """Per-booth, per-day sequence counters for ride numbers and queue slots."""

    __tablename__ = "booth_daily_counters"

    booth_name: Mapped[str] = mapped_column(String, primary_key=True)
    day: Mapped[str] = mapped_column(String, primary_key=True)
    ride_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    queue_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currently_serving: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class BoothQueueEntry(Base):
    """A ride waiting at, or being served from, a pickup booth."""

    __tablename__ = "booth_queue"

    ride_id: Mapped[str] = mapped_column(String, primary_key=True)
    booth_name: Mapped[str] = mapped_column(String, nullable=False)
    day: Mapped[str] = mapped_column(String, nullable=False)
    queue_number: Mapped[str] = mapped_column(String, nullable=False)
    queue_position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="queued")
    assigned_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())

    __table_args__ = (Index("idx_booth_queue_booth_day", "booth_name", "day"),)


class ServiceMetadata(Base):
    __tablename__ = "service_metadata"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
