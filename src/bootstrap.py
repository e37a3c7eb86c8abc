"""Service wiring from settings.

Builds a RideService backed by the SQL repositories, the cached fare
configuration provider and the configured notification sinks. The HTTP or
socket layer that calls the service lives outside this package.
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from core.exceptions import ConfigurationError
from db.database import init_database
from db.repositories import BoothQueueRepository, FareConfigRepository, RideRepository
from fares.config import default_fare_configuration
from fares.demand import DriverDirectory
from fares.provider import CachedFareConfigProvider
from notifications.dispatch import LoggingSink, NotificationDispatch
from rides.lifecycle import RideLifecycle
from rides.service import RideService
from ride_logging import setup_logging
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_dispatcher(settings: Settings) -> NotificationDispatch:
    """Notification fan-out with the sinks enabled in settings."""
    dispatcher = NotificationDispatch([LoggingSink(logging.DEBUG)])
    if settings.redis.enabled:
        from notifications.redis_sink import RedisEventSink

        redis_config = {
            "host": settings.redis.host,
            "port": settings.redis.port,
            "db": settings.redis.db,
            "password": settings.redis.password,
            "channel": settings.redis.channel,
        }
        dispatcher.register(RedisEventSink(redis_config))
        logger.info(
            "Redis notifications enabled (%s:%d, channel=%s)",
            settings.redis.host,
            settings.redis.port,
            settings.redis.channel,
        )
    return dispatcher


def ensure_fare_configuration(session: Session) -> None:
    """Publish the default fare configuration if none has been published yet."""
    repo = FareConfigRepository(session)
    try:
        repo.get_active()
    except ConfigurationError:
        published = repo.publish(default_fare_configuration(), published_by="system")
        logger.warning("No fare configuration found, published defaults as v%d", published.version)


def build_ride_service(
    session: Session,
    settings: Settings | None = None,
    directory: DriverDirectory | None = None,
    dispatcher: NotificationDispatch | None = None,
) -> RideService:
    """Assemble a RideService bound to one database session."""
    settings = settings or get_settings()
    tz = ZoneInfo(settings.fare.timezone)

    def clock() -> datetime:
        return datetime.now(tz)

    config_provider = CachedFareConfigProvider(
        FareConfigRepository(session),
        ttl_seconds=settings.fare.config_cache_ttl_seconds,
        clock=clock,
    )
    lifecycle = RideLifecycle(code_length=settings.lifecycle.code_length, clock=clock)

    return RideService(
        config_provider=config_provider,
        repository=RideRepository(session),
        dispatcher=dispatcher or create_dispatcher(settings),
        lifecycle=lifecycle,
        directory=directory,
        booth_queue=BoothQueueRepository(session),
        clock=clock,
        apply_surge=settings.fare.apply_surge,
        pending_timeout=timedelta(minutes=settings.lifecycle.pending_timeout_minutes),
        assigned_timeout=timedelta(minutes=settings.lifecycle.assigned_timeout_minutes),
    )


def init_service_context(settings: Settings | None = None) -> "sessionmaker[Any]":
    """Configure logging, open the database and seed fare configuration."""
    settings = settings or get_settings()
    setup_logging(
        level=settings.logging.level,
        json_output=settings.logging.format == "json",
        environment=settings.logging.environment,
    )
    session_maker = init_database(settings.database.url)
    with session_maker() as session:
        ensure_fare_configuration(session)
    logger.info(
        "Ride service initialized (database=%s)",
        make_url(settings.database.url).render_as_string(hide_password=True),
    )
    return session_maker
