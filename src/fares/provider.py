"""Fare configuration providers.

The fare engine never caches configuration itself. Callers hold a provider
and pass the snapshot it returns into each quote.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from core.exceptions import ConfigurationError

from .config import FareConfiguration

logger = logging.getLogger(__name__)


class FareConfigSource(Protocol):
    def get_active_fare_configuration(self) -> FareConfiguration: ...


class StaticFareConfigProvider:
    """Serves a fixed configuration snapshot."""

    def __init__(self, config: FareConfiguration | None):
        self._config = config

    def get_active_fare_configuration(self) -> FareConfiguration:
        if self._config is None:
            raise ConfigurationError("No active fare configuration available")
        return self._config


class CachedFareConfigProvider:
    """Caches the active configuration from a source for ttl_seconds.

    Cache state lives on the instance (cached_config, expires_at), so two
    providers never share a cache and tests can inspect or reset it.
    """

    def __init__(
        self,
        source: FareConfigSource,
        ttl_seconds: float = 300.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.cached_config: FareConfiguration | None = None
        self.expires_at: datetime | None = None
        self._clock = clock or (lambda: datetime.now(UTC))

    def get_active_fare_configuration(self) -> FareConfiguration:
        now = self._clock()
        if (
            self.cached_config is not None
            and self.expires_at is not None
            and now < self.expires_at
        ):
            return self.cached_config

        config = self.source.get_active_fare_configuration()
        if self.cached_config is None or self.cached_config.version != config.version:
            logger.info("Loaded fare configuration v%d", config.version)
        self.cached_config = config
        self.expires_at = now + timedelta(seconds=self.ttl_seconds)
        return config

    def invalidate(self) -> None:
        """Drop the cached snapshot, e.g. right after publishing a new version."""
        self.cached_config = None
        self.expires_at = None
