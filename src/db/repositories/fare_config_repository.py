"""Versioned fare configuration storage."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from core.exceptions import ConfigurationError, NotFoundError
from fares.config import FareConfiguration

from ..schema import FareConfigRecord
from ..transaction import transaction
from ..utils import utc_now

logger = logging.getLogger(__name__)


class FareConfigRepository:
    """Stores every published fare configuration; exactly one is active.

    Publishing never edits an existing row. It inserts the next version and
    flips the active flag in the same transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def publish(
        self, config: FareConfiguration, published_by: str | None = None
    ) -> FareConfiguration:
        """Publish config as the new active version and return it as stored."""
        with transaction(self.session, "publish fare configuration"):
            latest = self.session.execute(select(func.max(FareConfigRecord.version))).scalar()
            next_version = (latest or 0) + 1
            published = config.with_version(next_version, utc_now())

            self.session.execute(
                update(FareConfigRecord)
                .where(FareConfigRecord.is_active.is_(True))
                .values(is_active=False)
            )
            self.session.add(
                FareConfigRecord(
                    version=next_version,
                    is_active=True,
                    config_json=published.model_dump_json(),
                    published_by=published_by,
                )
            )

        logger.info(f"Published fare configuration v{next_version}")
        return published

    def get_active(self) -> FareConfiguration:
        stmt = (
            select(FareConfigRecord)
            .where(FareConfigRecord.is_active.is_(True))
            .order_by(FareConfigRecord.version.desc())
        )
        record = self.session.execute(stmt).scalars().first()
        if record is None:
            raise ConfigurationError("No active fare configuration available")
        return FareConfiguration.model_validate_json(record.config_json)

    def get_active_fare_configuration(self) -> FareConfiguration:
        """Config source interface for fares.provider.CachedFareConfigProvider."""
        return self.get_active()

    def get_version(self, version: int) -> FareConfiguration:
        record = self.session.get(FareConfigRecord, version)
        if record is None:
            raise NotFoundError(
                f"Fare configuration v{version} not found", {"version": version}
            )
        return FareConfiguration.model_validate_json(record.config_json)

    def list_versions(self) -> list[int]:
        stmt = select(FareConfigRecord.version).order_by(FareConfigRecord.version)
        return list(self.session.execute(stmt).scalars().all())

    def rollback_to(self, version: int, published_by: str | None = None) -> FareConfiguration:
        """Republish an earlier version's rates as the next version.

        History stays append-only: the old row is copied forward, never
        reactivated in place.
        """
        previous = self.get_version(version)
        restored = self.publish(
            previous.model_copy(update={"notes": f"Rollback to v{version}"}), published_by
        )
        logger.warning(f"Fare configuration rolled back to v{version} as v{restored.version}")
        return restored
