"""Ride correlation for log lines and lifecycle events.

RideService binds the ride id for the duration of each operation. Log
records pick it up through CorrelationFilter and EventFactory stamps it on
every event, so one ride can be followed from booking to archive.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

NO_CORRELATION = "-"

current_correlation_id: ContextVar[str | None] = ContextVar("ride_correlation_id", default=None)


class CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = current_correlation_id.get() or NO_CORRELATION
        return True


def get_correlation_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-7s [ride=%(correlation_id)s] %(name)s: %(message)s"
    )


@contextmanager
def with_correlation(correlation_id: str) -> Iterator[None]:
    """Bind correlation_id until the block exits; nested blocks restore the outer id.

    Usage:
        with with_correlation(ride.ride_id):
            logger.info("Driver assigned")  # logged with [ride=<ride_id>]
    """
    token = current_correlation_id.set(correlation_id)
    try:
        yield
    finally:
        current_correlation_id.reset(token)


def get_current_correlation_id() -> str | None:
    return current_correlation_id.get()
