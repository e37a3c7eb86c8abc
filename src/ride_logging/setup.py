"""Root logger configuration for the ride service."""

import logging
import sys

from core.correlation import CorrelationFilter, get_correlation_formatter

from .filters import PIIFilter


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    environment: str = "development",
) -> None:
    """Configure root logger with appropriate formatting."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if json_output:
        handler.setFormatter(
            logging.Formatter(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"logger": "%(name)s", "message": "%(message)s", '
                '"correlation_id": "%(correlation_id)s", '
                '"service_name": "ride-service", '
                f'"environment": "{environment}"}}'
            )
        )
    else:
        handler.setFormatter(get_correlation_formatter())

    handler.addFilter(CorrelationFilter())
    handler.addFilter(PIIFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)
