"""Bounded retry with exponential backoff for transient failures.

Only the notification transport retries. Ride transitions never do: a lost
version check surfaces to the caller as ConcurrentModificationError.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import TransientError

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 30.0
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (TransientError,)
    )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based failed attempt."""
        return min(self.base_delay * self.multiplier**attempt, self.max_delay)


def with_retry_sync(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run operation, retrying retryable exceptions up to config.max_attempts.

    The last exception is re-raised once attempts are exhausted; anything
    not listed in retryable_exceptions propagates immediately.
    """
    config = config or RetryConfig()
    attempt = 0
    while True:
        try:
            return operation()
        except config.retryable_exceptions as e:
            attempt += 1
            if attempt >= config.max_attempts:
                logger.error(f"{operation_name} gave up after {attempt} attempts: {e}")
                raise
            delay = config.delay_for(attempt - 1)
            logger.warning(
                f"{operation_name} attempt {attempt}/{config.max_attempts} failed, "
                f"retrying in {delay:.2f}s: {e}"
            )
            sleep(delay)
