"""Standardized exception hierarchy for the ride service."""

from typing import Any


class RideServiceError(Exception):
    """Base exception for all ride service errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(RideServiceError):
    """Errors that may succeed on retry."""

    pass


class PersistenceError(TransientError):
    """Database or state persistence failed."""

    pass


class ConcurrentModificationError(TransientError):
    """Another transition was saved for the same ride first.

    The caller should reload the ride and decide whether to retry.
    """

    pass


class NotificationDeliveryError(TransientError):
    """A notification sink could not reach its transport."""

    pass


class PermanentError(RideServiceError):
    """Errors that will not succeed on retry."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid fare configuration."""

    pass


class InvalidInputError(PermanentError):
    """Invalid caller input (fix and resubmit)."""

    pass


class PaymentNotConfirmedError(InvalidInputError):
    """Settlement attempted before payment was collected."""

    pass


class NotFoundError(PermanentError):
    """Requested ride does not exist."""

    pass


class StateError(PermanentError):
    """Ride state machine violation."""

    pass


class InvalidTransitionError(StateError):
    """Event is not legal from the ride's current state."""

    def __init__(self, current_state: str, event: str, details: dict[str, Any] | None = None):
        super().__init__(
            f"Cannot perform '{event}' while ride is '{current_state}'",
            {"current_state": current_state, "event": event, **(details or {})},
        )
        self.current_state = current_state
        self.event = event


class AlreadyTerminalError(StateError):
    """Ride is completed or cancelled; no further transitions are legal."""

    def __init__(self, current_state: str, event: str, details: dict[str, Any] | None = None):
        super().__init__(
            f"Ride is already '{current_state}', cannot perform '{event}'",
            {"current_state": current_state, "event": event, **(details or {})},
        )
        self.current_state = current_state
        self.event = event


class OTPMismatchError(StateError):
    """Supplied verification code does not match the ride's code."""

    pass
