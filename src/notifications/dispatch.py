"""Fan-out of ride lifecycle events to notification sinks."""

import logging
from typing import Protocol

from opentelemetry import metrics

from events.schemas import RideLifecycleEvent

logger = logging.getLogger(__name__)

meter = metrics.get_meter("ride_service")

notification_failures = meter.create_counter(
    name="ride_notification_failures_total",
    description="Lifecycle events a notification sink failed to deliver",
    unit="1",
)


class NotificationSink(Protocol):
    """Delivers lifecycle events over one channel (socket, SMS, push...)."""

    name: str

    def send(self, event: RideLifecycleEvent) -> None: ...


class NotificationDispatch:
    """Forwards each event to every registered sink.

    Delivery is fire-and-forget: a failing sink is logged and counted in
    ride_notification_failures_total but never raises, so a committed state
    transition is never undone by a notification problem.
    """

    def __init__(self, sinks: list[NotificationSink] | None = None):
        self._sinks: list[NotificationSink] = list(sinks or [])

    def register(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    @property
    def sinks(self) -> list[NotificationSink]:
        return list(self._sinks)

    def dispatch(self, event: RideLifecycleEvent) -> int:
        """Send event to all sinks and return how many accepted it."""
        delivered = 0
        for sink in self._sinks:
            try:
                sink.send(event)
                delivered += 1
            except Exception as e:
                sink_name = getattr(sink, "name", type(sink).__name__)
                notification_failures.add(1, {"sink": sink_name, "event_type": event.event_type})
                logger.error(
                    f"Notification sink {sink_name} failed "
                    f"for {event.event_type} on ride {event.ride_id}: {e}"
                )
        return delivered


class LoggingSink:
    """Writes events to the log; useful in development and as an audit trail."""

    name = "log"

    def __init__(self, level: int = logging.INFO):
        self._level = level

    def send(self, event: RideLifecycleEvent) -> None:
        logger.log(
            self._level,
            f"RIDE-EVENT: {event.ride_id} | {event.event_type} | status={event.status}",
        )
