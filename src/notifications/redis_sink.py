import logging
from typing import Any

import redis
from opentelemetry import trace
from redis.exceptions import ConnectionError, TimeoutError

from core.exceptions import NotificationDeliveryError
from core.retry import RetryConfig, with_retry_sync
from events.schemas import RideLifecycleEvent

logger = logging.getLogger(__name__)

_tracer = trace.get_tracer(__name__)

DEFAULT_CHANNEL = "ride-events"


class RedisEventSink:
    """Publishes ride lifecycle events to a Redis pub/sub channel.

    Socket gateways subscribe to the channel and push events to rider,
    driver and admin clients.
    """

    name = "redis"

    def __init__(
        self,
        config: dict[str, Any],
        client: "redis.Redis | None" = None,
        retry_config: RetryConfig | None = None,
    ):
        self.config = config
        self.channel = config.get("channel", DEFAULT_CHANNEL)
        self._retry_config = retry_config or RetryConfig(max_attempts=3, base_delay=0.2)
        self._client = client or redis.Redis(
            host=config["host"],
            port=config["port"],
            db=config.get("db", 0),
            password=config.get("password") or None,
            decode_responses=True,
        )

    def send(self, event: RideLifecycleEvent) -> None:
        with _tracer.start_as_current_span("redis.publish") as span:
            span.set_attribute("db.system", "redis")
            span.set_attribute("db.redis.channel", self.channel)
            span.set_attribute("ride_id", event.ride_id)
            if event.correlation_id:
                span.set_attribute("correlation_id", event.correlation_id)

            message = event.model_dump_json()
            try:
                with_retry_sync(
                    lambda: self._publish(message),
                    self._retry_config,
                    operation_name=f"publish {event.event_type}",
                )
            except NotificationDeliveryError as e:
                span.record_exception(e)
                raise

    def _publish(self, message: str) -> None:
        try:
            self._client.publish(self.channel, message)
        except (ConnectionError, TimeoutError) as e:
            raise NotificationDeliveryError(
                f"Failed to publish to channel {self.channel}: {e}"
            ) from e

    def close(self) -> None:
        self._client.close()
