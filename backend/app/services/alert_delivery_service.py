"""
Alert delivery — consumer of ``ProductionAlertRaisedEvent``

Fans each raised alert out to every configured notification channel, once per
target role. Channels are pluggable (push, e-mail, sockets live outside this
service); a failing channel is logged and skipped, the alert itself is already
committed.
"""
import logging
from typing import List, Optional, Protocol, Sequence

from app.utils.events import ProductionAlertRaisedEvent

logger = logging.getLogger(__name__)


class NotificationChannel(Protocol):
    name: str

    def send(self, role: str, message: str, event: ProductionAlertRaisedEvent) -> None:
        ...


class LoggingNotificationChannel:
    name = "log"

    def send(self, role: str, message: str, event: ProductionAlertRaisedEvent) -> None:
        logger.info(
            "alert_notification",
            extra={"alert_id": event.alert_id, "machine_id": event.machine_id, "role": role, "text": message},
        )


class InMemoryNotificationChannel:
    """Keeps every delivery; handy for local runs and tests."""

    name = "memory"

    def __init__(self):
        self.sent: List[tuple] = []

    def send(self, role: str, message: str, event: ProductionAlertRaisedEvent) -> None:
        self.sent.append((event.alert_id, role, message))


class AlertDeliveryHandler:

    def __init__(self, channels: Optional[Sequence[NotificationChannel]] = None):
        self.channels = list(channels) if channels is not None else [LoggingNotificationChannel()]

    def __call__(self, event: ProductionAlertRaisedEvent) -> int:
        delivered = 0
        for role in event.target_roles:
            message = event.messages.get(role)
            if not message:
                continue
            for channel in self.channels:
                try:
                    channel.send(role, message, event)
                    delivered += 1
                except Exception:  # noqa: BLE001
                    logger.exception(
                        "alert_delivery_failed",
                        extra={
                            "alert_id": event.alert_id,
                            "role": role,
                            "channel": getattr(channel, "name", type(channel).__name__),
                        },
                    )
        return delivered
