"""
Domain Events — Observer Pattern (GoF)

State transitions in the services publish events here; consumers (logging,
alert delivery) subscribe without the publisher knowing about them. Handler
failures are logged and never propagate back into the publishing transaction.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ShiftStartedEvent(DomainEvent):
    shift_record_id: int
    machine_id: int
    operator_id: int
    shift_type: str
    shift_date: str


@dataclass
class ShiftRolledOverEvent(DomainEvent):
    machine_id: int
    operator_id: int
    archived_shift_id: int
    new_shift_id: int
    from_shift_type: str
    to_shift_type: str


@dataclass
class ShiftArchivedEvent(DomainEvent):
    shift_record_id: int
    machine_id: int
    operator_id: int
    total_production: int
    archive_checksum: str


@dataclass
class ProductionRecordedEvent(DomainEvent):
    shift_record_id: int
    machine_id: int
    operator_id: int
    units: int
    total_production: int


@dataclass
class QualityGateBreachedEvent(DomainEvent):
    machine_id: int
    config_id: int
    reasons: List[str]
    production_count: int
    alert_type: str
    measured_value: float
    threshold: float


@dataclass
class ProductionAlertRaisedEvent(DomainEvent):
    alert_id: int
    machine_id: int
    config_id: int
    severity: str
    production_count: int
    alert_type: str
    measured_value: float
    threshold: float
    target_roles: List[str]
    messages: Dict[str, str]


@dataclass
class ProductionAlertClosedEvent(DomainEvent):
    alert_id: int
    machine_id: int
    config_id: int
    resolution: str
    resolved_by: Optional[int] = None


Handler = Callable[[DomainEvent], None]


class EventBus:
    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event: DomainEvent) -> None:
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception:  # noqa: BLE001
                    logger.exception(
                        "event_handler_failed",
                        extra={"event": event.name, "handler": getattr(handler, "__name__", repr(handler))},
                    )


class LoggingHandler:
    def __call__(self, event: DomainEvent) -> None:
        logger.info("domain_event %s", event.name, extra={"event": event.name, "payload": event.to_dict()})


_event_bus = EventBus()


def get_event_bus() -> EventBus:
    return _event_bus


def configure_event_bus(alert_delivery_handler: Optional[Handler] = None) -> EventBus:
    """Register the default consumers. Safe to call more than once."""
    bus = get_event_bus()
    bus.clear()
    bus.subscribe(DomainEvent, LoggingHandler())
    if alert_delivery_handler is not None:
        bus.subscribe(ProductionAlertRaisedEvent, alert_delivery_handler)
    return bus
