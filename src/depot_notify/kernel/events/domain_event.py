"""Domain events as recorded in the append-only event log."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any


class DomainEventType(str, Enum):
    """Closed set of business facts the event log records."""

    BOOKING_CREATED = "booking.created"
    BOOKING_CONFIRMED = "booking.confirmed"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_COMPLETED = "booking.completed"
    PAYMENT_RECEIVED = "payment.received"
    PAYMENT_REFUNDED = "payment.refunded"
    INVOICE_CREATED = "invoice.created"
    INVOICE_PAID = "invoice.paid"
    SHIPMENT_CREATED = "shipment.created"
    SHIPMENT_DISPATCHED = "shipment.dispatched"
    SHIPMENT_DELIVERED = "shipment.delivered"
    WAREHOUSE_CAPACITY_CHANGED = "warehouse.capacity_changed"
    COMPANY_CREATED = "company.created"
    USER_REGISTERED = "user.registered"


class AggregateType(str, Enum):
    """Business entities whose history the event log tracks."""

    BOOKING = "booking"
    PAYMENT = "payment"
    INVOICE = "invoice"
    SHIPMENT = "shipment"
    WAREHOUSE = "warehouse"
    COMPANY = "company"
    USER = "user"


@dataclasses.dataclass(frozen=True)
class NewDomainEvent:
    """An event as handed to :meth:`EventLog.append`, before id and timestamp."""

    type: DomainEventType
    aggregate_id: str
    aggregate_type: AggregateType
    version: int
    payload: dict[str, Any] = dataclasses.field(default_factory=dict)
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    correlation_id: str = ""
    causation_id: str | None = None


@dataclasses.dataclass(frozen=True)
class DomainEvent:
    """Immutable business fact.

    ``id`` and ``occurred_at`` are assigned by the event log at append time
    and nowhere else.
    """

    id: str
    type: DomainEventType
    aggregate_id: str
    aggregate_type: AggregateType
    version: int
    payload: dict[str, Any]
    metadata: dict[str, Any]
    occurred_at: datetime
    correlation_id: str
    causation_id: str | None = None

    @classmethod
    def stamp(cls, new: NewDomainEvent, *, event_id: str, occurred_at: datetime) -> "DomainEvent":
        return cls(
            id=event_id,
            type=new.type,
            aggregate_id=new.aggregate_id,
            aggregate_type=new.aggregate_type,
            version=new.version,
            payload=dict(new.payload),
            metadata=dict(new.metadata),
            occurred_at=occurred_at,
            correlation_id=new.correlation_id,
            causation_id=new.causation_id,
        )

    @property
    def event_type(self) -> str:
        return self.type.value


__all__ = ["AggregateType", "DomainEvent", "DomainEventType", "NewDomainEvent"]
