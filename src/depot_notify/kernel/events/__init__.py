"""Kernel events: log records and typed bus payloads."""

from depot_notify.kernel.events.domain_event import (
    AggregateType,
    DomainEvent,
    DomainEventType,
    NewDomainEvent,
)
from depot_notify.kernel.events.payloads import (
    PAYLOAD_TYPES,
    BasePayload,
    BookingApproved,
    BookingModified,
    BookingProposalAccepted,
    BookingProposalCreated,
    BookingProposalRejected,
    BookingRejected,
    BookingRequested,
    EntityType,
    EventPayload,
    EventType,
    InvoiceGenerated,
    InvoiceOverdue,
    InvoicePaid,
    TeamMemberInvited,
    TeamMemberJoined,
    WarehouseOccupancyUpdated,
    parse_payload,
)

__all__ = [
    "PAYLOAD_TYPES",
    "AggregateType",
    "BasePayload",
    "BookingApproved",
    "BookingModified",
    "BookingProposalAccepted",
    "BookingProposalCreated",
    "BookingProposalRejected",
    "BookingRejected",
    "BookingRequested",
    "DomainEvent",
    "DomainEventType",
    "EntityType",
    "EventPayload",
    "EventType",
    "InvoiceGenerated",
    "InvoiceOverdue",
    "InvoicePaid",
    "NewDomainEvent",
    "TeamMemberInvited",
    "TeamMemberJoined",
    "WarehouseOccupancyUpdated",
    "parse_payload",
]
