"""Typed event payloads carried on the event bus.

Every bus event is one variant of :data:`EventPayload`. Each variant is a
frozen, keyword-only dataclass that pins its ``event_type`` and
``entity_type`` as class constants and names the field that identifies the
entity it describes. :data:`PAYLOAD_TYPES` maps every :class:`EventType`
to its variant; reaction handlers are registered against that table.

Wire form is camelCase (``bookingId``, ``warehouseOwnerId`` …) so payloads
round-trip through JSON columns and HTTP bodies unchanged::

    payload = parse_payload({
        "eventType": "booking.requested",
        "bookingId": "B1",
        "warehouseId": "W1",
        "warehouseOwnerId": "U1",
    })
    assert isinstance(payload, BookingRequested)
    assert payload.entity_id == "B1"
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Mapping

from depot_notify.kernel.errors import ValidationError


class EventType(str, Enum):
    """Events the bus routes to reaction handlers."""

    BOOKING_REQUESTED = "booking.requested"
    BOOKING_PROPOSAL_CREATED = "booking.proposal.created"
    BOOKING_PROPOSAL_ACCEPTED = "booking.proposal.accepted"
    BOOKING_PROPOSAL_REJECTED = "booking.proposal.rejected"
    BOOKING_APPROVED = "booking.approved"
    BOOKING_REJECTED = "booking.rejected"
    BOOKING_MODIFIED = "booking.modified"
    INVOICE_GENERATED = "invoice.generated"
    INVOICE_PAID = "invoice.paid"
    INVOICE_OVERDUE = "invoice.overdue"
    WAREHOUSE_OCCUPANCY_UPDATED = "warehouse.occupancy.updated"
    TEAM_MEMBER_INVITED = "team.member.invited"
    TEAM_MEMBER_JOINED = "team.member.joined"


class EntityType(str, Enum):
    BOOKING = "booking"
    PROPOSAL = "proposal"
    MODIFICATION = "modification"
    INVOICE = "invoice"
    WAREHOUSE = "warehouse"
    INVITATION = "invitation"
    TEAM_MEMBER = "team_member"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


@dataclasses.dataclass(frozen=True, kw_only=True)
class BasePayload:
    """Fields shared by every bus event."""

    event_type: ClassVar[EventType]
    entity_type: ClassVar[EntityType]
    entity_field: ClassVar[str]

    timestamp: str = dataclasses.field(default_factory=_now_iso)
    user_id: str | None = None
    company_id: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def entity_id(self) -> str:
        return str(getattr(self, self.entity_field))

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire form, including the routing keys."""
        data: dict[str, Any] = {
            "eventType": self.event_type.value,
            "entityType": self.entity_type.value,
            "entityId": self.entity_id,
        }
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = list(value)
            data[_camel(f.name)] = value
        return data


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingRequested(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_REQUESTED
    entity_type: ClassVar[EntityType] = EntityType.BOOKING
    entity_field: ClassVar[str] = "booking_id"

    booking_id: str
    warehouse_id: str
    warehouse_owner_id: str
    customer_id: str | None = None
    booking_type: str | None = None  # "pallet" | "area-rental"
    pallet_count: int | None = None
    area_sq_ft: float | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingProposalCreated(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_PROPOSAL_CREATED
    entity_type: ClassVar[EntityType] = EntityType.PROPOSAL
    entity_field: ClassVar[str] = "proposal_id"

    proposal_id: str
    booking_id: str
    customer_id: str
    warehouse_owner_id: str | None = None
    proposed_price: float | None = None
    expires_at: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingProposalAccepted(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_PROPOSAL_ACCEPTED
    entity_type: ClassVar[EntityType] = EntityType.PROPOSAL
    entity_field: ClassVar[str] = "proposal_id"

    proposal_id: str
    booking_id: str
    warehouse_owner_id: str
    customer_id: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingProposalRejected(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_PROPOSAL_REJECTED
    entity_type: ClassVar[EntityType] = EntityType.PROPOSAL
    entity_field: ClassVar[str] = "proposal_id"

    proposal_id: str
    booking_id: str
    warehouse_owner_id: str
    customer_id: str | None = None
    reason: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingApproved(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_APPROVED
    entity_type: ClassVar[EntityType] = EntityType.BOOKING
    entity_field: ClassVar[str] = "booking_id"

    booking_id: str
    customer_id: str
    warehouse_id: str | None = None
    warehouse_owner_id: str | None = None
    warehouse_staff_ids: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingRejected(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_REJECTED
    entity_type: ClassVar[EntityType] = EntityType.BOOKING
    entity_field: ClassVar[str] = "booking_id"

    booking_id: str
    customer_id: str
    warehouse_owner_id: str | None = None
    reason: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class BookingModified(BasePayload):
    event_type: ClassVar[EventType] = EventType.BOOKING_MODIFIED
    entity_type: ClassVar[EntityType] = EntityType.MODIFICATION
    entity_field: ClassVar[str] = "modification_id"

    modification_id: str
    booking_id: str
    warehouse_owner_id: str
    customer_id: str | None = None
    modification_type: str | None = None
    old_value: float | None = None
    new_value: float | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class InvoiceGenerated(BasePayload):
    event_type: ClassVar[EventType] = EventType.INVOICE_GENERATED
    entity_type: ClassVar[EntityType] = EntityType.INVOICE
    entity_field: ClassVar[str] = "invoice_id"

    invoice_id: str
    customer_id: str
    booking_id: str | None = None
    amount: float | None = None
    due_date: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class InvoicePaid(BasePayload):
    event_type: ClassVar[EventType] = EventType.INVOICE_PAID
    entity_type: ClassVar[EntityType] = EntityType.INVOICE
    entity_field: ClassVar[str] = "invoice_id"

    invoice_id: str
    customer_id: str
    booking_id: str | None = None
    amount: float | None = None
    paid_at: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class InvoiceOverdue(BasePayload):
    event_type: ClassVar[EventType] = EventType.INVOICE_OVERDUE
    entity_type: ClassVar[EntityType] = EntityType.INVOICE
    entity_field: ClassVar[str] = "invoice_id"

    invoice_id: str
    customer_id: str
    booking_id: str | None = None
    amount: float | None = None
    due_date: str | None = None
    days_overdue: int | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class WarehouseOccupancyUpdated(BasePayload):
    event_type: ClassVar[EventType] = EventType.WAREHOUSE_OCCUPANCY_UPDATED
    entity_type: ClassVar[EntityType] = EntityType.WAREHOUSE
    entity_field: ClassVar[str] = "warehouse_id"

    warehouse_id: str
    warehouse_owner_id: str
    occupancy_percent: float
    available_sq_ft: float | None = None
    occupied_sq_ft: float | None = None
    updated_by: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.occupancy_percent, bool) or not isinstance(
            self.occupancy_percent, (int, float)
        ):
            raise ValidationError(
                "occupancyPercent must be a number",
                errors=[{"field": "occupancyPercent", "error": "not_a_number"}],
            )


@dataclasses.dataclass(frozen=True, kw_only=True)
class TeamMemberInvited(BasePayload):
    event_type: ClassVar[EventType] = EventType.TEAM_MEMBER_INVITED
    entity_type: ClassVar[EntityType] = EntityType.INVITATION
    entity_field: ClassVar[str] = "invitation_id"

    invitation_id: str
    company_id: str
    invited_email: str
    invited_by: str
    role: str | None = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class TeamMemberJoined(BasePayload):
    event_type: ClassVar[EventType] = EventType.TEAM_MEMBER_JOINED
    entity_type: ClassVar[EntityType] = EntityType.TEAM_MEMBER
    entity_field: ClassVar[str] = "member_id"

    member_id: str
    company_id: str
    user_id: str
    role: str | None = None


type EventPayload = (
    BookingRequested
    | BookingProposalCreated
    | BookingProposalAccepted
    | BookingProposalRejected
    | BookingApproved
    | BookingRejected
    | BookingModified
    | InvoiceGenerated
    | InvoicePaid
    | InvoiceOverdue
    | WarehouseOccupancyUpdated
    | TeamMemberInvited
    | TeamMemberJoined
)

PAYLOAD_TYPES: dict[EventType, type[BasePayload]] = {
    cls.event_type: cls
    for cls in (
        BookingRequested,
        BookingProposalCreated,
        BookingProposalAccepted,
        BookingProposalRejected,
        BookingApproved,
        BookingRejected,
        BookingModified,
        InvoiceGenerated,
        InvoicePaid,
        InvoiceOverdue,
        WarehouseOccupancyUpdated,
        TeamMemberInvited,
        TeamMemberJoined,
    )
}


def parse_payload(data: Mapping[str, Any]) -> BasePayload:
    """Build the typed variant for a camelCase (or snake_case) mapping.

    Raises :class:`ValidationError` for an unknown ``eventType`` or when a
    required field is absent.
    """
    raw_type = data.get("eventType", data.get("event_type"))
    try:
        event_type = EventType(raw_type)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown event type {raw_type!r}",
            errors=[{"field": "eventType", "error": "unknown"}],
        ) from exc

    cls = PAYLOAD_TYPES[event_type]
    kwargs: dict[str, Any] = {}
    missing: list[str] = []
    for f in dataclasses.fields(cls):
        camel = _camel(f.name)
        if camel in data:
            kwargs[f.name] = data[camel]
        elif f.name in data:
            kwargs[f.name] = data[f.name]
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            missing.append(camel)

    if missing:
        raise ValidationError(
            f"Payload for '{event_type.value}' is missing required fields: {', '.join(missing)}",
            errors=[{"field": name, "error": "required"} for name in missing],
        )
    if "warehouse_staff_ids" in kwargs:
        kwargs["warehouse_staff_ids"] = tuple(kwargs["warehouse_staff_ids"] or ())
    if kwargs.get("metadata") is None:
        kwargs.pop("metadata", None)
    return cls(**kwargs)


__all__ = [
    "PAYLOAD_TYPES",
    "BasePayload",
    "BookingApproved",
    "BookingModified",
    "BookingProposalAccepted",
    "BookingProposalCreated",
    "BookingProposalRejected",
    "BookingRejected",
    "BookingRequested",
    "EntityType",
    "EventPayload",
    "EventType",
    "InvoiceGenerated",
    "InvoiceOverdue",
    "InvoicePaid",
    "TeamMemberInvited",
    "TeamMemberJoined",
    "WarehouseOccupancyUpdated",
    "parse_payload",
]
