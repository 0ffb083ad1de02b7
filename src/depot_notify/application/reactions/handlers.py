"""Application reactions – one reaction per bus event variant.

Every reaction writes a pending :class:`NotificationIntent` carrying the
full payload. Where a single recipient obviously needs to know right away,
it also writes a :class:`Notification` row directly so the recipient sees
it before the next worker tick.

:data:`REACTIONS` pairs every payload variant with its bus priority and
its direct-notice builder; :meth:`ReactionHandlers.register` subscribes
from that table.
"""
from __future__ import annotations

import dataclasses
from typing import Callable

from depot_notify.application.event_bus import EventBus
from depot_notify.application.notifications import (
    Channel,
    Notification,
    NotificationIntent,
    NotificationIntentRepository,
    NotificationRepository,
    NotificationType,
)
from depot_notify.kernel.events import (
    BasePayload,
    BookingApproved,
    BookingModified,
    BookingProposalAccepted,
    BookingProposalCreated,
    BookingProposalRejected,
    BookingRejected,
    BookingRequested,
    InvoiceGenerated,
    InvoiceOverdue,
    InvoicePaid,
    TeamMemberInvited,
    TeamMemberJoined,
    WarehouseOccupancyUpdated,
)
from depot_notify.kernel.time import Clock, SystemClock
from depot_notify.observability.logging import get_logger

__all__ = ["REACTIONS", "DirectNotice", "Reaction", "ReactionHandlers"]

logger = get_logger(__name__)

DEFAULT_OCCUPANCY_THRESHOLD = 90.0


@dataclasses.dataclass(frozen=True)
class DirectNotice:
    user_id: str
    type: NotificationType
    title: str
    message: str


NoticeBuilder = Callable[[BasePayload, float], list[DirectNotice]]


@dataclasses.dataclass(frozen=True)
class Reaction:
    priority: int
    notices: NoticeBuilder


def _none(payload: BasePayload, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return []


def _booking_requested(p: BookingRequested, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.warehouse_owner_id,
            NotificationType.BOOKING,
            "New Booking Request",
            f"New booking request received for warehouse {p.warehouse_id}",
        )
    ]


def _proposal_created(p: BookingProposalCreated, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.customer_id,
            NotificationType.BOOKING,
            "Price Proposal Received",
            "A price proposal has been created for your booking request",
        )
    ]


def _proposal_accepted(p: BookingProposalAccepted, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.warehouse_owner_id,
            NotificationType.BOOKING,
            "Proposal Accepted",
            "Your price proposal has been accepted",
        )
    ]


def _proposal_rejected(p: BookingProposalRejected, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.warehouse_owner_id,
            NotificationType.BOOKING,
            "Proposal Rejected",
            "Your price proposal has been rejected",
        )
    ]


def _booking_approved(p: BookingApproved, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    notices = [
        DirectNotice(
            p.customer_id,
            NotificationType.BOOKING,
            "Booking Approved",
            "Your booking request has been approved",
        )
    ]
    notices.extend(
        DirectNotice(
            staff_id,
            NotificationType.BOOKING,
            "New Booking Assigned",
            "A new booking has been assigned to your warehouse",
        )
        for staff_id in p.warehouse_staff_ids
    )
    return notices


def _booking_rejected(p: BookingRejected, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.customer_id,
            NotificationType.BOOKING,
            "Booking Rejected",
            "Your booking request has been rejected",
        )
    ]


def _invoice_generated(p: InvoiceGenerated, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.customer_id,
            NotificationType.INVOICE,
            "New Invoice Generated",
            "A new invoice has been generated for your booking",
        )
    ]


def _invoice_overdue(p: InvoiceOverdue, threshold: float) -> list[DirectNotice]:  # noqa: ARG001
    return [
        DirectNotice(
            p.customer_id,
            NotificationType.INVOICE,
            "Invoice Overdue",
            "Your invoice is overdue. Please make payment as soon as possible.",
        )
    ]


def _occupancy_updated(p: WarehouseOccupancyUpdated, threshold: float) -> list[DirectNotice]:
    if p.occupancy_percent < threshold:
        return []
    return [
        DirectNotice(
            p.warehouse_owner_id,
            NotificationType.SYSTEM,
            "High Warehouse Occupancy",
            f"Warehouse occupancy is at {p.occupancy_percent:g}%",
        )
    ]


#: Reaction table, one entry per payload variant.
REACTIONS: dict[type[BasePayload], Reaction] = {
    BookingRequested: Reaction(10, _booking_requested),
    BookingProposalCreated: Reaction(10, _proposal_created),
    BookingProposalAccepted: Reaction(10, _proposal_accepted),
    BookingProposalRejected: Reaction(10, _proposal_rejected),
    BookingApproved: Reaction(10, _booking_approved),
    BookingRejected: Reaction(10, _booking_rejected),
    BookingModified: Reaction(10, _none),
    InvoiceGenerated: Reaction(10, _invoice_generated),
    InvoicePaid: Reaction(10, _none),
    InvoiceOverdue: Reaction(10, _invoice_overdue),
    WarehouseOccupancyUpdated: Reaction(5, _occupancy_updated),
    TeamMemberInvited: Reaction(10, _none),
    TeamMemberJoined: Reaction(10, _none),
}


class ReactionHandlers:
    """Persist intents (and direct notifications) in reaction to bus events.

    Store failures propagate to the bus, which isolates and logs them;
    retrying is left to the event processor.
    """

    def __init__(
        self,
        intents: NotificationIntentRepository,
        notifications: NotificationRepository,
        *,
        occupancy_threshold: float = DEFAULT_OCCUPANCY_THRESHOLD,
        clock: Clock | None = None,
    ) -> None:
        self._intents = intents
        self._notifications = notifications
        self._threshold = occupancy_threshold
        self._clock = clock or SystemClock()

    def register(self, bus: EventBus) -> dict[str, str]:
        """Subscribe :meth:`handle` for every variant; returns event type → subscription id."""
        return {
            variant.event_type.value: bus.on(variant.event_type, self.handle, reaction.priority)
            for variant, reaction in REACTIONS.items()
        }

    async def handle(self, payload: BasePayload) -> None:
        reaction = REACTIONS[type(payload)]
        now = self._clock.now()
        intent = NotificationIntent(
            event_type=payload.event_type.value,
            entity_type=payload.entity_type.value,
            entity_id=payload.entity_id,
            payload=payload.to_dict(),
            created_at=now,
        )
        await self._intents.add(intent)

        notices = reaction.notices(payload, self._threshold)
        for notice in notices:
            await self._notifications.add(
                Notification(
                    user_id=notice.user_id,
                    type=notice.type,
                    channel=Channel.EMAIL,
                    title=notice.title,
                    message=notice.message,
                    created_at=now,
                )
            )
        logger.debug(
            "reaction.handled",
            event_type=payload.event_type.value,
            entity_id=payload.entity_id,
            intent_id=intent.id,
            direct_notifications=len(notices),
        )
