"""Application workers – event processor.

Drains ``notification_events`` rows: each ``pending`` row below the retry
ceiling is claimed with a conditional status update, its recipients are
resolved from the payload, and one dispatch is made per recipient. The row ends ``completed`` unless something raised, in
which case it ends ``failed``; ``failed`` is terminal and later ticks leave it
alone. Channel-level delivery failures do not fail the row.

Each tick first puts ``processing`` rows claimed longer than ``stale_after``
ago back to ``pending``, so a crash between claim and completion does not
strand them.
"""
from __future__ import annotations

import asyncio
import dataclasses
from datetime import timedelta
from typing import Any

from depot_notify.application.notifications import (
    Channel,
    IntentStatus,
    NotificationDispatcher,
    NotificationIntent,
    NotificationIntentRepository,
    NotificationRequest,
    NotificationType,
    UserDirectory,
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
    EventType,
    InvoiceGenerated,
    InvoiceOverdue,
    InvoicePaid,
    TeamMemberInvited,
    TeamMemberJoined,
    WarehouseOccupancyUpdated,
    parse_payload,
)
from depot_notify.kernel.time import Clock, SystemClock
from depot_notify.observability.logging import bound_context, get_logger

__all__ = ["EVENT_NOTIFICATIONS", "EventProcessor", "ProcessedIntent", "ProcessingSummary"]

logger = get_logger(__name__)

DEFAULT_CHANNELS: tuple[Channel, ...] = (Channel.EMAIL, Channel.PUSH)

#: Notification type, title and message sent for each event type.
EVENT_NOTIFICATIONS: dict[EventType, tuple[NotificationType, str, str]] = {
    EventType.BOOKING_REQUESTED: (
        NotificationType.BOOKING, "New Booking Request", "You have received a new booking request"
    ),
    EventType.BOOKING_PROPOSAL_CREATED: (
        NotificationType.BOOKING,
        "Price Proposal Received",
        "A price proposal has been created for your booking request",
    ),
    EventType.BOOKING_PROPOSAL_ACCEPTED: (
        NotificationType.BOOKING, "Proposal Accepted", "Your price proposal has been accepted"
    ),
    EventType.BOOKING_PROPOSAL_REJECTED: (
        NotificationType.BOOKING, "Proposal Rejected", "Your price proposal has been rejected"
    ),
    EventType.BOOKING_APPROVED: (
        NotificationType.BOOKING, "Booking Approved", "Your booking request has been approved"
    ),
    EventType.BOOKING_REJECTED: (
        NotificationType.BOOKING, "Booking Rejected", "Your booking request has been rejected"
    ),
    EventType.BOOKING_MODIFIED: (
        NotificationType.BOOKING, "Booking Modified", "A booking modification has been requested"
    ),
    EventType.INVOICE_GENERATED: (
        NotificationType.INVOICE,
        "New Invoice Generated",
        "A new invoice has been generated for your booking",
    ),
    EventType.INVOICE_PAID: (NotificationType.INVOICE, "Invoice Paid", "Your invoice has been paid"),
    EventType.INVOICE_OVERDUE: (
        NotificationType.INVOICE,
        "Invoice Overdue",
        "Your invoice is overdue. Please make payment as soon as possible.",
    ),
    EventType.WAREHOUSE_OCCUPANCY_UPDATED: (
        NotificationType.SYSTEM, "High Warehouse Occupancy", "Warehouse occupancy is at {occupancy}%"
    ),
    EventType.TEAM_MEMBER_INVITED: (
        NotificationType.SYSTEM, "Team Member Invited", "A team member invitation has been sent"
    ),
    EventType.TEAM_MEMBER_JOINED: (
        NotificationType.SYSTEM, "Team Member Joined", "A new team member has joined your company"
    ),
}


@dataclasses.dataclass(frozen=True)
class ProcessedIntent:
    """Per-row outcome. ``status`` is ``completed``, ``failed`` or ``skipped``."""

    id: str
    event_type: str
    entity_type: str
    entity_id: str
    status: str
    error: str | None = None


@dataclasses.dataclass(frozen=True)
class ProcessingSummary:
    results: tuple[ProcessedIntent, ...] = ()

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def completed(self) -> int:
        return sum(1 for r in self.results if r.status == IntentStatus.COMPLETED.value)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == IntentStatus.FAILED.value)

    def to_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "completed": self.completed, "failed": self.failed}


class EventProcessor:
    """Turn notification intents into dispatches.

    Parameters
    ----------
    max_retries:
        ``pending`` rows whose ``retry_count`` has reached this ceiling are
        skipped.
    stale_after:
        Age after which a ``processing`` claim is treated as abandoned;
        ``None`` disables the sweep.
    occupancy_threshold:
        Occupancy events below this percentage complete without a dispatch.
    """

    def __init__(
        self,
        intents: NotificationIntentRepository,
        dispatcher: NotificationDispatcher,
        users: UserDirectory,
        *,
        max_retries: int = 3,
        occupancy_threshold: float = 90.0,
        stale_after: timedelta | None = timedelta(minutes=15),
        clock: Clock | None = None,
    ) -> None:
        self._intents = intents
        self._dispatcher = dispatcher
        self._users = users
        self._max_retries = max_retries
        self._threshold = occupancy_threshold
        self._stale_after = stale_after
        self._clock = clock or SystemClock()

    async def process_pending(self, batch_size: int = 10) -> ProcessingSummary:
        """Process up to *batch_size* ``pending`` rows, oldest first."""
        await self.release_stale()
        rows = await self._intents.list_processable(batch_size, self._max_retries)
        if not rows:
            return ProcessingSummary()
        results = await asyncio.gather(*(self.process_intent(row.id) for row in rows))
        summary = ProcessingSummary(results=tuple(results))
        logger.info("event_processor.batch_done", **summary.to_dict())
        return summary

    async def release_stale(self) -> int:
        """Return abandoned ``processing`` rows to ``pending``."""
        if self._stale_after is None:
            return 0
        released = await self._intents.release_stale(self._clock.now() - self._stale_after)
        if released:
            logger.warning("event_processor.stale_released", count=released)
        return released

    async def process_intent(self, intent_id: str) -> ProcessedIntent:
        with bound_context(intent_id=intent_id):
            try:
                intent = await self._intents.claim(intent_id, self._max_retries, self._clock.now())
            except Exception as exc:  # noqa: BLE001
                logger.error("event_processor.claim_failed", error=str(exc))
                return ProcessedIntent(intent_id, "unknown", "unknown", "", IntentStatus.FAILED.value, str(exc))
            if intent is None:
                return await self._unclaimed(intent_id)

            try:
                await self._realize(intent)
            except Exception as exc:  # noqa: BLE001
                error = str(exc) or type(exc).__name__
                await self._intents.fail(intent.id, error)
                logger.warning(
                    "event_processor.intent_failed",
                    event_type=intent.event_type,
                    retry_count=intent.retry_count + 1,
                    error=error,
                )
                return _outcome(intent, IntentStatus.FAILED.value, error)

            await self._intents.complete(intent.id, self._clock.now())
            return _outcome(intent, IntentStatus.COMPLETED.value)

    async def _unclaimed(self, intent_id: str) -> ProcessedIntent:
        """Report a row that could not be claimed without touching it."""
        existing = await self._intents.get(intent_id)
        if existing is None:
            return ProcessedIntent(
                intent_id, "unknown", "unknown", "", IntentStatus.FAILED.value, f"Event not found: {intent_id}"
            )
        if existing.status in (IntentStatus.COMPLETED, IntentStatus.FAILED):
            return _outcome(existing, existing.status.value, existing.error_message)
        return _outcome(existing, "skipped")

    async def _realize(self, intent: NotificationIntent) -> None:
        payload = parse_payload(intent.payload)
        recipients = await self.recipients(payload)
        requests = [r for r in (self.build_request(payload, user_id) for user_id in recipients) if r]
        if not requests:
            return
        outcomes = await asyncio.gather(
            *(self._dispatcher.dispatch(request) for request in requests), return_exceptions=True
        )
        errors = [str(o) or type(o).__name__ for o in outcomes if isinstance(o, BaseException)]
        if errors:
            raise RuntimeError("; ".join(errors))

    async def recipients(self, payload: BasePayload) -> list[str]:
        """User ids to notify for *payload*, in a stable order without duplicates."""
        match payload:
            case BookingRequested() | BookingProposalAccepted() | BookingProposalRejected() | BookingModified():
                ids = [payload.warehouse_owner_id]
            case BookingProposalCreated() | BookingRejected() | InvoiceGenerated() | InvoicePaid() | InvoiceOverdue():
                ids = [payload.customer_id]
            case BookingApproved():
                ids = [payload.customer_id, *payload.warehouse_staff_ids]
            case WarehouseOccupancyUpdated():
                ids = [payload.warehouse_owner_id]
            case TeamMemberInvited():
                ids = [payload.invited_by]
            case TeamMemberJoined():
                ids = await self._users.company_admin_ids(payload.company_id)
            case _:
                ids = []
        return list(dict.fromkeys(i for i in ids if i))

    def build_request(self, payload: BasePayload, user_id: str) -> NotificationRequest | None:
        """The dispatch for one recipient, or ``None`` when nothing should be sent."""
        ntype, title, message = EVENT_NOTIFICATIONS[payload.event_type]
        if isinstance(payload, WarehouseOccupancyUpdated):
            if payload.occupancy_percent < self._threshold:
                return None
            message = message.format(occupancy=f"{payload.occupancy_percent:g}")
        metadata: dict[str, Any] = {
            "eventType": payload.event_type.value,
            "entityType": payload.entity_type.value,
            "entityId": payload.entity_id,
        }
        return NotificationRequest(
            user_id=user_id,
            type=ntype,
            channels=DEFAULT_CHANNELS,
            title=title,
            message=message,
            metadata=metadata,
        )


def _outcome(intent: NotificationIntent, status: str, error: str | None = None) -> ProcessedIntent:
    return ProcessedIntent(
        id=intent.id,
        event_type=intent.event_type,
        entity_type=intent.entity_type,
        entity_id=intent.entity_id,
        status=status,
        error=error,
    )
