"""Unit tests for the notification intent processor."""

from __future__ import annotations

import asyncio

from depot_notify.application.channels import ChannelProviders, InMemoryEmailProvider, InMemoryPushProvider
from depot_notify.application.notifications import (
    InMemoryNotificationIntentRepository,
    InMemoryNotificationRepository,
    InMemoryPreferenceRepository,
    InMemoryUserDirectory,
    IntentStatus,
    NotificationDispatcher,
    NotificationIntent,
    UserProfile,
)
from depot_notify.application.workers import EventProcessor, ProcessingSummary
from depot_notify.kernel.events import (
    BookingApproved,
    BookingRequested,
    TeamMemberJoined,
    WarehouseOccupancyUpdated,
)
from depot_notify.kernel.time import FrozenClock


class Harness:
    def __init__(self, max_retries: int = 3) -> None:
        self.intents = InMemoryNotificationIntentRepository()
        self.notifications = InMemoryNotificationRepository()
        self.users = InMemoryUserDirectory()
        self.email = InMemoryEmailProvider()
        self.push = InMemoryPushProvider()
        clock = FrozenClock(tick=1)
        dispatcher = NotificationDispatcher(
            notifications=self.notifications,
            preferences=InMemoryPreferenceRepository(),
            users=self.users,
            providers=ChannelProviders.of(email=self.email, push=self.push),
            clock=clock,
        )
        self.processor = EventProcessor(self.intents, dispatcher, self.users, max_retries=max_retries, clock=clock)
        self.clock = clock

    def add(self, payload: dict) -> str:
        intent = NotificationIntent(
            event_type=str(payload.get("eventType")),
            entity_type=str(payload.get("entityType", "booking")),
            entity_id=str(payload.get("entityId", "")),
            payload=payload,
            created_at=self.clock.now(),
        )
        asyncio.run(self.intents.add(intent))
        return intent.id

    def run(self, batch_size: int = 10) -> ProcessingSummary:
        return asyncio.run(self.processor.process_pending(batch_size))


def _booking_requested() -> dict:
    return BookingRequested(booking_id="B1", warehouse_id="W1", warehouse_owner_id="U1").to_dict()


class TestProcessPending:
    def test_completes_and_dispatches(self) -> None:
        h = Harness()
        h.users.add(UserProfile(id="U1", email="owner@example.com"))
        intent_id = h.add(_booking_requested())

        summary = h.run()
        assert summary.to_dict() == {"processed": 1, "completed": 1, "failed": 0}
        row = asyncio.run(h.intents.get(intent_id))
        assert row.status is IntentStatus.COMPLETED
        assert row.processed_at is not None
        [notification] = h.notifications.all()
        assert notification.title == "New Booking Request"
        assert notification.metadata["entityId"] == "B1"
        assert h.email.last().to == "owner@example.com"

    def test_second_run_is_a_no_op(self) -> None:
        h = Harness()
        h.add(_booking_requested())
        h.run()
        assert h.run().processed == 0
        assert len(h.notifications.all()) == 1

    def test_channel_failures_do_not_fail_the_row(self) -> None:
        h = Harness()
        intent_id = h.add(_booking_requested())  # no contact details at all
        summary = h.run()
        assert summary.completed == 1
        assert asyncio.run(h.intents.get(intent_id)).status is IntentStatus.COMPLETED

    def test_failed_row_is_terminal(self) -> None:
        h = Harness()
        intent_id = h.add({"eventType": "booking.requested"})

        first = h.run()
        assert first.to_dict() == {"processed": 1, "completed": 0, "failed": 1}
        row = asyncio.run(h.intents.get(intent_id))
        assert row.status is IntentStatus.FAILED
        assert row.retry_count == 1
        assert "missing required fields" in row.error_message

        second = h.run()
        assert second.processed == 0
        assert asyncio.run(h.intents.get(intent_id)) == row

    def test_pending_row_at_retry_ceiling_is_left_alone(self) -> None:
        h = Harness(max_retries=2)
        payload = _booking_requested()
        intent = NotificationIntent(
            event_type=payload["eventType"], entity_type="booking", entity_id="B1", payload=payload, retry_count=2
        )
        asyncio.run(h.intents.add(intent))
        intent_id = intent.id
        assert h.run().processed == 0
        assert asyncio.run(h.intents.get(intent_id)).status is IntentStatus.PENDING

    def test_process_intent_reports_failed_row_untouched(self) -> None:
        h = Harness()
        intent_id = h.add({"eventType": "booking.requested"})
        h.run()
        result = asyncio.run(h.processor.process_intent(intent_id))
        assert result.status == "failed"
        assert asyncio.run(h.intents.get(intent_id)).retry_count == 1

    def test_batch_size_limits_rows_oldest_first(self) -> None:
        h = Harness()
        ids = [h.add(_booking_requested()) for _ in range(3)]
        summary = h.run(batch_size=2)
        assert [r.id for r in summary.results] == ids[:2]

    def test_occupancy_below_threshold_completes_without_dispatch(self) -> None:
        h = Harness()
        h.add(WarehouseOccupancyUpdated(warehouse_id="W1", warehouse_owner_id="U1", occupancy_percent=40).to_dict())
        assert h.run().completed == 1
        assert h.notifications.all() == []


    def test_abandoned_claim_is_released_after_stale_window(self) -> None:
        h = Harness()
        h.users.add(UserProfile(id="U1", email="owner@example.com"))
        intent_id = h.add(_booking_requested())
        asyncio.run(h.intents.claim(intent_id, 3, h.clock.now()))  # processor died mid-row

        assert h.run().processed == 0
        assert asyncio.run(h.intents.get(intent_id)).status is IntentStatus.PROCESSING

        h.clock.advance(minutes=16)
        assert h.run().completed == 1
        assert asyncio.run(h.intents.get(intent_id)).status is IntentStatus.COMPLETED
        assert len(h.notifications.all()) == 1

    def test_release_stale_keeps_recent_claims(self) -> None:
        h = Harness()
        intent_id = h.add(_booking_requested())
        asyncio.run(h.intents.claim(intent_id, 3, h.clock.now()))
        h.clock.advance(minutes=5)
        assert asyncio.run(h.processor.release_stale()) == 0
        h.clock.advance(minutes=15)
        assert asyncio.run(h.processor.release_stale()) == 1
        row = asyncio.run(h.intents.get(intent_id))
        assert row.status is IntentStatus.PENDING
        assert row.claimed_at is None

class TestProcessIntent:
    def test_unknown_id(self) -> None:
        result = asyncio.run(Harness().processor.process_intent("missing"))
        assert result.status == "failed"
        assert result.error == "Event not found: missing"

    def test_completed_row_is_reported_untouched(self) -> None:
        h = Harness()
        intent_id = h.add(_booking_requested())
        h.run()
        result = asyncio.run(h.processor.process_intent(intent_id))
        assert result.status == "completed"
        assert len(h.notifications.all()) == 1


class TestRecipients:
    def test_booking_approved_dedupes(self) -> None:
        payload = BookingApproved(booking_id="B1", customer_id="C1", warehouse_staff_ids=("S1", "C1", "S1"))
        assert asyncio.run(Harness().processor.recipients(payload)) == ["C1", "S1"]

    def test_team_member_joined_notifies_company_admins(self) -> None:
        h = Harness()
        h.users.add(UserProfile(id="A1", company_id="CO1", role="owner"))
        h.users.add(UserProfile(id="A2", company_id="CO1", role="admin"))
        h.users.add(UserProfile(id="W1", company_id="CO1", role="worker"))
        h.users.add(UserProfile(id="X1", company_id="CO2", role="owner"))
        payload = TeamMemberJoined(member_id="M1", company_id="CO1", user_id="W1")
        assert asyncio.run(h.processor.recipients(payload)) == ["A1", "A2"]

    def test_occupancy_message_formats_percent(self) -> None:
        payload = WarehouseOccupancyUpdated(warehouse_id="W1", warehouse_owner_id="U1", occupancy_percent=92.5)
        request = Harness().processor.build_request(payload, "U1")
        assert request is not None
        assert request.message == "Warehouse occupancy is at 92.5%"
