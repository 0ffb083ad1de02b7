"""Unit tests for notification dispatch, preferences and contact resolution."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from depot_notify.application.channels import (
    ChannelProviders,
    InMemoryEmailProvider,
    InMemoryPushProvider,
    InMemorySmsProvider,
    InMemoryWhatsAppProvider,
)
from depot_notify.application.notifications import (
    NO_ENABLED_CHANNELS,
    PARTIAL_FAILURE,
    Channel,
    InMemoryNotificationRepository,
    InMemoryPreferenceRepository,
    InMemoryUserDirectory,
    NotificationDispatcher,
    NotificationPreferences,
    NotificationType,
    UserProfile,
    build_request,
    filter_enabled_channels,
    resolve_contact,
)
from depot_notify.kernel.errors import PersistenceError, ValidationError
from depot_notify.kernel.time import FrozenClock


@dataclass
class Harness:
    email: InMemoryEmailProvider = field(default_factory=InMemoryEmailProvider)
    sms: InMemorySmsProvider = field(default_factory=InMemorySmsProvider)
    push: InMemoryPushProvider = field(default_factory=InMemoryPushProvider)
    whatsapp: InMemoryWhatsAppProvider = field(default_factory=InMemoryWhatsAppProvider)
    notifications: InMemoryNotificationRepository = field(default_factory=InMemoryNotificationRepository)
    preferences: InMemoryPreferenceRepository = field(default_factory=InMemoryPreferenceRepository)
    users: InMemoryUserDirectory = field(default_factory=InMemoryUserDirectory)

    def dispatcher(self, providers: ChannelProviders | None = None) -> NotificationDispatcher:
        return NotificationDispatcher(
            notifications=self.notifications,
            preferences=self.preferences,
            users=self.users,
            providers=providers
            or ChannelProviders.of(email=self.email, sms=self.sms, push=self.push, whatsapp=self.whatsapp),
            clock=FrozenClock(),
        )


def _send(dispatcher: NotificationDispatcher, **overrides: object):
    options: dict[str, object] = {
        "user_id": "U2",
        "type": NotificationType.BOOKING,
        "channels": [Channel.EMAIL, Channel.SMS],
        "title": "Booking Approved",
        "message": "Your booking B1 was approved",
    }
    options.update(overrides)
    return asyncio.run(dispatcher.send_notification(**options))


# ---------------------------------------------------------------------------
# Channel selection
# ---------------------------------------------------------------------------


class TestChannelSelection:
    def test_disabled_channel_is_never_attempted(self) -> None:
        h = Harness()
        asyncio.run(h.preferences.upsert(NotificationPreferences(user_id="U2", email_address="u2@example.com")))
        result = _send(h.dispatcher())
        assert result.success is True
        assert result.attempted_channels == [Channel.EMAIL]
        assert h.email.count == 1
        assert h.sms.count == 0

    def test_no_enabled_channels_creates_nothing(self) -> None:
        h = Harness()
        prefs = NotificationPreferences(
            user_id="U2", email_enabled=False, sms_enabled=False, push_enabled=False, whatsapp_enabled=False
        )
        asyncio.run(h.preferences.upsert(prefs))
        result = _send(h.dispatcher(), channels=["email", "sms", "push", "whatsapp"])
        assert result.success is False
        assert result.error == NO_ENABLED_CHANNELS
        assert result.results == ()
        assert h.notifications.all() == []

    def test_defaults_apply_without_stored_preferences(self) -> None:
        h = Harness()
        h.users.add(UserProfile(id="U2", email="u2@example.com", phone_number="+905551112233"))
        result = _send(h.dispatcher(), type="task", channels=["email", "sms", "push"])
        # task defaults: push only
        assert result.attempted_channels == [Channel.PUSH]

    def test_notification_row_uses_first_enabled_channel(self) -> None:
        h = Harness()
        prefs = NotificationPreferences(
            user_id="U2", sms_enabled=True, phone_number="+905551112233", email_enabled=False
        )
        prefs.type_preferences["booking"]["sms"] = True
        asyncio.run(h.preferences.upsert(prefs))
        result = _send(h.dispatcher(), channels=["email", "sms"])
        stored = h.notifications.all()
        assert len(stored) == 1
        assert stored[0].channel is Channel.SMS
        assert stored[0].id == result.notification_id


# ---------------------------------------------------------------------------
# Delivery outcomes
# ---------------------------------------------------------------------------


class TestDeliveryOutcomes:
    def _prefs(self) -> NotificationPreferences:
        prefs = NotificationPreferences(
            user_id="U2", sms_enabled=True, email_address="u2@example.com", phone_number="+905551112233"
        )
        prefs.type_preferences["booking"]["sms"] = True
        return prefs

    def test_all_channels_delivered(self) -> None:
        h = Harness()
        asyncio.run(h.preferences.upsert(self._prefs()))
        result = _send(h.dispatcher())
        assert result.success is True
        assert result.partial is False
        assert result.error is None
        row = h.notifications.all()[0]
        assert row.delivered_at is not None
        assert row.failed_at is None
        assert row.metadata["email"] == {"messageId": "mem-email-1"}
        assert row.metadata["sms"] == {"messageId": "mem-sms-1"}

    def test_partial_failure_keeps_row_delivered(self) -> None:
        h = Harness(sms=InMemorySmsProvider(fail_with="carrier down"))
        asyncio.run(h.preferences.upsert(self._prefs()))
        result = _send(h.dispatcher())
        assert result.success is True
        assert result.partial is True
        assert result.error == PARTIAL_FAILURE
        row = h.notifications.all()[0]
        assert row.delivered_at is not None
        assert row.failed_at is None
        assert row.metadata["sms"] == {"error": "carrier down"}

    def test_every_channel_failing_marks_row_failed(self) -> None:
        h = Harness(
            email=InMemoryEmailProvider(fail_with="bounced"),
            sms=InMemorySmsProvider(raise_with=RuntimeError("socket closed")),
        )
        asyncio.run(h.preferences.upsert(self._prefs()))
        result = _send(h.dispatcher())
        assert result.success is False
        assert [r.error for r in result.results] == ["bounced", "socket closed"]
        row = h.notifications.all()[0]
        assert row.delivered_at is None
        assert row.failed_at is not None
        assert row.error_message == "socket closed"

    def test_unconfigured_provider_is_a_failed_channel(self) -> None:
        h = Harness()
        asyncio.run(h.preferences.upsert(self._prefs()))
        result = _send(h.dispatcher(ChannelProviders.of(email=h.email)))
        assert result.success is True
        sms_result = result.results[1]
        assert sms_result.channel is Channel.SMS
        assert sms_result.error == "SMS provider not configured"

    def test_missing_contact_fails_channel(self) -> None:
        h = Harness()
        result = _send(h.dispatcher(), channels=["email"])
        assert result.success is False
        assert result.results[0].error == "User email not found"
        assert h.email.count == 0

    def test_whatsapp_falls_back_to_phone(self) -> None:
        h = Harness()
        prefs = NotificationPreferences(user_id="U2", whatsapp_enabled=True, phone_number="+905551112233")
        prefs.type_preferences["booking"]["whatsapp"] = True
        asyncio.run(h.preferences.upsert(prefs))
        result = _send(h.dispatcher(), channels=["whatsapp"])
        assert result.success is True
        assert h.whatsapp.last().to == "+905551112233"
        assert h.whatsapp.last().message == "Booking Approved\n\nYour booking B1 was approved"

    def test_store_failure_returns_failed_result(self) -> None:
        h = Harness()
        h.notifications.fail_with = PersistenceError("notifications")
        asyncio.run(h.preferences.upsert(self._prefs()))
        result = _send(h.dispatcher())
        assert result.success is False
        assert result.error == "Failed to access 'notifications'"
        assert h.email.count == 0

    def test_email_rendered_from_template(self) -> None:
        h = Harness()
        h.users.add(UserProfile(id="U2", email="u2@example.com", name="Ayla"))
        _send(
            h.dispatcher(),
            channels=["email"],
            template="booking-confirmed",
            template_data={"bookingId": "B1"},
        )
        sent = h.email.last()
        assert sent.to == "u2@example.com"
        assert sent.subject == "Booking Confirmed - #B1"
        assert "Dear Ayla" in sent.html

    def test_bulk_sends_one_per_user(self) -> None:
        h = Harness()
        for uid in ("A", "B", "C"):
            h.users.add(UserProfile(id=uid, email=f"{uid.lower()}@example.com"))
        results = asyncio.run(
            h.dispatcher().send_bulk_notification(
                ["A", "B", "C"], type="system", channels=["email"], title="Maintenance", message="Tonight"
            )
        )
        assert [r.success for r in results] == [True, True, True]
        assert [m.to for m in h.email.sent] == ["a@example.com", "b@example.com", "c@example.com"]


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


class TestBuildRequest:
    def test_valid_request(self) -> None:
        req = build_request(user_id="U1", type="invoice", channels=["email", "push"], title="t", message="m")
        assert req.type is NotificationType.INVOICE
        assert req.channels == (Channel.EMAIL, Channel.PUSH)

    def test_collects_every_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_request(user_id="", type="fax", channels=["pigeon"], title="", message="m")
        fields = [e["field"] for e in exc_info.value.errors]
        assert fields == ["user_id", "title", "type", "channels"]

    def test_dispatcher_raises_on_invalid_request(self) -> None:
        with pytest.raises(ValidationError):
            _send(Harness().dispatcher(), channels=["telegram"])


# ---------------------------------------------------------------------------
# Preferences and contacts
# ---------------------------------------------------------------------------


class TestPreferences:
    def test_per_type_switch_overrides_global_flag(self) -> None:
        prefs = NotificationPreferences(user_id="U1")
        prefs.type_preferences["invoice"]["push"] = False
        assert filter_enabled_channels(["email", "push"], "invoice", prefs) == [Channel.EMAIL]

    def test_missing_type_entry_follows_global_flags(self) -> None:
        prefs = NotificationPreferences(user_id="U1", type_preferences={})
        assert filter_enabled_channels(["push", "sms"], "incident", prefs) == [Channel.PUSH]

    def test_order_preserved_and_duplicates_dropped(self) -> None:
        prefs = NotificationPreferences(user_id="U1")
        assert filter_enabled_channels(["push", "email", "push"], "booking", prefs) == [
            Channel.PUSH,
            Channel.EMAIL,
        ]

    def test_preference_contact_wins(self) -> None:
        profile = UserProfile(id="U1", email="profile@example.com", phone_number="+1", name="Deniz")
        prefs = NotificationPreferences(user_id="U1", email_address="prefs@example.com", push_token="tok")
        contact = resolve_contact(profile, prefs)
        assert contact.email == "prefs@example.com"
        assert contact.phone == "+1"
        assert contact.push_token == "tok"
        assert contact.name == "Deniz"

    def test_no_sources(self) -> None:
        contact = resolve_contact(None, None)
        assert contact.email is None
        assert contact.whatsapp is None
