"""Application notifications – records, preferences and dispatch results."""
from __future__ import annotations

import dataclasses
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

__all__ = [
    "DEFAULT_TYPE_PREFERENCES",
    "Channel",
    "ChannelResult",
    "ContactInfo",
    "IntentStatus",
    "Notification",
    "NotificationIntent",
    "NotificationPreferences",
    "NotificationRequest",
    "NotificationResult",
    "NotificationType",
    "UserProfile",
]


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WHATSAPP = "whatsapp"

    @property
    def label(self) -> str:
        """Display name used in user-facing error strings."""
        return _CHANNEL_LABELS[self]


_CHANNEL_LABELS = {
    Channel.EMAIL: "Email",
    Channel.SMS: "SMS",
    Channel.PUSH: "Push",
    Channel.WHATSAPP: "WhatsApp",
}


class NotificationType(str, Enum):
    BOOKING = "booking"
    INVOICE = "invoice"
    TASK = "task"
    INCIDENT = "incident"
    SYSTEM = "system"


class IntentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


#: Per-type channel switches applied when a user has no stored preferences.
DEFAULT_TYPE_PREFERENCES: dict[str, dict[str, bool]] = {
    "booking": {"email": True, "sms": False, "push": True, "whatsapp": False},
    "invoice": {"email": True, "sms": False, "push": True, "whatsapp": False},
    "task": {"email": False, "sms": False, "push": True, "whatsapp": False},
    "incident": {"email": True, "sms": True, "push": True, "whatsapp": False},
    "system": {"email": True, "sms": False, "push": True, "whatsapp": False},
}


# ---------------------------------------------------------------------------
# Persisted rows
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class Notification:
    """One user-facing notification and its delivery bookkeeping.

    ``metadata`` keeps a sub-dict per attempted channel, e.g.
    ``{"email": {"messageId": "m-1"}, "sms": {"error": "..."}}``.
    """

    user_id: str
    type: NotificationType
    channel: Channel
    title: str
    message: str
    id: str = dataclasses.field(default_factory=_new_id)
    read: bool = False
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    failed_at: datetime | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    created_at: datetime = dataclasses.field(default_factory=_now)

    def apply_delivery(self, result: ChannelResult, at: datetime) -> None:
        """Fold one channel's outcome into the delivery fields.

        ``sent_at`` is set on the first attempt. Once any channel has been
        delivered the row stays delivered; ``failed_at`` is only kept while
        no channel has succeeded.
        """
        if self.sent_at is None:
            self.sent_at = at
        channel = Channel(result.channel).value
        if result.success:
            self.delivered_at = at
            self.failed_at = None
            self.error_message = None
            self.metadata[channel] = {"messageId": result.message_id}
        else:
            if self.delivered_at is None:
                self.failed_at = at
                self.error_message = result.error
            self.metadata[channel] = {"error": result.error}


@dataclasses.dataclass
class NotificationIntent:
    """A durable "notify someone about this event" row, drained by the event processor."""

    event_type: str
    entity_type: str
    entity_id: str
    payload: dict[str, Any]
    id: str = dataclasses.field(default_factory=_new_id)
    status: IntentStatus = IntentStatus.PENDING
    retry_count: int = 0
    error_message: str | None = None
    created_at: datetime = dataclasses.field(default_factory=_now)
    processed_at: datetime | None = None
    claimed_at: datetime | None = None


@dataclasses.dataclass
class NotificationPreferences:
    user_id: str
    email_enabled: bool = True
    sms_enabled: bool = False
    push_enabled: bool = True
    whatsapp_enabled: bool = False
    type_preferences: dict[str, dict[str, bool]] = dataclasses.field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_TYPE_PREFERENCES.items()}
    )
    email_address: str | None = None
    phone_number: str | None = None
    whatsapp_number: str | None = None
    push_token: str | None = None

    @classmethod
    def defaults(cls, user_id: str) -> "NotificationPreferences":
        return cls(user_id=user_id)

    def channel_enabled(self, channel: Channel) -> bool:
        return bool(getattr(self, f"{Channel(channel).value}_enabled"))


@dataclasses.dataclass(frozen=True)
class UserProfile:
    """Base profile fields the dispatcher and recipient resolution read."""

    id: str
    email: str | None = None
    phone_number: str | None = None
    name: str | None = None
    company_id: str | None = None
    role: str | None = None


@dataclasses.dataclass(frozen=True)
class ContactInfo:
    email: str | None = None
    phone: str | None = None
    whatsapp: str | None = None
    push_token: str | None = None
    name: str | None = None


# ---------------------------------------------------------------------------
# Dispatch request / result
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True)
class NotificationRequest:
    user_id: str
    type: NotificationType
    channels: tuple[Channel, ...]
    title: str
    message: str
    template: str | None = None
    template_data: dict[str, Any] = dataclasses.field(default_factory=dict)
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class ChannelResult:
    channel: Channel
    success: bool
    message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"channel": self.channel.value, "success": self.success}
        if self.message_id is not None:
            data["messageId"] = self.message_id
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclasses.dataclass(frozen=True)
class NotificationResult:
    """Outcome of one dispatch.

    ``success`` is true when at least one channel delivered. ``partial``
    flags the case where some, but not all, attempted channels failed.
    """

    success: bool
    results: tuple[ChannelResult, ...] = ()
    notification_id: str | None = None
    error: str | None = None

    @property
    def partial(self) -> bool:
        return self.success and any(not r.success for r in self.results)

    @property
    def attempted_channels(self) -> list[Channel]:
        return [r.channel for r in self.results]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "results": [r.to_dict() for r in self.results],
        }
        if self.notification_id is not None:
            data["notificationId"] = self.notification_id
        if self.error is not None:
            data["error"] = self.error
        return data
