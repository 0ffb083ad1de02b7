"""Application notifications – in-memory repositories for tests and local runs."""
from __future__ import annotations

import copy
from datetime import datetime

from depot_notify.application.notifications.models import (
    IntentStatus,
    Notification,
    NotificationIntent,
    NotificationPreferences,
    NotificationType,
    UserProfile,
)
from depot_notify.application.notifications.repository import (
    NotificationIntentRepository,
    NotificationRepository,
    PreferenceRepository,
    UserDirectory,
)
from depot_notify.kernel.time import utc_now

__all__ = [
    "InMemoryNotificationIntentRepository",
    "InMemoryNotificationRepository",
    "InMemoryPreferenceRepository",
    "InMemoryUserDirectory",
]


class InMemoryNotificationRepository(NotificationRepository):
    """Stores copies, so callers only change rows through :meth:`save`.

    Set ``fail_with`` to an exception instance to make every write raise it.
    """

    def __init__(self) -> None:
        self._rows: dict[str, Notification] = {}
        self.fail_with: Exception | None = None

    async def add(self, notification: Notification) -> Notification:
        self._check()
        self._rows[notification.id] = copy.deepcopy(notification)
        return notification

    async def get(self, notification_id: str) -> Notification | None:
        row = self._rows.get(notification_id)
        return copy.deepcopy(row) if row else None

    async def save(self, notification: Notification) -> None:
        self._check()
        if notification.id in self._rows:
            self._rows[notification.id] = copy.deepcopy(notification)

    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        read: bool | None = None,
        type: NotificationType | None = None,
    ) -> list[Notification]:
        rows = [
            n
            for n in self._rows.values()
            if n.user_id == user_id
            and (read is None or n.read == read)
            and (type is None or n.type == type)
        ]
        # ties on created_at: most recently inserted first
        rows.reverse()
        rows.sort(key=lambda n: n.created_at, reverse=True)
        return [copy.deepcopy(n) for n in rows[offset : offset + limit]]

    async def mark_as_read(self, notification_id: str) -> bool:
        row = self._rows.get(notification_id)
        if row is None:
            return False
        row.read = True
        return True

    async def mark_all_as_read(self, user_id: str) -> int:
        changed = 0
        for row in self._rows.values():
            if row.user_id == user_id and not row.read:
                row.read = True
                changed += 1
        return changed

    async def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._rows.values() if n.user_id == user_id and not n.read)

    async def delete(self, notification_id: str) -> bool:
        return self._rows.pop(notification_id, None) is not None

    def all(self) -> list[Notification]:
        return [copy.deepcopy(n) for n in self._rows.values()]

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


class InMemoryNotificationIntentRepository(NotificationIntentRepository):
    def __init__(self) -> None:
        self._rows: dict[str, NotificationIntent] = {}
        self.fail_with: Exception | None = None

    async def add(self, intent: NotificationIntent) -> NotificationIntent:
        if self.fail_with is not None:
            raise self.fail_with
        self._rows[intent.id] = copy.deepcopy(intent)
        return intent

    async def get(self, intent_id: str) -> NotificationIntent | None:
        row = self._rows.get(intent_id)
        return copy.deepcopy(row) if row else None

    async def list_processable(self, limit: int, max_retries: int) -> list[NotificationIntent]:
        rows = [r for r in self._rows.values() if _processable(r, max_retries)]
        rows.sort(key=lambda r: r.created_at)
        return [copy.deepcopy(r) for r in rows[:limit]]

    async def claim(
        self, intent_id: str, max_retries: int, claimed_at: datetime | None = None
    ) -> NotificationIntent | None:
        row = self._rows.get(intent_id)
        if row is None or not _processable(row, max_retries):
            return None
        row.status = IntentStatus.PROCESSING
        row.claimed_at = claimed_at or utc_now()
        return copy.deepcopy(row)

    async def release_stale(self, claimed_before: datetime) -> int:
        stale = [
            r
            for r in self._rows.values()
            if r.status == IntentStatus.PROCESSING and (r.claimed_at is None or r.claimed_at < claimed_before)
        ]
        for row in stale:
            row.status = IntentStatus.PENDING
            row.claimed_at = None
        return len(stale)

    async def complete(self, intent_id: str, processed_at: datetime) -> None:
        row = self._rows.get(intent_id)
        if row is not None and row.status == IntentStatus.PROCESSING:
            row.status = IntentStatus.COMPLETED
            row.processed_at = processed_at
            row.error_message = None

    async def fail(self, intent_id: str, error: str) -> None:
        row = self._rows.get(intent_id)
        if row is not None and row.status == IntentStatus.PROCESSING:
            row.status = IntentStatus.FAILED
            row.error_message = error
            row.retry_count += 1

    def all(self) -> list[NotificationIntent]:
        return [copy.deepcopy(r) for r in self._rows.values()]


def _processable(row: NotificationIntent, max_retries: int) -> bool:
    return row.status == IntentStatus.PENDING and row.retry_count < max_retries


class InMemoryPreferenceRepository(PreferenceRepository):
    def __init__(self, preferences: list[NotificationPreferences] | None = None) -> None:
        self._rows: dict[str, NotificationPreferences] = {p.user_id: p for p in preferences or []}

    async def get(self, user_id: str) -> NotificationPreferences | None:
        row = self._rows.get(user_id)
        return copy.deepcopy(row) if row else None

    async def upsert(self, preferences: NotificationPreferences) -> None:
        self._rows[preferences.user_id] = copy.deepcopy(preferences)


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, profiles: list[UserProfile] | None = None) -> None:
        self._profiles: dict[str, UserProfile] = {p.id: p for p in profiles or []}

    def add(self, profile: UserProfile) -> None:
        self._profiles[profile.id] = profile

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    async def company_admin_ids(self, company_id: str) -> list[str]:
        return [
            p.id
            for p in self._profiles.values()
            if p.company_id == company_id and p.role in ("owner", "admin")
        ]
