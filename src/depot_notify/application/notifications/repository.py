"""Application notifications – storage ports.

Every state change is a single-row write keyed by id; the ``claim_*`` style
methods are conditional on the row's current status so overlapping worker
ticks never process the same row twice.
"""
from __future__ import annotations

import abc
from datetime import datetime

from depot_notify.application.notifications.models import (
    Notification,
    NotificationIntent,
    NotificationPreferences,
    NotificationType,
    UserProfile,
)

__all__ = [
    "NotificationIntentRepository",
    "NotificationRepository",
    "PreferenceRepository",
    "UserDirectory",
]


class NotificationRepository(abc.ABC):
    """Port: the ``notifications`` table."""

    @abc.abstractmethod
    async def add(self, notification: Notification) -> Notification: ...

    @abc.abstractmethod
    async def get(self, notification_id: str) -> Notification | None: ...

    @abc.abstractmethod
    async def save(self, notification: Notification) -> None:
        """Persist delivery fields and metadata of an existing row."""

    @abc.abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        read: bool | None = None,
        type: NotificationType | None = None,
    ) -> list[Notification]:
        """Newest first."""

    @abc.abstractmethod
    async def mark_as_read(self, notification_id: str) -> bool: ...

    @abc.abstractmethod
    async def mark_all_as_read(self, user_id: str) -> int: ...

    @abc.abstractmethod
    async def unread_count(self, user_id: str) -> int: ...

    @abc.abstractmethod
    async def delete(self, notification_id: str) -> bool: ...


class NotificationIntentRepository(abc.ABC):
    """Port: the ``notification_events`` table."""

    @abc.abstractmethod
    async def add(self, intent: NotificationIntent) -> NotificationIntent: ...

    @abc.abstractmethod
    async def get(self, intent_id: str) -> NotificationIntent | None: ...

    @abc.abstractmethod
    async def list_processable(self, limit: int, max_retries: int) -> list[NotificationIntent]:
        """Oldest-first ``pending`` rows whose ``retry_count`` is below *max_retries*."""

    @abc.abstractmethod
    async def claim(
        self, intent_id: str, max_retries: int, claimed_at: datetime | None = None
    ) -> NotificationIntent | None:
        """Move a processable row to ``processing`` and stamp ``claimed_at``; ``None`` if it is not processable."""

    @abc.abstractmethod
    async def release_stale(self, claimed_before: datetime) -> int:
        """Put ``processing`` rows claimed before *claimed_before* back to ``pending``; return how many."""

    @abc.abstractmethod
    async def complete(self, intent_id: str, processed_at: datetime) -> None: ...

    @abc.abstractmethod
    async def fail(self, intent_id: str, error: str) -> None:
        """Mark ``failed`` (terminal), store *error* and increment ``retry_count``."""


class PreferenceRepository(abc.ABC):
    """Port: the ``notification_preferences`` table."""

    @abc.abstractmethod
    async def get(self, user_id: str) -> NotificationPreferences | None: ...

    @abc.abstractmethod
    async def upsert(self, preferences: NotificationPreferences) -> None: ...


class UserDirectory(abc.ABC):
    """Port: read-only view of user profiles."""

    @abc.abstractmethod
    async def get_profile(self, user_id: str) -> UserProfile | None: ...

    @abc.abstractmethod
    async def company_admin_ids(self, company_id: str) -> list[str]:
        """Ids of users with role ``owner`` or ``admin`` in *company_id*."""
