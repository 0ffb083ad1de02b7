"""SQLAlchemy adapter – notification, intent, preference and profile repositories.

Every write runs in its own short transaction and touches one row, or one
user's rows for :meth:`mark_all_as_read`. Status transitions are
conditional ``UPDATE ... WHERE status = ...`` statements; the affected row
count tells whether this caller won the transition.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, insert, or_, select, update

from depot_notify.adapters.sqlalchemy.session import SqlAlchemySessionFactory, transaction
from depot_notify.adapters.sqlalchemy.tables import (
    notification_events,
    notification_preferences,
    notifications,
    profiles,
)
from depot_notify.application.notifications import (
    Channel,
    IntentStatus,
    Notification,
    NotificationIntent,
    NotificationIntentRepository,
    NotificationPreferences,
    NotificationRepository,
    NotificationType,
    PreferenceRepository,
    UserDirectory,
    UserProfile,
)
from depot_notify.kernel.time import utc_now


# ---------------------------------------------------------------------------
# notifications
# ---------------------------------------------------------------------------


class SqlAlchemyNotificationRepository(NotificationRepository):
    TABLE = notifications.name

    def __init__(self, sessions: SqlAlchemySessionFactory) -> None:
        self._sessions = sessions

    async def add(self, notification: Notification) -> Notification:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(insert(notifications).values(**_notification_row(notification)))
        return notification

    async def get(self, notification_id: str) -> Notification | None:
        async with transaction(self._sessions, self.TABLE) as session:
            row = (
                await session.execute(select(notifications).where(notifications.c.id == notification_id))
            ).first()
        return _to_notification(row._mapping) if row else None

    async def save(self, notification: Notification) -> None:
        values = _notification_row(notification)
        for key in ("id", "user_id", "created_at"):
            values.pop(key)
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                update(notifications).where(notifications.c.id == notification.id).values(**values)
            )

    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        read: bool | None = None,
        type: NotificationType | None = None,
    ) -> list[Notification]:
        stmt = select(notifications).where(notifications.c.user_id == user_id)
        if read is not None:
            stmt = stmt.where(notifications.c.read == read)
        if type is not None:
            stmt = stmt.where(notifications.c.type == NotificationType(type).value)
        stmt = stmt.order_by(notifications.c.created_at.desc()).limit(limit).offset(offset)
        async with transaction(self._sessions, self.TABLE) as session:
            rows = (await session.execute(stmt)).all()
        return [_to_notification(r._mapping) for r in rows]

    async def mark_as_read(self, notification_id: str) -> bool:
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(notifications).where(notifications.c.id == notification_id).values(read=True)
            )
        return result.rowcount > 0

    async def mark_all_as_read(self, user_id: str) -> int:
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(notifications)
                .where(notifications.c.user_id == user_id, notifications.c.read.is_(False))
                .values(read=True)
            )
        return result.rowcount

    async def unread_count(self, user_id: str) -> int:
        async with transaction(self._sessions, self.TABLE) as session:
            count = (
                await session.execute(
                    select(func.count())
                    .select_from(notifications)
                    .where(notifications.c.user_id == user_id, notifications.c.read.is_(False))
                )
            ).scalar()
        return count or 0

    async def delete(self, notification_id: str) -> bool:
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(delete(notifications).where(notifications.c.id == notification_id))
        return result.rowcount > 0


def _notification_row(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "user_id": n.user_id,
        "type": NotificationType(n.type).value,
        "channel": Channel(n.channel).value,
        "title": n.title,
        "message": n.message,
        "read": n.read,
        "sent_at": n.sent_at,
        "delivered_at": n.delivered_at,
        "failed_at": n.failed_at,
        "error_message": n.error_message,
        "metadata": dict(n.metadata),
        "created_at": n.created_at,
    }


def _to_notification(row: Any) -> Notification:
    return Notification(
        id=row["id"],
        user_id=row["user_id"],
        type=NotificationType(row["type"]),
        channel=Channel(row["channel"]),
        title=row["title"],
        message=row["message"],
        read=bool(row["read"]),
        sent_at=row["sent_at"],
        delivered_at=row["delivered_at"],
        failed_at=row["failed_at"],
        error_message=row["error_message"],
        metadata=dict(row["metadata"] or {}),
        created_at=row["created_at"],
    )


# ---------------------------------------------------------------------------
# notification_events
# ---------------------------------------------------------------------------


class SqlAlchemyNotificationIntentRepository(NotificationIntentRepository):
    TABLE = notification_events.name

    def __init__(self, sessions: SqlAlchemySessionFactory) -> None:
        self._sessions = sessions

    async def add(self, intent: NotificationIntent) -> NotificationIntent:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                insert(notification_events).values(
                    id=intent.id,
                    event_type=intent.event_type,
                    entity_type=intent.entity_type,
                    entity_id=intent.entity_id,
                    payload=dict(intent.payload),
                    status=IntentStatus(intent.status).value,
                    retry_count=intent.retry_count,
                    error_message=intent.error_message,
                    created_at=intent.created_at,
                    processed_at=intent.processed_at,
                    claimed_at=intent.claimed_at,
                )
            )
        return intent

    async def get(self, intent_id: str) -> NotificationIntent | None:
        async with transaction(self._sessions, self.TABLE) as session:
            row = (
                await session.execute(select(notification_events).where(notification_events.c.id == intent_id))
            ).first()
        return _to_intent(row._mapping) if row else None

    async def list_processable(self, limit: int, max_retries: int) -> list[NotificationIntent]:
        stmt = (
            select(notification_events)
            .where(_processable(max_retries))
            .order_by(notification_events.c.created_at.asc())
            .limit(limit)
        )
        async with transaction(self._sessions, self.TABLE) as session:
            rows = (await session.execute(stmt)).all()
        return [_to_intent(r._mapping) for r in rows]

    async def claim(
        self, intent_id: str, max_retries: int, claimed_at: datetime | None = None
    ) -> NotificationIntent | None:
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(notification_events)
                .where(notification_events.c.id == intent_id, _processable(max_retries))
                .values(status=IntentStatus.PROCESSING.value, claimed_at=claimed_at or utc_now())
            )
            if result.rowcount != 1:
                return None
            row = (
                await session.execute(select(notification_events).where(notification_events.c.id == intent_id))
            ).one()
        return _to_intent(row._mapping)

    async def release_stale(self, claimed_before: datetime) -> int:
        c = notification_events.c
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(notification_events)
                .where(
                    c.status == IntentStatus.PROCESSING.value,
                    or_(c.claimed_at.is_(None), c.claimed_at < claimed_before),
                )
                .values(status=IntentStatus.PENDING.value, claimed_at=None)
            )
        return result.rowcount

    async def complete(self, intent_id: str, processed_at: datetime) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                update(notification_events)
                .where(
                    notification_events.c.id == intent_id,
                    notification_events.c.status == IntentStatus.PROCESSING.value,
                )
                .values(status=IntentStatus.COMPLETED.value, processed_at=processed_at, error_message=None)
            )

    async def fail(self, intent_id: str, error: str) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                update(notification_events)
                .where(
                    notification_events.c.id == intent_id,
                    notification_events.c.status == IntentStatus.PROCESSING.value,
                )
                .values(
                    status=IntentStatus.FAILED.value,
                    error_message=error,
                    retry_count=notification_events.c.retry_count + 1,
                )
            )


def _processable(max_retries: int) -> Any:
    c = notification_events.c
    return and_(c.status == IntentStatus.PENDING.value, c.retry_count < max_retries)


def _to_intent(row: Any) -> NotificationIntent:
    return NotificationIntent(
        id=row["id"],
        event_type=row["event_type"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        payload=dict(row["payload"] or {}),
        status=IntentStatus(row["status"]),
        retry_count=row["retry_count"],
        error_message=row["error_message"],
        created_at=row["created_at"],
        processed_at=row["processed_at"],
        claimed_at=row["claimed_at"],
    )


# ---------------------------------------------------------------------------
# notification_preferences
# ---------------------------------------------------------------------------


_PREFERENCE_FIELDS = (
    "email_enabled",
    "sms_enabled",
    "push_enabled",
    "whatsapp_enabled",
    "type_preferences",
    "email_address",
    "phone_number",
    "whatsapp_number",
    "push_token",
)


class SqlAlchemyPreferenceRepository(PreferenceRepository):
    TABLE = notification_preferences.name

    def __init__(self, sessions: SqlAlchemySessionFactory) -> None:
        self._sessions = sessions

    async def get(self, user_id: str) -> NotificationPreferences | None:
        async with transaction(self._sessions, self.TABLE) as session:
            row = (
                await session.execute(
                    select(notification_preferences).where(notification_preferences.c.user_id == user_id)
                )
            ).first()
        if row is None:
            return None
        values = {f: row._mapping[f] for f in _PREFERENCE_FIELDS}
        values["type_preferences"] = dict(values["type_preferences"] or {})
        return NotificationPreferences(user_id=user_id, **values)

    async def upsert(self, preferences: NotificationPreferences) -> None:
        values = {f: getattr(preferences, f) for f in _PREFERENCE_FIELDS}
        table = notification_preferences
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(table).where(table.c.user_id == preferences.user_id).values(**values)
            )
            if result.rowcount == 0:
                await session.execute(insert(table).values(user_id=preferences.user_id, **values))


# ---------------------------------------------------------------------------
# profiles
# ---------------------------------------------------------------------------


class SqlAlchemyUserDirectory(UserDirectory):
    TABLE = profiles.name

    def __init__(self, sessions: SqlAlchemySessionFactory) -> None:
        self._sessions = sessions

    async def add(self, profile: UserProfile) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                insert(profiles).values(
                    id=profile.id,
                    email=profile.email,
                    phone_number=profile.phone_number,
                    name=profile.name,
                    company_id=profile.company_id,
                    role=profile.role,
                )
            )

    async def get_profile(self, user_id: str) -> UserProfile | None:
        async with transaction(self._sessions, self.TABLE) as session:
            row = (await session.execute(select(profiles).where(profiles.c.id == user_id))).first()
        return UserProfile(**row._mapping) if row else None

    async def company_admin_ids(self, company_id: str) -> list[str]:
        async with transaction(self._sessions, self.TABLE) as session:
            rows = (
                await session.execute(
                    select(profiles.c.id)
                    .where(profiles.c.company_id == company_id, profiles.c.role.in_(("owner", "admin")))
                    .order_by(profiles.c.id)
                )
            ).scalars()
            return list(rows)


__all__ = [
    "SqlAlchemyNotificationIntentRepository",
    "SqlAlchemyNotificationRepository",
    "SqlAlchemyPreferenceRepository",
    "SqlAlchemyUserDirectory",
]
