"""SQLAlchemy adapter – SqlAlchemyEmailQueueRepository."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, case, insert, or_, select, update

from depot_notify.adapters.sqlalchemy.session import SqlAlchemySessionFactory, transaction
from depot_notify.adapters.sqlalchemy.tables import email_queue
from depot_notify.application.workers import EmailQueueItem, EmailQueueRepository, EmailStatus
from depot_notify.kernel.time import utc_now

_c = email_queue.c


class SqlAlchemyEmailQueueRepository(EmailQueueRepository):
    """``email_queue`` rows; ``mark_failed`` caps ``retry_count`` at ``max_retries`` in SQL."""

    TABLE = email_queue.name

    def __init__(self, sessions: SqlAlchemySessionFactory) -> None:
        self._sessions = sessions

    async def add(self, item: EmailQueueItem) -> EmailQueueItem:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                insert(email_queue).values(
                    id=item.id,
                    to_email=item.to_email,
                    subject=item.subject,
                    html_content=item.html_content,
                    text_content=item.text_content,
                    priority=item.priority,
                    status=EmailStatus(item.status).value,
                    retry_count=item.retry_count,
                    max_retries=item.max_retries,
                    sent_at=item.sent_at,
                    error_message=item.error_message,
                    metadata=dict(item.metadata),
                    created_at=item.created_at,
                    claimed_at=item.claimed_at,
                )
            )
        return item

    async def get(self, item_id: str) -> EmailQueueItem | None:
        async with transaction(self._sessions, self.TABLE) as session:
            row = (await session.execute(select(email_queue).where(_c.id == item_id))).first()
        return _to_item(row._mapping) if row else None

    async def pending(self, limit: int = 10) -> list[EmailQueueItem]:
        return await self._select(_c.status == EmailStatus.PENDING.value, limit)

    async def retryable(self, limit: int = 10) -> list[EmailQueueItem]:
        return await self._select(_retryable(), limit)

    async def claim(self, item_id: str, claimed_at: datetime | None = None) -> EmailQueueItem | None:
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(email_queue)
                .where(_c.id == item_id, or_(_c.status == EmailStatus.PENDING.value, _retryable()))
                .values(status=EmailStatus.SENDING.value, claimed_at=claimed_at or utc_now())
            )
            if result.rowcount != 1:
                return None
            row = (await session.execute(select(email_queue).where(_c.id == item_id))).one()
        return _to_item(row._mapping)

    async def release_stale(self, claimed_before: datetime) -> int:
        async with transaction(self._sessions, self.TABLE) as session:
            result = await session.execute(
                update(email_queue)
                .where(
                    _c.status == EmailStatus.SENDING.value,
                    or_(_c.claimed_at.is_(None), _c.claimed_at < claimed_before),
                )
                .values(status=EmailStatus.PENDING.value, claimed_at=None)
            )
        return result.rowcount

    async def mark_sent(self, item_id: str, sent_at: datetime) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                update(email_queue)
                .where(_c.id == item_id, _c.status == EmailStatus.SENDING.value)
                .values(status=EmailStatus.SENT.value, sent_at=sent_at, error_message=None)
            )

    async def mark_failed(self, item_id: str, error: str) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                update(email_queue)
                .where(_c.id == item_id, _c.status == EmailStatus.SENDING.value)
                .values(
                    status=EmailStatus.FAILED.value,
                    error_message=error,
                    retry_count=case(
                        (_c.retry_count + 1 > _c.max_retries, _c.max_retries),
                        else_=_c.retry_count + 1,
                    ),
                )
            )

    async def _select(self, condition: Any, limit: int) -> list[EmailQueueItem]:
        stmt = (
            select(email_queue)
            .where(condition)
            .order_by(_c.priority.desc(), _c.created_at.asc())
            .limit(limit)
        )
        async with transaction(self._sessions, self.TABLE) as session:
            rows = (await session.execute(stmt)).all()
        return [_to_item(r._mapping) for r in rows]


def _retryable() -> Any:
    return and_(_c.status == EmailStatus.FAILED.value, _c.retry_count < _c.max_retries)


def _to_item(row: Any) -> EmailQueueItem:
    return EmailQueueItem(
        id=row["id"],
        to_email=row["to_email"],
        subject=row["subject"],
        html_content=row["html_content"],
        text_content=row["text_content"],
        priority=row["priority"],
        status=EmailStatus(row["status"]),
        retry_count=row["retry_count"],
        max_retries=row["max_retries"],
        sent_at=row["sent_at"],
        error_message=row["error_message"],
        metadata=dict(row["metadata"] or {}),
        created_at=row["created_at"],
        claimed_at=row["claimed_at"],
    )


__all__ = ["SqlAlchemyEmailQueueRepository"]
