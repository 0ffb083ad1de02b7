"""SQLAlchemy adapter – SqlAlchemyEventLog.

Events live in one ``domain_events`` table. ``seq`` is an autoincrement
key that fixes insertion order; ``published`` backs the outbox relay.
Rows are never updated except to flip ``published``.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import insert, select, update

from depot_notify.adapters.sqlalchemy.session import SqlAlchemySessionFactory, transaction
from depot_notify.adapters.sqlalchemy.tables import domain_events
from depot_notify.application.event_bus import EventBus
from depot_notify.application.event_log import EventLog
from depot_notify.kernel.events import AggregateType, DomainEvent, DomainEventType
from depot_notify.kernel.time import Clock

_c = domain_events.c


class SqlAlchemyEventLog(EventLog):
    TABLE = domain_events.name

    def __init__(
        self,
        sessions: SqlAlchemySessionFactory,
        bus: EventBus | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(bus, clock)
        self._sessions = sessions

    async def _store(self, event: DomainEvent) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(
                insert(domain_events).values(
                    id=event.id,
                    type=event.type.value,
                    aggregate_id=event.aggregate_id,
                    aggregate_type=event.aggregate_type.value,
                    version=event.version,
                    payload=event.payload,
                    metadata=event.metadata,
                    occurred_at=event.occurred_at,
                    correlation_id=event.correlation_id,
                    causation_id=event.causation_id,
                    published=False,
                )
            )

    async def mark_published(self, event_id: str) -> None:
        async with transaction(self._sessions, self.TABLE) as session:
            await session.execute(update(domain_events).where(_c.id == event_id).values(published=True))

    async def unpublished(self, limit: int = 100) -> list[DomainEvent]:
        stmt = select(domain_events).where(_c.published.is_(False)).order_by(_c.seq).limit(limit)
        return await self._fetch(stmt)

    async def get_events(
        self, aggregate_id: str, aggregate_type: AggregateType | None = None
    ) -> list[DomainEvent]:
        stmt = select(domain_events).where(_c.aggregate_id == aggregate_id)
        if aggregate_type is not None:
            stmt = stmt.where(_c.aggregate_type == AggregateType(aggregate_type).value)
        return await self._fetch(stmt.order_by(_c.seq))

    async def get_events_by_type(self, event_type: DomainEventType, limit: int = 100) -> list[DomainEvent]:
        if limit <= 0:
            return []
        stmt = (
            select(domain_events)
            .where(_c.type == DomainEventType(event_type).value)
            .order_by(_c.seq.desc())
            .limit(limit)
        )
        return list(reversed(await self._fetch(stmt)))

    async def get_all_events(self, since: datetime | None = None, limit: int = 1000) -> list[DomainEvent]:
        if limit <= 0:
            return []
        stmt = select(domain_events)
        if since is not None:
            stmt = stmt.where(_c.occurred_at > since)
        stmt = stmt.order_by(_c.seq.desc()).limit(limit)
        return list(reversed(await self._fetch(stmt)))

    async def _fetch(self, stmt: Any) -> list[DomainEvent]:
        async with transaction(self._sessions, self.TABLE) as session:
            rows = (await session.execute(stmt)).all()
        return [_to_event(r._mapping) for r in rows]


def _to_event(row: Any) -> DomainEvent:
    return DomainEvent(
        id=row["id"],
        type=DomainEventType(row["type"]),
        aggregate_id=row["aggregate_id"],
        aggregate_type=AggregateType(row["aggregate_type"]),
        version=row["version"],
        payload=dict(row["payload"] or {}),
        metadata=dict(row["metadata"] or {}),
        occurred_at=row["occurred_at"],
        correlation_id=row["correlation_id"],
        causation_id=row["causation_id"],
    )


__all__ = ["SqlAlchemyEventLog"]
