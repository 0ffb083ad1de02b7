"""Application event log – EventLog port and InMemoryEventLog.

The log is append-only. :meth:`EventLog.append` makes an event durable and
returns it; :meth:`EventLog.publish` hands a stored event to the ``"*"``
subscribers of the bus and marks it published. :meth:`EventLog.record`
does both, in that order. Events that were appended but never published
(for example because the process stopped in between) are returned by
:meth:`EventLog.unpublished` and re-sent by :class:`OutboxRelay`.
"""

from __future__ import annotations

import abc
import inspect
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable

from depot_notify.application.event_bus import WILDCARD, EmitReport, EventBus
from depot_notify.kernel.events import AggregateType, DomainEvent, DomainEventType, NewDomainEvent
from depot_notify.kernel.time import Clock, SystemClock
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)

ReplayHandler = Callable[[DomainEvent], Awaitable[None] | None]


class EventLog(abc.ABC):
    """Port – durable, append-only log of :class:`DomainEvent` records.

    Backends implement the storage primitives (``_store`` and the queries);
    stamping, publishing and replay live here.
    """

    def __init__(self, bus: EventBus | None = None, clock: Clock | None = None) -> None:
        self._bus = bus or EventBus()
        self._clock = clock or SystemClock()

    @property
    def bus(self) -> EventBus:
        return self._bus

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def append(self, event: NewDomainEvent) -> DomainEvent:
        """Assign id and timestamp, store, and return the stored event."""
        stored = DomainEvent.stamp(event, event_id=str(uuid.uuid4()), occurred_at=self._clock.now())
        await self._store(stored)
        logger.debug(
            "event_log.appended",
            event_id=stored.id,
            event_type=stored.event_type,
            aggregate_id=stored.aggregate_id,
        )
        return stored

    async def publish(self, event: DomainEvent) -> EmitReport:
        """Broadcast *event* to ``"*"`` subscribers and mark it published.

        Subscriber failures are isolated by the bus; the event counts as
        published either way.
        """
        report = await self._bus.broadcast(event)
        await self.mark_published(event.id)
        return report

    async def record(self, event: NewDomainEvent) -> DomainEvent:
        """Append then publish; returns once every subscriber has finished."""
        stored = await self.append(event)
        await self.publish(stored)
        return stored

    def subscribe(self, handler: Callable[[DomainEvent], Any], priority: int = 0) -> str:
        """Register *handler* for every published event."""
        return self._bus.on(WILDCARD, handler, priority)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._bus.off(WILDCARD, subscription_id)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def replay(
        self,
        aggregate_id: str,
        aggregate_type: AggregateType,
        handler: ReplayHandler,
    ) -> int:
        """Feed the aggregate's events to *handler* in stored order.

        Nothing is published. Returns the number of events replayed.
        """
        events = await self.get_events(aggregate_id, aggregate_type)
        for event in events:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        return len(events)

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def _store(self, event: DomainEvent) -> None: ...

    @abc.abstractmethod
    async def mark_published(self, event_id: str) -> None: ...

    @abc.abstractmethod
    async def unpublished(self, limit: int = 100) -> list[DomainEvent]:
        """Oldest-first events that were appended but never published."""

    @abc.abstractmethod
    async def get_events(
        self, aggregate_id: str, aggregate_type: AggregateType | None = None
    ) -> list[DomainEvent]:
        """Events for one aggregate in insertion order."""

    @abc.abstractmethod
    async def get_events_by_type(self, event_type: DomainEventType, limit: int = 100) -> list[DomainEvent]:
        """The last *limit* events of *event_type*, oldest first."""

    @abc.abstractmethod
    async def get_all_events(self, since: datetime | None = None, limit: int = 1000) -> list[DomainEvent]:
        """The last *limit* events with ``occurred_at > since``, oldest first."""


class InMemoryEventLog(EventLog):
    """In-memory :class:`EventLog` for tests and local development."""

    def __init__(self, bus: EventBus | None = None, clock: Clock | None = None) -> None:
        super().__init__(bus, clock)
        self._events: list[DomainEvent] = []
        self._published: set[str] = set()

    async def _store(self, event: DomainEvent) -> None:
        self._events.append(event)

    async def mark_published(self, event_id: str) -> None:
        self._published.add(event_id)

    async def unpublished(self, limit: int = 100) -> list[DomainEvent]:
        return [e for e in self._events if e.id not in self._published][:limit]

    async def get_events(
        self, aggregate_id: str, aggregate_type: AggregateType | None = None
    ) -> list[DomainEvent]:
        return [
            e
            for e in self._events
            if e.aggregate_id == aggregate_id
            and (aggregate_type is None or e.aggregate_type == aggregate_type)
        ]

    async def get_events_by_type(self, event_type: DomainEventType, limit: int = 100) -> list[DomainEvent]:
        return _tail([e for e in self._events if e.type == event_type], limit)

    async def get_all_events(self, since: datetime | None = None, limit: int = 1000) -> list[DomainEvent]:
        events = self._events if since is None else [e for e in self._events if e.occurred_at > since]
        return _tail(events, limit)

    def __len__(self) -> int:
        return len(self._events)


def _tail(events: list[DomainEvent], limit: int) -> list[DomainEvent]:
    return list(events[-limit:]) if limit > 0 else []


__all__ = ["EventLog", "InMemoryEventLog", "ReplayHandler"]
