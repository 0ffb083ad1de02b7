"""Application realtime – change-feed consumers that keep local views current.

Each view performs one initial read ordered newest first, then subscribes
to row changes of its table. ``INSERT`` prepends, ``UPDATE`` replaces the
row with the same ``id`` and ``DELETE`` removes it. Changes are applied in
the order the feed delivers them; nothing is buffered or re-ordered.

A view reports ``connected`` only after the feed acknowledges the
subscription with :attr:`SubscriptionStatus.SUBSCRIBED`. :meth:`close`
releases the subscription.

Example::

    async with RealtimeNotifications(feed, reader, "U1", repository=repo) as view:
        print(view.unread_count)
"""
from __future__ import annotations

import dataclasses
import math
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Protocol

from depot_notify.application.notifications.repository import NotificationRepository
from depot_notify.kernel.errors import InfrastructureError
from depot_notify.kernel.time import Clock, SystemClock
from depot_notify.observability.logging import get_logger

logger = get_logger(__name__)

Row = dict[str, Any]


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SubscriptionStatus(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"
    CHANNEL_ERROR = "CHANNEL_ERROR"


@dataclasses.dataclass(frozen=True)
class RowChange:
    """One row-level change; ``old`` carries at least the ``id`` on DELETE."""

    table: str
    kind: ChangeKind
    new: Row | None = None
    old: Row | None = None


ChangeHandler = Callable[[RowChange], Awaitable[None]]
StatusHandler = Callable[[SubscriptionStatus], None]


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------


class ChangeFeed(Protocol):
    """Port: subscribe to the changes of one table, optionally filtered by
    equality on a single column."""

    def subscribe(
        self,
        table: str,
        on_change: ChangeHandler,
        *,
        where: tuple[str, Any] | None = None,
        on_status: StatusHandler | None = None,
    ) -> str: ...

    def release(self, subscription_id: str) -> None: ...


class TableReader(Protocol):
    """Port: initial bulk read with equality filters and ordering."""

    async def fetch(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Row]: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class _FeedSubscription:
    id: str
    table: str
    on_change: ChangeHandler
    where: tuple[str, Any] | None
    on_status: StatusHandler | None


class InMemoryChangeFeed:
    """Feed driven by the test: :meth:`push` delivers a change, :meth:`set_status`
    reports a transport state to every open subscription.

    With ``auto_ack`` (default) a new subscription is acknowledged as
    ``SUBSCRIBED`` immediately.
    """

    def __init__(self, auto_ack: bool = True) -> None:
        self._auto_ack = auto_ack
        self._subscriptions: dict[str, _FeedSubscription] = {}

    def subscribe(
        self,
        table: str,
        on_change: ChangeHandler,
        *,
        where: tuple[str, Any] | None = None,
        on_status: StatusHandler | None = None,
    ) -> str:
        sub = _FeedSubscription(str(uuid.uuid4()), table, on_change, where, on_status)
        self._subscriptions[sub.id] = sub
        if self._auto_ack and on_status is not None:
            on_status(SubscriptionStatus.SUBSCRIBED)
        return sub.id

    def release(self, subscription_id: str) -> None:
        sub = self._subscriptions.pop(subscription_id, None)
        if sub is not None and sub.on_status is not None:
            sub.on_status(SubscriptionStatus.CLOSED)

    def active(self, table: str | None = None) -> int:
        return sum(1 for s in self._subscriptions.values() if table is None or s.table == table)

    def set_status(self, status: SubscriptionStatus, table: str | None = None) -> None:
        for sub in list(self._subscriptions.values()):
            if sub.on_status is not None and (table is None or sub.table == table):
                sub.on_status(status)

    async def push(
        self,
        table: str,
        kind: ChangeKind | str,
        *,
        new: Row | None = None,
        old: Row | None = None,
    ) -> int:
        """Deliver a change to every matching subscription; returns how many saw it."""
        change = RowChange(table=table, kind=ChangeKind(kind), new=new, old=old)
        row = change.old if change.kind is ChangeKind.DELETE else change.new
        delivered = 0
        for sub in list(self._subscriptions.values()):
            if sub.table != table:
                continue
            if sub.where is not None:
                column, value = sub.where
                if (row or {}).get(column) != value:
                    continue
            await sub.on_change(change)
            delivered += 1
        return delivered


class InMemoryTableReader:
    """Reads from plain lists of row dicts; set ``fail_with`` to make reads raise."""

    def __init__(self, tables: Mapping[str, list[Row]] | None = None) -> None:
        self.tables: dict[str, list[Row]] = {k: list(v) for k, v in (tables or {}).items()}
        self.fail_with: Exception | None = None

    async def fetch(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Row]:
        if self.fail_with is not None:
            raise self.fail_with
        rows = [
            dict(r)
            for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in (where or {}).items())
        ]
        if order_by is not None:
            rows.sort(key=lambda r: r.get(order_by), reverse=descending)
        return rows if limit is None else rows[:limit]


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class RealtimeCollection:
    """Locally mirrored rows of one table.

    Parameters
    ----------
    where:
        Optional ``(column, value)`` equality filter, applied to both the
        initial read and the subscription.
    limit:
        Caps the initial read only; inserted rows are always prepended.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        reader: TableReader,
        table: str,
        *,
        where: tuple[str, Any] | None = None,
        limit: int | None = None,
    ) -> None:
        self._feed = feed
        self._reader = reader
        self._table = table
        self._where = where
        self._limit = limit
        self._rows: list[Row] = []
        self._subscription_id: str | None = None
        self.connected = False
        self.error: Exception | None = None

    @property
    def table(self) -> str:
        return self._table

    @property
    def rows(self) -> list[Row]:
        return list(self._rows)

    async def start(self) -> None:
        try:
            fetched = await self._reader.fetch(
                self._table,
                where=dict([self._where]) if self._where else None,
                limit=self._limit,
            )
        except InfrastructureError as exc:
            self.error = exc
            self.connected = False
            logger.warning("realtime.initial_fetch_failed", table=self._table, error=str(exc))
            return
        self._rows = [self._normalise(r) for r in fetched]
        self._refresh()
        self._subscription_id = self._feed.subscribe(
            self._table, self._on_change, where=self._where, on_status=self._on_status
        )

    async def close(self) -> None:
        if self._subscription_id is not None:
            self._feed.release(self._subscription_id)
            self._subscription_id = None
        self.connected = False

    async def __aenter__(self) -> "RealtimeCollection":
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    def _on_status(self, status: SubscriptionStatus) -> None:
        self.connected = status is SubscriptionStatus.SUBSCRIBED
        if self.connected:
            self.error = None
        logger.debug("realtime.status", table=self._table, status=status.value)

    async def _on_change(self, change: RowChange) -> None:
        if change.kind is ChangeKind.INSERT and change.new is not None:
            self._rows.insert(0, self._normalise(change.new))
        elif change.kind is ChangeKind.UPDATE and change.new is not None:
            updated = self._normalise(change.new)
            self._rows = [updated if r.get("id") == updated.get("id") else r for r in self._rows]
        elif change.kind is ChangeKind.DELETE and change.old is not None:
            gone = change.old.get("id")
            self._rows = [r for r in self._rows if r.get("id") != gone]
        self._refresh()

    def _normalise(self, row: Row) -> Row:
        return dict(row)

    def _refresh(self) -> None:
        """Hook for derived state after the rows change."""


class RealtimeTasks(RealtimeCollection):
    """The ``tasks`` table, restricted to one assignee when *user_id* is given."""

    def __init__(self, feed: ChangeFeed, reader: TableReader, user_id: str | None = None) -> None:
        super().__init__(feed, reader, "tasks", where=("assigned_to", user_id) if user_id else None)

    @property
    def tasks(self) -> list[Row]:
        return self.rows


class RealtimeNotifications(RealtimeCollection):
    """The 50 newest notifications of one user plus an unread counter.

    :meth:`mark_as_read` and :meth:`mark_all_as_read` write through
    *repository*; the local rows change when the resulting UPDATEs arrive
    on the feed. Write failures are kept in :attr:`error`.
    """

    LIMIT = 50

    def __init__(
        self,
        feed: ChangeFeed,
        reader: TableReader,
        user_id: str,
        *,
        repository: NotificationRepository | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(feed, reader, "notifications", where=("user_id", user_id), limit=self.LIMIT)
        self._user_id = user_id
        self._repository = repository
        self._clock = clock or SystemClock()
        self.unread_count = 0

    @property
    def notifications(self) -> list[Row]:
        return self.rows

    def _normalise(self, row: Row) -> Row:
        created_at = row.get("created_at") or self._clock.now().isoformat()
        return {
            "id": row.get("id"),
            "user_id": row.get("user_id"),
            "type": row.get("type"),
            "channel": row.get("channel"),
            "title": row.get("title"),
            "message": row.get("message"),
            "read": bool(row.get("read")),
            "created_at": created_at,
        }

    def _refresh(self) -> None:
        self.unread_count = sum(1 for r in self._rows if not r["read"])

    async def mark_as_read(self, notification_id: str) -> bool:
        if self._repository is None:
            return False
        try:
            return await self._repository.mark_as_read(notification_id)
        except InfrastructureError as exc:
            self.error = exc
            return False

    async def mark_all_as_read(self) -> int:
        if self._repository is None:
            return 0
        try:
            return await self._repository.mark_all_as_read(self._user_id)
        except InfrastructureError as exc:
            self.error = exc
            return 0


# ---------------------------------------------------------------------------
# Occupancy
# ---------------------------------------------------------------------------


def _percent(part: float, total: float) -> int:
    return math.floor(part / total * 100 + 0.5) if total > 0 else 0


@dataclasses.dataclass(frozen=True)
class HallUtilization:
    hall_name: str
    total_sq_ft: float
    occupied_sq_ft: float
    available_sq_ft: float
    utilization_percent: int


@dataclasses.dataclass(frozen=True)
class FloorUtilization:
    floor_number: int
    total_sq_ft: float
    occupied_sq_ft: float
    available_sq_ft: float
    utilization_percent: int
    halls: tuple[HallUtilization, ...] = ()


@dataclasses.dataclass(frozen=True)
class WarehouseUtilization:
    total_sq_ft: float = 0
    occupied_sq_ft: float = 0
    available_sq_ft: float = 0
    utilization_percent: int = 0
    floors: tuple[FloorUtilization, ...] = ()


class RealtimeOccupancy:
    """Floor and hall utilisation of one warehouse (or the first one found).

    Recomputed from ``warehouse_floors``/``warehouse_halls`` whenever a
    ``warehouse_halls`` or ``bookings`` row changes.
    """

    WATCHED_TABLES = ("warehouse_halls", "bookings")

    def __init__(self, feed: ChangeFeed, reader: TableReader, warehouse_id: str | None = None) -> None:
        self._feed = feed
        self._reader = reader
        self._warehouse_id = warehouse_id
        self._status: dict[str, SubscriptionStatus] = {}
        self._subscription_ids: list[str] = []
        self.utilization = WarehouseUtilization()
        self.error: Exception | None = None

    @property
    def connected(self) -> bool:
        return bool(self._subscription_ids) and all(
            self._status.get(table) is SubscriptionStatus.SUBSCRIBED for table in self.WATCHED_TABLES
        )

    async def start(self) -> None:
        await self.recalculate()
        for table in self.WATCHED_TABLES:
            self._subscription_ids.append(
                self._feed.subscribe(table, self._on_change, on_status=self._status_recorder(table))
            )

    async def close(self) -> None:
        for sid in self._subscription_ids:
            self._feed.release(sid)
        self._subscription_ids.clear()
        self._status.clear()

    async def __aenter__(self) -> "RealtimeOccupancy":
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    def _status_recorder(self, table: str) -> StatusHandler:
        def record(status: SubscriptionStatus) -> None:
            self._status[table] = status

        return record

    async def _on_change(self, change: RowChange) -> None:
        logger.debug("realtime.occupancy_change", table=change.table, kind=change.kind.value)
        await self.recalculate()

    async def recalculate(self) -> WarehouseUtilization:
        try:
            self.utilization = await self._compute()
        except InfrastructureError as exc:
            self.error = exc
            logger.warning("realtime.occupancy_failed", warehouse_id=self._warehouse_id, error=str(exc))
        return self.utilization

    async def _compute(self) -> WarehouseUtilization:
        warehouses = await self._reader.fetch(
            "warehouses",
            where={"id": self._warehouse_id} if self._warehouse_id else None,
            order_by=None,
        )
        if not warehouses:
            return self.utilization
        warehouse = warehouses[0]

        floor_rows = await self._reader.fetch(
            "warehouse_floors",
            where={"warehouse_id": warehouse["id"]},
            order_by="floor_number",
            descending=False,
        )
        floors: list[FloorUtilization] = []
        for floor in floor_rows:
            hall_rows = await self._reader.fetch(
                "warehouse_halls",
                where={"floor_id": floor["id"]},
                order_by="hall_name",
                descending=False,
            )
            halls = tuple(
                HallUtilization(
                    hall_name=h.get("hall_name", ""),
                    total_sq_ft=h.get("sq_ft") or 0,
                    occupied_sq_ft=h.get("occupied_sq_ft") or 0,
                    available_sq_ft=h.get("available_sq_ft") or 0,
                    utilization_percent=_percent(h.get("occupied_sq_ft") or 0, h.get("sq_ft") or 0),
                )
                for h in hall_rows
            )
            total = sum(h.total_sq_ft for h in halls)
            occupied = sum(h.occupied_sq_ft for h in halls)
            floors.append(
                FloorUtilization(
                    floor_number=floor.get("floor_number", 0),
                    total_sq_ft=total,
                    occupied_sq_ft=occupied,
                    available_sq_ft=total - occupied,
                    utilization_percent=_percent(occupied, total),
                    halls=halls,
                )
            )

        total = sum(f.total_sq_ft for f in floors)
        occupied = sum(f.occupied_sq_ft for f in floors)
        return WarehouseUtilization(
            total_sq_ft=total,
            occupied_sq_ft=occupied,
            available_sq_ft=total - occupied,
            utilization_percent=_percent(occupied, total),
            floors=tuple(floors),
        )


__all__ = [
    "ChangeFeed",
    "ChangeHandler",
    "ChangeKind",
    "FloorUtilization",
    "HallUtilization",
    "InMemoryChangeFeed",
    "InMemoryTableReader",
    "RealtimeCollection",
    "RealtimeNotifications",
    "RealtimeOccupancy",
    "RealtimeTasks",
    "RowChange",
    "StatusHandler",
    "SubscriptionStatus",
    "TableReader",
    "WarehouseUtilization",
]
