"""SQLAlchemy adapter – SqlAlchemyTableReader for the realtime views.

Tables outside this package's own layout (``tasks``, ``warehouses``,
``warehouse_floors`` ...) are reflected from the database on first use.
"""
from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import MetaData, Table, select

from depot_notify.adapters.sqlalchemy.session import SqlAlchemySessionFactory, transaction
from depot_notify.adapters.sqlalchemy.tables import metadata


class SqlAlchemyTableReader:
    def __init__(self, sessions: SqlAlchemySessionFactory) -> None:
        self._sessions = sessions
        self._reflected = MetaData()

    async def fetch(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        async with transaction(self._sessions, table) as session:
            t = await self._table(session, table)
            stmt = select(t)
            for column, value in (where or {}).items():
                stmt = stmt.where(t.c[column] == value)
            if order_by is not None:
                stmt = stmt.order_by(t.c[order_by].desc() if descending else t.c[order_by].asc())
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = (await session.execute(stmt)).all()
        return [dict(r._mapping) for r in rows]

    async def _table(self, session: Any, name: str) -> Table:
        if name in metadata.tables:
            return metadata.tables[name]
        if name not in self._reflected.tables:
            conn = await session.connection()
            await conn.run_sync(lambda sync_conn: Table(name, self._reflected, autoload_with=sync_conn))
        return self._reflected.tables[name]


__all__ = ["SqlAlchemyTableReader"]
