"""SQLAlchemy adapter – SqlAlchemySessionFactory and the per-write transaction scope."""
from __future__ import annotations

import contextlib
from typing import Any, AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from depot_notify.adapters.sqlalchemy.tables import metadata
from depot_notify.kernel.errors import PersistenceError


class SqlAlchemySessionFactory:
    """Creates async SQLAlchemy sessions from an engine URL.

    ``SqlAlchemySessionFactory("sqlite+aiosqlite:///:memory:")`` keeps a
    single connection so every session sees the same in-memory database.
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            from sqlalchemy.pool import StaticPool

            engine_kwargs.setdefault("poolclass", StaticPool)
        self._engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def __call__(self) -> AsyncSession:
        return self._session_factory()

    async def create_schema(self) -> None:
        """Create every table of :data:`metadata` that does not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()


@contextlib.asynccontextmanager
async def transaction(sessions: SqlAlchemySessionFactory, table: str) -> AsyncIterator[AsyncSession]:
    """One session and one transaction; driver errors surface as :class:`PersistenceError`."""
    try:
        async with sessions() as session, session.begin():
            yield session
    except SQLAlchemyError as exc:
        raise PersistenceError(table, f"Failed to access '{table}': {exc}", cause=exc) from exc


__all__ = ["SqlAlchemySessionFactory", "transaction"]
