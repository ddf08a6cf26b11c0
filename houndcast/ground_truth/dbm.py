"""
Database manager for the ground truth store.

Results are read far more often than written, so a local sqlite file
(aiosqlite) is the default; any async SQLAlchemy URL works.
"""
from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping

from sqlalchemy import event, insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from houndcast.config import DatabaseSettings

from .schema import Base, DogRaceInfo


# WAL is a per-connection pragma, so set it on each connect
def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def build_sqlite_url(path: str) -> str:
    return f"sqlite+aiosqlite:///{os.path.abspath(path)}"


def _ensure_sqlite_dir(url: str) -> None:
    prefix = "sqlite+aiosqlite:///"
    if not url.startswith(prefix):
        return
    path = url[len(prefix):]
    if path and path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)


class DBM:
    def __init__(self, settings: DatabaseSettings | None = None, *, url: str | None = None):
        self.settings = settings or DatabaseSettings()
        self.url = url or self.settings.url
        _ensure_sqlite_dir(self.url)

        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=self.settings.echo,
            future=True,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", set_sqlite_pragma)

        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def insert_results(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Bulk insert ``dog_race_info`` rows and return how many were written."""
        batch = [dict(row) for row in rows]
        if not batch:
            return 0
        async with self.session() as session:
            async with session.begin():
                await session.execute(insert(DogRaceInfo), batch)
        return len(batch)

    async def dispose(self) -> None:
        await self.engine.dispose()
