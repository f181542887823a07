from __future__ import annotations
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def make_sqlite_url(db_path: str | Path) -> str:
    # db_path like "./data/tasklist.db"
    p = Path(db_path).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{p.as_posix()}"


def make_engine(sqlite_url: str) -> AsyncEngine:
    engine = create_async_engine(sqlite_url)

    # The driver's own BEGIN handling breaks SAVEPOINT; emit BEGIN ourselves
    # so session.begin_nested() really nests.
    @event.listens_for(engine.sync_engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # rows stay readable after commit; the store hands out Task copies anyway
    return async_sessionmaker(engine, expire_on_commit=False)
