from __future__ import annotations
import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional

from sqlalchemy import DateTime, Integer, String, Text, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tasklist.domain.errors import (
    StorageReadError,
    StorageUnavailableError,
    StorageWriteError,
    TaskNotFoundError,
)
from tasklist.domain.task_models import Task, new_task_id
from tasklist.infra.db.sqlite import make_engine, make_sessionmaker, make_sqlite_url

logger = logging.getLogger("tasklist.store")


class Base(DeclarativeBase):
    pass


class TaskRow(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # insertion order; never reassigned
    seq: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_domain(self) -> Task:
        return Task(id=self.id, title=self.title)


class SQLiteTaskStore:
    """
    Task store on a single long-lived AsyncSession.

    With autosave every mutation is committed before the call returns.
    Without it each mutation is flushed inside its own SAVEPOINT of the open
    transaction and only committed by flush() or close(). A failed mutation
    then undoes itself and leaves the earlier buffered ones in place.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None,
        *,
        autosave: bool = True,
    ):
        self.engine = engine
        self.sessionmaker = sessionmaker or make_sessionmaker(engine)
        self.autosave = autosave
        self._session: Optional[AsyncSession] = None
        self._next_seq = 1
        self._unsaved = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_path(cls, db_path: str | Path, *, autosave: bool = True) -> SQLiteTaskStore:
        try:
            url = make_sqlite_url(db_path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot prepare {db_path}: {exc}") from exc
        return cls(make_engine(url), autosave=autosave)

    @property
    def has_changes(self) -> bool:
        if self._session is None:
            return False
        s = self._session
        return self._unsaved or bool(s.new or s.dirty or s.deleted)

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise StorageUnavailableError("Task store is not open")
        return self._session

    async def open(self) -> None:
        if self._session is not None:
            return
        session = self.sessionmaker()
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            last_seq = await session.scalar(select(func.max(TaskRow.seq)))
            if self.autosave:
                await session.commit()
        except SQLAlchemyError as exc:
            await session.close()
            logger.error(
                "store.open.failed",
                extra={"category": "store", "event": "store.open.failed", "error": str(exc)},
            )
            raise StorageUnavailableError(f"Cannot open task store: {exc}") from exc

        self._session = session
        self._next_seq = (last_seq or 0) + 1
        logger.info(
            "store.open",
            extra={
                "category": "store",
                "event": "store.open",
                "url": str(self.engine.url),
                "autosave": self.autosave,
                "total": self._next_seq - 1,
            },
        )

    async def close(self) -> None:
        if self._session is None:
            return
        try:
            await self.flush()
        finally:
            async with self._lock:
                await self._session.close()
                self._session = None
            await self.engine.dispose()
            logger.info("store.close", extra={"category": "store", "event": "store.close"})

    async def load_all(self) -> List[Task]:
        async with self._lock:
            session = self._require_session()
            try:
                res = await session.execute(select(TaskRow).order_by(TaskRow.seq))
                rows = res.scalars().all()
                if self.autosave:
                    # nothing buffered; end the read transaction
                    await session.commit()
            except SQLAlchemyError as exc:
                await self._rollback("load_all", exc)
                raise StorageReadError(f"Failed to fetch tasks: {exc}") from exc
            return [r.to_domain() for r in rows]

    async def create(self, title: str) -> Task:
        async with self._lock:
            now = datetime.now(timezone.utc)
            row = TaskRow(
                id=new_task_id(),
                seq=self._next_seq,
                title=title,
                created_at=now,
                updated_at=now,
            )
            async with self._mutation("create", "Failed to save task") as session:
                session.add(row)

            self._next_seq += 1
            return row.to_domain()

    async def update(self, task: Task, title: str) -> None:
        async with self._lock:
            async with self._mutation("update", "Failed to update task") as session:
                row = await self._get_row(session, task.id)
                if row is None:
                    raise TaskNotFoundError(task.id)
                row.title = title
                row.updated_at = datetime.now(timezone.utc)

    async def delete(self, task: Task) -> None:
        async with self._lock:
            async with self._mutation("delete", "Failed to delete task") as session:
                row = await self._get_row(session, task.id)
                if row is None:
                    raise TaskNotFoundError(task.id)
                await session.delete(row)

    async def flush(self) -> bool:
        async with self._lock:
            if not self.has_changes:
                return False
            session = self._require_session()
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await self._rollback("flush", exc)
                raise StorageWriteError(f"Failed to save context: {exc}") from exc
            self._unsaved = False
            logger.info("store.flush", extra={"category": "store", "event": "store.flush"})
            return True

    # ---- helpers ----

    @staticmethod
    async def _get_row(session: AsyncSession, task_id: str) -> Optional[TaskRow]:
        res = await session.execute(select(TaskRow).where(TaskRow.id == task_id))
        return res.scalar_one_or_none()

    @contextlib.asynccontextmanager
    async def _mutation(self, op: str, message: str) -> AsyncIterator[AsyncSession]:
        """
        Run one mutation. With autosave it is committed on exit; otherwise it
        runs in a SAVEPOINT so a failure undoes only this mutation and keeps
        earlier buffered ones.
        """
        session = self._require_session()
        try:
            if self.autosave:
                yield session
                await session.commit()
            else:
                async with session.begin_nested():
                    yield session
                self._unsaved = True
        except SQLAlchemyError as exc:
            if self.autosave:
                await self._rollback(op, exc)
            else:
                # begin_nested() already rolled back to the savepoint
                logger.error(
                    f"store.{op}.failed",
                    extra={"category": "store", "event": f"store.{op}.failed", "error": str(exc)},
                )
            raise StorageWriteError(f"{message}: {exc}") from exc

    async def _rollback(self, op: str, exc: Exception) -> None:
        discarded = self._unsaved
        logger.error(
            f"store.{op}.failed",
            extra={
                "category": "store",
                "event": f"store.{op}.failed",
                "error": str(exc),
                "discarded_unsaved": discarded,
            },
        )
        try:
            await self._require_session().rollback()
        except SQLAlchemyError:
            logger.exception("store.rollback.failed", extra={"category": "store", "event": "store.rollback.failed"})
            raise
        finally:
            self._unsaved = False
