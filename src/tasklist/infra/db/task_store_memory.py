from __future__ import annotations
import asyncio
import logging
from typing import Dict, List

from tasklist.domain.errors import StorageUnavailableError, TaskNotFoundError
from tasklist.domain.task_models import Task, new_task_id

logger = logging.getLogger("tasklist.store")


class InMemoryTaskStore:
    """
    Process-local store. Nothing is durable, so flush() never has work to do.
    Handy for demos and controller tests; swap with SQLiteTaskStore without
    touching the controller.
    """
    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._open = False
        self._lock = asyncio.Lock()

    @property
    def has_changes(self) -> bool:
        return False

    def _require_open(self) -> None:
        if not self._open:
            raise StorageUnavailableError("Task store is not open")

    async def open(self) -> None:
        self._open = True
        logger.info("store.open", extra={"category": "store", "event": "store.open", "url": "memory://"})

    async def close(self) -> None:
        self._open = False

    async def load_all(self) -> List[Task]:
        async with self._lock:
            self._require_open()
            # dicts keep insertion order
            return list(self._tasks.values())

    async def create(self, title: str) -> Task:
        async with self._lock:
            self._require_open()
            task = Task(id=new_task_id(), title=title)
            self._tasks[task.id] = task
            return task

    async def update(self, task: Task, title: str) -> None:
        async with self._lock:
            self._require_open()
            if task.id not in self._tasks:
                raise TaskNotFoundError(task.id)
            # reassigning an existing key keeps its position
            self._tasks[task.id] = self._tasks[task.id].renamed(title)

    async def delete(self, task: Task) -> None:
        async with self._lock:
            self._require_open()
            if self._tasks.pop(task.id, None) is None:
                raise TaskNotFoundError(task.id)

    async def flush(self) -> bool:
        return False
