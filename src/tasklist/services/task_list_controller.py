import logging
from enum import Enum
from typing import List, Optional, Tuple

from tasklist.domain.errors import StorageReadError, StorageWriteError
from tasklist.domain.ports import ListDisplay, TaskStore
from tasklist.domain.task_models import Task, is_blank
from tasklist.services.display import NullDisplay

logger = logging.getLogger("tasklist.tasks")


class ListState(str, Enum):
    empty = "empty"
    loaded = "loaded"


class TaskListController:
    """
    Keeps an ordered cache of the store's tasks and tells the display which
    rows changed. The cache is only touched after the store call succeeded.
    """

    def __init__(self, store: TaskStore, display: Optional[ListDisplay] = None):
        self.store = store
        self.display: ListDisplay = display or NullDisplay()
        self.state = ListState.empty
        self._tasks: List[Task] = []

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return tuple(self._tasks)

    def index_of(self, task_id: str) -> Optional[int]:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def get(self, task_id: str) -> Optional[Task]:
        i = self.index_of(task_id)
        return None if i is None else self._tasks[i]

    async def refresh(self) -> None:
        try:
            tasks = await self.store.load_all()
        except StorageReadError as exc:
            logger.warning(
                "task.refresh.failed",
                extra={"category": "tasks", "event": "task.refresh.failed", "error": str(exc)},
            )
            tasks = []

        self._tasks = list(tasks)
        self.state = ListState.loaded
        logger.info("task.refresh", extra={"category": "tasks", "event": "task.refresh", "total": len(self._tasks)})
        self.display.reload(self.tasks)

    async def add_task(self, title: str) -> Optional[Task]:
        if is_blank(title):
            return None

        try:
            task = await self.store.create(title)
        except StorageWriteError as exc:
            logger.warning(
                "task.create.failed",
                extra={"category": "tasks", "event": "task.create.failed", "title": title, "error": str(exc)},
            )
            return None

        self._tasks.append(task)
        index = len(self._tasks) - 1
        logger.info(
            "task.create",
            extra={"category": "tasks", "event": "task.create", "task_id": task.id, "title": title, "index": index},
        )
        self.display.insert_row(index, task)
        return task

    async def rename_task(self, task: Task, new_title: str) -> Optional[Task]:
        if is_blank(new_title):
            return None
        if self.index_of(task.id) is None:
            logger.warning(
                "task.update.unknown",
                extra={"category": "tasks", "event": "task.update.unknown", "task_id": task.id},
            )
            return None

        try:
            await self.store.update(task, new_title)
        except StorageWriteError as exc:
            logger.warning(
                "task.update.failed",
                extra={"category": "tasks", "event": "task.update.failed", "task_id": task.id, "error": str(exc)},
            )
            return None

        # position by identity, looked up again after the await
        index = self.index_of(task.id)
        if index is None:
            return None
        renamed = task.renamed(new_title)
        self._tasks[index] = renamed
        logger.info(
            "task.update",
            extra={"category": "tasks", "event": "task.update", "task_id": task.id, "title": new_title, "index": index},
        )
        self.display.update_row(index, renamed)
        return renamed

    async def remove_task(self, task: Task) -> bool:
        if self.index_of(task.id) is None:
            logger.warning(
                "task.delete.unknown",
                extra={"category": "tasks", "event": "task.delete.unknown", "task_id": task.id},
            )
            return False

        try:
            await self.store.delete(task)
        except StorageWriteError as exc:
            logger.warning(
                "task.delete.failed",
                extra={"category": "tasks", "event": "task.delete.failed", "task_id": task.id, "error": str(exc)},
            )
            return False

        index = self.index_of(task.id)
        if index is None:
            return True
        del self._tasks[index]
        logger.info(
            "task.delete",
            extra={"category": "tasks", "event": "task.delete", "task_id": task.id, "index": index},
        )
        self.display.remove_row(index)
        return True
