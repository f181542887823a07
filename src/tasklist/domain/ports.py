from __future__ import annotations

from typing import List, Protocol, Sequence

from tasklist.domain.task_models import Task


class TaskStore(Protocol):
    """Durable CRUD for tasks. Enumeration order is insertion order."""

    @property
    def has_changes(self) -> bool: ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def load_all(self) -> List[Task]: ...

    async def create(self, title: str) -> Task: ...

    async def update(self, task: Task, title: str) -> None: ...

    async def delete(self, task: Task) -> None: ...

    async def flush(self) -> bool: ...


class ListDisplay(Protocol):
    """Receives structural row notifications from the list controller."""

    def reload(self, tasks: Sequence[Task]) -> None: ...

    def insert_row(self, index: int, task: Task) -> None: ...

    def update_row(self, index: int, task: Task) -> None: ...

    def remove_row(self, index: int) -> None: ...
