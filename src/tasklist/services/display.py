from __future__ import annotations
from typing import Sequence

from tasklist.domain.task_models import Task


class NullDisplay:
    """Display that renders nothing; used when no surface is attached."""

    def reload(self, tasks: Sequence[Task]) -> None:
        pass

    def insert_row(self, index: int, task: Task) -> None:
        pass

    def update_row(self, index: int, task: Task) -> None:
        pass

    def remove_row(self, index: int) -> None:
        pass
