from __future__ import annotations


class StorageError(Exception):
    """Base class for failures of the durable task medium."""


class StorageUnavailableError(StorageError):
    """The medium could not be opened at startup."""


class StorageReadError(StorageError):
    """Enumerating tasks failed."""


class StorageWriteError(StorageError):
    """A create, update, delete or flush could not be persisted."""


class TaskNotFoundError(StorageWriteError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
