# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from tasklist.config import Settings
from tasklist.infra.db.task_store_sqlite import SQLiteTaskStore
from tasklist.services.task_list_controller import TaskListController

from fakes import FlakyStore, RecordingDisplay


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "tasks.db",
        store_backend="sqlite",
        autosave=True,
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        log_to_file=True,
    )


@pytest.fixture()
async def sqlite_store(tmp_path: Path):
    store = SQLiteTaskStore.from_path(tmp_path / "tasks.db")
    await store.open()
    yield store
    await store.close()


@pytest.fixture()
async def deferred_store(tmp_path: Path):
    store = SQLiteTaskStore.from_path(tmp_path / "deferred.db", autosave=False)
    await store.open()
    yield store
    await store.close()


@pytest.fixture()
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture()
async def flaky_store() -> FlakyStore:
    store = FlakyStore()
    await store.open()
    return store


@pytest.fixture()
async def controller(flaky_store: FlakyStore, display: RecordingDisplay) -> TaskListController:
    ctl = TaskListController(flaky_store, display)
    await ctl.refresh()
    display.events.clear()
    flaky_store.calls.clear()
    return ctl
