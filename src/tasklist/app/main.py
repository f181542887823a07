import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from tasklist.app import display_ws
from tasklist.app.display_ws import RowBroadcaster
from tasklist.app.middleware.access_log import AccessLogMiddleware
from tasklist.app.routes import lifecycle, tasks
from tasklist.config import Settings, load_settings
from tasklist.domain.ports import TaskStore
from tasklist.infra.db.task_store_memory import InMemoryTaskStore
from tasklist.infra.db.task_store_sqlite import SQLiteTaskStore
from tasklist.observability.logging import setup_logging
from tasklist.services.task_list_controller import TaskListController

logger = logging.getLogger("tasklist.system")


def build_store(settings: Settings) -> TaskStore:
    if settings.store_backend == "memory":
        return InMemoryTaskStore()
    return SQLiteTaskStore.from_path(settings.db_path, autosave=settings.autosave)


def create_app(settings: Optional[Settings] = None, store: Optional[TaskStore] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings)
    logger.info("system.start", extra={"category": "system", "event": "system.start"})

    app = FastAPI(title="Task List")
    app.add_middleware(AccessLogMiddleware)

    # One store per app, owned here and handed to the controller
    if store is None:
        store = build_store(settings)
    display = RowBroadcaster()
    controller = TaskListController(store, display)

    app.state.settings = settings
    app.state.store = store
    app.state.display = display
    app.state.controller = controller

    app.include_router(tasks.router)
    app.include_router(lifecycle.router)
    app.include_router(display_ws.router)

    # StorageUnavailableError from open() aborts startup; the process decides what to do
    @app.on_event("startup")
    async def _startup():
        await store.open()
        await controller.refresh()
        logger.info(
            "db.ready",
            extra={
                "category": "system",
                "event": "db.ready",
                "backend": settings.store_backend,
                "db_path": str(settings.db_path),
                "total": len(controller.tasks),
            },
        )

    @app.on_event("shutdown")
    async def _shutdown():
        await store.close()
        logger.info("system.stop", extra={"category": "system", "event": "system.stop"})

    return app


def run() -> None:
    uvicorn.run(create_app, factory=True)
