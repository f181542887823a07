from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Optional, Sequence, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tasklist.domain.task_models import Task

router = APIRouter(tags=["display"])
logger = logging.getLogger("tasklist.display")

SUBSCRIBER_QUEUE_SIZE = 1000
# close code for "try again later"
CLOSE_TRY_AGAIN = 1013


def reload_event(tasks: Sequence[Task]) -> dict[str, Any]:
    return {"type": "reload", "tasks": [t.model_dump() for t in tasks]}


class RowBroadcaster:
    """
    Display surface that fans row notifications out to websocket clients.

    A client that falls too far behind is dropped: its queue is emptied and
    ends with a `None` marker, and the connection is closed so the client
    reconnects for a fresh reload snapshot.
    """

    def __init__(self):
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def _drop(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(None)
        logger.warning(
            "display.subscriber.dropped",
            extra={"category": "display", "event": "display.subscriber.dropped"},
        )

    def _publish(self, event: dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self._drop(queue)

    def reload(self, tasks: Sequence[Task]) -> None:
        self._publish(reload_event(tasks))

    def insert_row(self, index: int, task: Task) -> None:
        self._publish({"type": "insert", "index": index, "task": task.model_dump()})

    def update_row(self, index: int, task: Task) -> None:
        self._publish({"type": "update", "index": index, "task": task.model_dump()})

    def remove_row(self, index: int) -> None:
        self._publish({"type": "remove", "index": index})


async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        if event is None:
            await websocket.close(code=CLOSE_TRY_AGAIN)
            return
        await websocket.send_json(event)


async def _wait_disconnect(websocket: WebSocket) -> None:
    # Clients never send anything; receiving only watches for disconnect
    with contextlib.suppress(WebSocketDisconnect):
        while True:
            await websocket.receive_text()


@router.websocket("/ws/rows")
async def ws_rows(websocket: WebSocket):
    broadcaster: RowBroadcaster = websocket.app.state.display
    controller = websocket.app.state.controller

    await websocket.accept()
    # no await between these two: every later row event lands in the queue
    queue = broadcaster.subscribe()
    snapshot = reload_event(controller.tasks)

    pump: Optional[asyncio.Task] = None
    watcher: Optional[asyncio.Task] = None
    try:
        await websocket.send_json(snapshot)
        pump = asyncio.create_task(_pump(websocket, queue))
        watcher = asyncio.create_task(_wait_disconnect(websocket))
        await asyncio.wait({pump, watcher}, return_when=asyncio.FIRST_COMPLETED)
    except WebSocketDisconnect:
        return
    finally:
        broadcaster.unsubscribe(queue)
        for task in (pump, watcher):
            if task is None:
                continue
            task.cancel()
            # a failed send after disconnect ends here
            with contextlib.suppress(Exception, asyncio.CancelledError):
                await task
