import logging

from fastapi import APIRouter, HTTPException, Request

from tasklist.domain.errors import StorageWriteError

router = APIRouter(tags=["lifecycle"])
logger = logging.getLogger("tasklist.system")


@router.post("/api/lifecycle/background")
async def enter_background(request: Request):
    """The client screen went to the background: commit anything buffered."""
    store = request.app.state.store
    try:
        flushed = await store.flush()
    except StorageWriteError as exc:
        # the buffered transaction is gone; show what the store still holds
        await request.app.state.controller.refresh()
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    logger.info(
        "system.background",
        extra={"category": "system", "event": "system.background", "flushed": flushed},
    )
    return {"flushed": flushed}


@router.get("/health")
def health(request: Request):
    return {"status": "ok", "state": request.app.state.controller.state.value}
