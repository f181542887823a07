from fastapi import APIRouter, HTTPException, Request, Response
from tasklist.domain.task_models import Task, TaskCreate, TaskRename
from tasklist.services.task_list_controller import TaskListController

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def get_controller(request: Request) -> TaskListController:
    # Set by create_app()
    return request.app.state.controller


def _existing(controller: TaskListController, task_id: str) -> Task:
    task = controller.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("", response_model=list[Task])
async def list_tasks(request: Request):
    return list(get_controller(request).tasks)


@router.post("", response_model=Task, status_code=201)
async def create_task(payload: TaskCreate, request: Request):
    task = await get_controller(request).add_task(payload.title)
    if task is None:
        raise HTTPException(status_code=503, detail="Task could not be saved")
    return task


@router.post("/reload", response_model=list[Task])
async def reload_tasks(request: Request):
    controller = get_controller(request)
    await controller.refresh()
    return list(controller.tasks)


@router.patch("/{task_id}", response_model=Task)
async def rename_task(task_id: str, payload: TaskRename, request: Request):
    controller = get_controller(request)
    task = _existing(controller, task_id)
    renamed = await controller.rename_task(task, payload.title)
    if renamed is None:
        raise HTTPException(status_code=503, detail="Task could not be updated")
    return renamed


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: str, request: Request):
    controller = get_controller(request)
    task = _existing(controller, task_id)
    if not await controller.remove_task(task):
        raise HTTPException(status_code=503, detail="Task could not be deleted")
    return Response(status_code=204)
