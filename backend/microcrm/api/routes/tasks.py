from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from microcrm.api.deps import CurrentUser, Paging, Storage
from microcrm.schemas.common import Message, Page, Pagination
from microcrm.schemas.task import TaskCreate, TaskRead, TaskStats, TaskStatusUpdate, TaskUpdate
from microcrm.storage.base import SQLStorage

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _check_project(storage: SQLStorage, tenant_id: UUID, project_id: UUID | None) -> None:
    if project_id is not None and storage.get_project(tenant_id, project_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project not found")


@router.get("", response_model=Page[TaskRead])
def list_tasks(current_user: CurrentUser, storage: Storage, paging: Paging) -> Page[TaskRead]:
    tenant_id = current_user.tenant_id
    tasks = storage.list_tasks(tenant_id, limit=paging.limit, offset=paging.offset)
    return Page[TaskRead](
        data=[TaskRead.model_validate(item) for item in tasks],
        pagination=Pagination.build(paging.page, paging.limit, storage.count_tasks(tenant_id)),
    )


@router.get("/stats", response_model=TaskStats)
def task_stats(current_user: CurrentUser, storage: Storage) -> TaskStats:
    return TaskStats(**storage.task_stats(current_user.tenant_id))


@router.get("/project/{project_id}", response_model=list[TaskRead])
def list_project_tasks(project_id: UUID, current_user: CurrentUser, storage: Storage) -> list[TaskRead]:
    tasks = storage.list_tasks_by_project(current_user.tenant_id, project_id)
    return [TaskRead.model_validate(item) for item in tasks]


@router.get("/{task_id}", response_model=TaskRead)
def get_task(task_id: UUID, current_user: CurrentUser, storage: Storage) -> TaskRead:
    task = storage.get_task(current_user.tenant_id, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskRead.model_validate(task)


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreate, current_user: CurrentUser, storage: Storage) -> TaskRead:
    _check_project(storage, current_user.tenant_id, payload.project_id)
    task = storage.create_task(current_user.tenant_id, payload.model_dump(exclude_none=True))
    return TaskRead.model_validate(task)


@router.put("/{task_id}", response_model=TaskRead)
def update_task(task_id: UUID, payload: TaskUpdate, current_user: CurrentUser, storage: Storage) -> TaskRead:
    changes = payload.model_dump(exclude_unset=True)
    for required in ("title", "status", "priority"):
        if changes.get(required) is None:
            changes.pop(required, None)
    _check_project(storage, current_user.tenant_id, changes.get("project_id"))
    task = storage.update_task(current_user.tenant_id, task_id, changes)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskRead.model_validate(task)


@router.patch("/{task_id}/status", response_model=TaskRead)
def update_task_status(task_id: UUID, payload: TaskStatusUpdate, current_user: CurrentUser, storage: Storage) -> TaskRead:
    task = storage.update_task(current_user.tenant_id, task_id, {"status": payload.status})
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", response_model=Message)
def delete_task(task_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    if not storage.delete_task(current_user.tenant_id, task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return Message(message="Task deleted successfully")
