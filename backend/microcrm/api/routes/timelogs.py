from datetime import timedelta, timezone
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from microcrm.api.deps import CurrentUser, Paging, Storage
from microcrm.models.base import utcnow
from microcrm.schemas.common import Message, Page, Pagination
from microcrm.schemas.timelog import TimeLogCreate, TimeLogRead, TimeLogStats, TimeLogUpdate, TimerStart
from microcrm.storage.base import SQLStorage

router = APIRouter(prefix="/timelogs", tags=["timelogs"])


def _check_project(storage: SQLStorage, tenant_id: UUID, project_id: UUID | None) -> None:
    if project_id is not None and storage.get_project(tenant_id, project_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project not found")


@router.get("", response_model=Page[TimeLogRead])
def list_timelogs(current_user: CurrentUser, storage: Storage, paging: Paging) -> Page[TimeLogRead]:
    tenant_id = current_user.tenant_id
    timelogs = storage.list_timelogs(tenant_id, limit=paging.limit, offset=paging.offset)
    return Page[TimeLogRead](
        data=[TimeLogRead.model_validate(item) for item in timelogs],
        pagination=Pagination.build(paging.page, paging.limit, storage.count_timelogs(tenant_id)),
    )


@router.get("/stats", response_model=TimeLogStats)
def timelog_stats(current_user: CurrentUser, storage: Storage) -> TimeLogStats:
    return TimeLogStats(**storage.timelog_stats(current_user.tenant_id))


@router.get("/active", response_model=TimeLogRead | None)
def active_timelog(current_user: CurrentUser, storage: Storage) -> TimeLogRead | None:
    timelog = storage.get_active_timelog(current_user.tenant_id)
    return TimeLogRead.model_validate(timelog) if timelog else None


@router.get("/project/{project_id}", response_model=list[TimeLogRead])
def list_project_timelogs(project_id: UUID, current_user: CurrentUser, storage: Storage) -> list[TimeLogRead]:
    timelogs = storage.list_timelogs_by_project(current_user.tenant_id, project_id)
    return [TimeLogRead.model_validate(item) for item in timelogs]


@router.post("/start", response_model=TimeLogRead, status_code=status.HTTP_201_CREATED)
def start_timer(payload: TimerStart, current_user: CurrentUser, storage: Storage) -> TimeLogRead:
    _check_project(storage, current_user.tenant_id, payload.project_id)
    timelog = storage.start_timelog(current_user.tenant_id, payload.model_dump())
    return TimeLogRead.model_validate(timelog)


@router.post("/stop/{timelog_id}", response_model=TimeLogRead)
def stop_timer(timelog_id: UUID, current_user: CurrentUser, storage: Storage) -> TimeLogRead:
    timelog = storage.get_timelog(current_user.tenant_id, timelog_id)
    if not timelog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time log not found")
    if timelog.end_time is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Timer already stopped")
    timelog = storage.stop_timelog(current_user.tenant_id, timelog_id)
    return TimeLogRead.model_validate(timelog)


@router.get("/{timelog_id}", response_model=TimeLogRead)
def get_timelog(timelog_id: UUID, current_user: CurrentUser, storage: Storage) -> TimeLogRead:
    timelog = storage.get_timelog(current_user.tenant_id, timelog_id)
    if not timelog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time log not found")
    return TimeLogRead.model_validate(timelog)


@router.post("", response_model=TimeLogRead, status_code=status.HTTP_201_CREATED)
def create_timelog(payload: TimeLogCreate, current_user: CurrentUser, storage: Storage) -> TimeLogRead:
    _check_project(storage, current_user.tenant_id, payload.project_id)
    data = payload.model_dump()
    start_time = payload.start_time or utcnow()
    if start_time.tzinfo is not None:
        start_time = start_time.astimezone(timezone.utc).replace(tzinfo=None)
    data.update(start_time=start_time, end_time=start_time + timedelta(seconds=payload.duration))
    timelog = storage.create_timelog(current_user.tenant_id, data)
    return TimeLogRead.model_validate(timelog)


@router.put("/{timelog_id}", response_model=TimeLogRead)
def update_timelog(timelog_id: UUID, payload: TimeLogUpdate, current_user: CurrentUser, storage: Storage) -> TimeLogRead:
    changes = payload.model_dump(exclude_unset=True)
    for required in ("duration", "billable"):
        if changes.get(required) is None:
            changes.pop(required, None)
    _check_project(storage, current_user.tenant_id, changes.get("project_id"))
    timelog = storage.update_timelog(current_user.tenant_id, timelog_id, changes)
    if not timelog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time log not found")
    return TimeLogRead.model_validate(timelog)


@router.delete("/{timelog_id}", response_model=Message)
def delete_timelog(timelog_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    if not storage.delete_timelog(current_user.tenant_id, timelog_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time log not found")
    return Message(message="Time log deleted successfully")
