from typing import Iterable
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from microcrm.api.deps import CurrentUser, Paging, Storage
from microcrm.models.project import Project
from microcrm.schemas.common import Message, Page, Pagination
from microcrm.schemas.project import ProjectCreate, ProjectRead, ProjectStats, ProjectUpdate
from microcrm.storage.base import SQLStorage

router = APIRouter(prefix="/projects", tags=["projects"])


def _serialize(storage: SQLStorage, tenant_id: UUID, projects: Iterable[Project]) -> list[ProjectRead]:
    projects = list(projects)
    names = storage.client_names(tenant_id, (project.client_id for project in projects))
    return [
        ProjectRead.model_validate(project).model_copy(update={"client_name": names.get(project.client_id)})
        for project in projects
    ]


def _check_client(storage: SQLStorage, tenant_id: UUID, client_id: UUID | None) -> None:
    if client_id is not None and storage.get_client(tenant_id, client_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Client not found")


@router.get("", response_model=Page[ProjectRead])
def list_projects(current_user: CurrentUser, storage: Storage, paging: Paging) -> Page[ProjectRead]:
    tenant_id = current_user.tenant_id
    projects = storage.list_projects(tenant_id, limit=paging.limit, offset=paging.offset)
    return Page[ProjectRead](
        data=_serialize(storage, tenant_id, projects),
        pagination=Pagination.build(paging.page, paging.limit, storage.count_projects(tenant_id)),
    )


@router.get("/stats", response_model=ProjectStats)
def project_stats(current_user: CurrentUser, storage: Storage) -> ProjectStats:
    return ProjectStats(**storage.project_stats(current_user.tenant_id))


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(project_id: UUID, current_user: CurrentUser, storage: Storage) -> ProjectRead:
    project = storage.get_project(current_user.tenant_id, project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return _serialize(storage, current_user.tenant_id, [project])[0]


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreate, current_user: CurrentUser, storage: Storage) -> ProjectRead:
    _check_client(storage, current_user.tenant_id, payload.client_id)
    project = storage.create_project(current_user.tenant_id, payload.model_dump(exclude_none=True))
    return _serialize(storage, current_user.tenant_id, [project])[0]


@router.put("/{project_id}", response_model=ProjectRead)
def update_project(project_id: UUID, payload: ProjectUpdate, current_user: CurrentUser, storage: Storage) -> ProjectRead:
    changes = payload.model_dump(exclude_unset=True)
    for required in ("name", "status", "budget", "progress"):
        if changes.get(required) is None:
            changes.pop(required, None)
    _check_client(storage, current_user.tenant_id, changes.get("client_id"))
    project = storage.update_project(current_user.tenant_id, project_id, changes)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return _serialize(storage, current_user.tenant_id, [project])[0]


@router.delete("/{project_id}", response_model=Message)
def delete_project(project_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    if not storage.delete_project(current_user.tenant_id, project_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return Message(message="Project deleted successfully")
