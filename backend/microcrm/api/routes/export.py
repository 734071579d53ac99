from typing import Any

from fastapi import APIRouter, Body, HTTPException, Response, status

from microcrm.api.deps import CurrentUser, Storage
from microcrm.schemas.backup import RestoreResponse
from microcrm.services.export import CSV_COLUMNS, ExportService

router = APIRouter(tags=["export"])


@router.get("/backup")
def backup(current_user: CurrentUser, storage: Storage) -> dict[str, Any]:
    return ExportService(storage).backup(current_user.tenant_id)


@router.post("/restore", response_model=RestoreResponse)
def restore(current_user: CurrentUser, storage: Storage, payload: dict[str, Any] = Body(...)) -> RestoreResponse:
    results = ExportService(storage).restore(current_user.tenant_id, payload)
    return RestoreResponse(message="Restore completed", results=results)


@router.post("/restore/upload", response_model=RestoreResponse)
def restore_upload(
    current_user: CurrentUser, storage: Storage, payload: dict[str, Any] = Body(...)
) -> RestoreResponse:
    backup_data = payload.get("backupData")
    if not backup_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No backup data provided")
    if not isinstance(backup_data, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid backup data")
    results = ExportService(storage).restore(current_user.tenant_id, backup_data)
    return RestoreResponse(message="Restore completed", results=results)


@router.get("/export/{resource}.csv")
def export_csv(resource: str, current_user: CurrentUser, storage: Storage) -> Response:
    if resource not in CSV_COLUMNS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown export resource: {resource}")
    content = ExportService(storage).to_csv(current_user.tenant_id, resource)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{resource}.csv"'},
    )
