# src/services/rollback_service/app/routers/preference_versions.py
from fastapi import APIRouter, Depends, HTTPException, Query, status

from delivery_common.exceptions import StorageError, VersionNotFoundError
from ..dependencies import get_current_owner_id, get_preference_version_service
from ..dtos.version_dto import PreferenceVersionRecord, PreferenceVersionsResponse, SaveVersionRequest, VersionDiff
from ..services.preference_version_service import PreferenceVersionService

router = APIRouter(prefix="/preference-versions", tags=["Preference Versions"])


@router.get(
    "/{entity_id}",
    response_model=PreferenceVersionsResponse,
    description="Version history of a preference set, newest first.",
)
async def get_versions(
    entity_id: str,
    owner_id: int = Depends(get_current_owner_id),
    service: PreferenceVersionService = Depends(get_preference_version_service),
):
    return await service.get_versions(owner_id, entity_id)


@router.post(
    "/{entity_id}",
    response_model=PreferenceVersionRecord,
    status_code=status.HTTP_201_CREATED,
    description="Append a new snapshot as the current version.",
)
async def save_version(
    entity_id: str,
    request: SaveVersionRequest,
    owner_id: int = Depends(get_current_owner_id),
    service: PreferenceVersionService = Depends(get_preference_version_service),
):
    try:
        return await service.save_version(owner_id, entity_id, request.snapshot, request.change_description)
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.post(
    "/{entity_id}/{version_number}/restore",
    response_model=PreferenceVersionRecord,
    description="Append a copy of an earlier version as the new current version.",
)
async def restore_version(
    entity_id: str,
    version_number: int,
    owner_id: int = Depends(get_current_owner_id),
    service: PreferenceVersionService = Depends(get_preference_version_service),
):
    try:
        return await service.restore_version(owner_id, entity_id, version_number)
    except VersionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.get(
    "/{entity_id}/diff",
    response_model=VersionDiff,
    description="Key-level differences between two versions.",
)
async def get_version_diff(
    entity_id: str,
    from_version: int = Query(..., ge=1),
    to_version: int = Query(..., ge=1),
    owner_id: int = Depends(get_current_owner_id),
    service: PreferenceVersionService = Depends(get_preference_version_service),
):
    try:
        return await service.get_diff(owner_id, entity_id, from_version, to_version)
    except VersionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
