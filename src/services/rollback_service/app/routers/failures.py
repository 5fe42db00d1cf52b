# src/services/rollback_service/app/routers/failures.py
from fastapi import APIRouter, Depends, HTTPException, Query, status

from delivery_common.exceptions import InvalidStateError, NotFoundError, StorageError, VersionNotFoundError
from ..dependencies import get_current_owner_id, get_failure_rollback_service
from ..dtos.failure_dto import FailureHistoryResponse, FailureStatsResponse, TrackFailureRequest, TrackFailureResponse
from ..dtos.suggestion_dto import ManualSuggestionRequest, RollbackSuggestionRecord
from ..services.failure_rollback_service import FailureRollbackService

router = APIRouter(prefix="/failures", tags=["Failures"])


@router.post(
    "",
    response_model=TrackFailureResponse,
    status_code=status.HTTP_201_CREATED,
    description="Record a report delivery failure and auto-suggest a rollback when history allows.",
)
async def track_failure(
    request: TrackFailureRequest,
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    try:
        result = await service.track_failure(
            request.schedule_id,
            owner_id,
            request.failure_reason,
            property_id=request.property_id,
            error_message=request.error_message,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if result is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to track failure")
    return result


@router.get(
    "",
    response_model=FailureHistoryResponse,
    description="Most recent failures for the current user, newest first.",
)
async def get_failure_history(
    limit: int = Query(20, ge=1, le=100),
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    return await service.get_failure_history(owner_id, limit)


@router.get(
    "/stats",
    response_model=FailureStatsResponse,
    description="Failure totals, counts by reason and unresolved count for the current user.",
)
async def get_failure_stats(
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    return await service.get_failure_stats(owner_id)


@router.post(
    "/{failure_id}/suggestions",
    response_model=RollbackSuggestionRecord,
    status_code=status.HTTP_201_CREATED,
    description="Propose a specific preference version to roll back to for a failure.",
)
async def suggest_rollback(
    failure_id: int,
    request: ManualSuggestionRequest,
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    try:
        return await service.suggest_rollback(
            failure_id, owner_id, request.target_version_number, request.reason, confidence=request.confidence
        )
    except (NotFoundError, VersionNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
