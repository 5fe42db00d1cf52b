# src/services/rollback_service/app/routers/rollback_suggestions.py
from fastapi import APIRouter, Depends, HTTPException, status

from delivery_common.exceptions import StorageError
from ..dependencies import get_current_owner_id, get_failure_rollback_service
from ..dtos.suggestion_dto import ApplyRollbackResponse, DismissSuggestionResponse, PendingSuggestionsResponse
from ..services.failure_rollback_service import FailureRollbackService

router = APIRouter(prefix="/rollback-suggestions", tags=["Rollback Suggestions"])


@router.get(
    "/pending",
    response_model=PendingSuggestionsResponse,
    description="Pending rollback suggestions, highest confidence first.",
)
async def get_pending_suggestions(
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    return await service.get_pending_suggestions(owner_id)


@router.post(
    "/{suggestion_id}/apply",
    response_model=ApplyRollbackResponse,
    description=(
        "Restore the suggested preference version and resolve the failure. "
        "Rejected actions are reported with success=false and a message."
    ),
)
async def apply_rollback(
    suggestion_id: int,
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    return await service.apply_rollback(suggestion_id, owner_id)


@router.post(
    "/{suggestion_id}/dismiss",
    response_model=DismissSuggestionResponse,
    description="Reject a pending rollback suggestion.",
)
async def dismiss_suggestion(
    suggestion_id: int,
    owner_id: int = Depends(get_current_owner_id),
    service: FailureRollbackService = Depends(get_failure_rollback_service),
):
    try:
        return DismissSuggestionResponse(success=await service.dismiss_suggestion(suggestion_id, owner_id))
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
