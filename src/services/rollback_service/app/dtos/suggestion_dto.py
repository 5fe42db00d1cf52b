# src/services/rollback_service/app/dtos/suggestion_dto.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from delivery_common.models import SuggestionOrigin, SuggestionStatus


class RollbackSuggestionRecord(BaseModel):
    id: int
    failure_id: int
    owner_id: int
    entity_id: str
    target_version_number: int
    confidence: int = Field(..., ge=0, le=100)
    status: SuggestionStatus
    origin: SuggestionOrigin
    reason: str
    created_at: datetime
    applied_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PendingSuggestionsResponse(BaseModel):
    owner_id: int
    suggestions: list[RollbackSuggestionRecord]


class ManualSuggestionRequest(BaseModel):
    target_version_number: int = Field(..., ge=1)
    reason: str = Field(..., min_length=1)
    # Out-of-range values are clamped rather than rejected.
    confidence: int = 80


class ApplyRollbackResponse(BaseModel):
    success: bool
    message: str
    restored_version_number: Optional[int] = None


class DismissSuggestionResponse(BaseModel):
    success: bool
