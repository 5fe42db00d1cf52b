# src/services/rollback_service/app/dtos/failure_dto.py
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from delivery_common.models import FailureReason

from .suggestion_dto import RollbackSuggestionRecord


class TrackFailureRequest(BaseModel):
    schedule_id: int
    property_id: Optional[int] = None
    failure_reason: FailureReason
    error_message: Optional[str] = None


class FailureRecord(BaseModel):
    id: int
    schedule_id: int
    owner_id: int
    property_id: Optional[int] = None
    failure_reason: FailureReason
    error_message: Optional[str] = None
    consecutive_count: int = Field(..., ge=1)
    last_failed_at: datetime
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TrackFailureResponse(BaseModel):
    failure: FailureRecord
    suggestion: Optional[RollbackSuggestionRecord] = None


class FailureHistoryResponse(BaseModel):
    owner_id: int
    failures: list[FailureRecord]


class FailureStatsResponse(BaseModel):
    total: int
    by_reason: Dict[FailureReason, int] = Field(default_factory=dict)
    unresolved: int
    most_recent_failure: Optional[datetime] = None
