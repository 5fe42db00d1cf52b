# src/services/rollback_service/app/services/failure_rollback_service.py
import logging
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.exceptions import (
    InvalidStateError,
    NotFoundError,
    StorageError,
    VersionNotFoundError,
)
from delivery_common.models import FailureReason

from ..dtos.failure_dto import FailureHistoryResponse, FailureRecord, FailureStatsResponse, TrackFailureResponse
from ..dtos.suggestion_dto import ApplyRollbackResponse, PendingSuggestionsResponse, RollbackSuggestionRecord
from ..repositories.schedule_repository import ScheduleRepository
from .failure_tracker import DEFAULT_HISTORY_LIMIT, FailureTracker
from .rollback_coordinator import RollbackCoordinator
from .suggestion_engine import SuggestionEngine
from .version_store import VersionStore

logger = logging.getLogger(__name__)


class FailureRollbackService:
    """
    Entry point used by the request-handling layer. Wires the tracker,
    engine, coordinator and version store onto one request-scoped session.
    """
    def __init__(self, db: AsyncSession):
        self.db = db
        self.schedules = ScheduleRepository(db)
        self.version_store = VersionStore(db)
        self.tracker = FailureTracker(db, self.schedules)
        self.engine = SuggestionEngine(db, self.version_store, self.schedules)
        self.coordinator = RollbackCoordinator(db, self.version_store, self.tracker)

    async def track_failure(
        self,
        schedule_id: int,
        owner_id: int,
        failure_reason: Union[str, FailureReason],
        property_id: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> Optional[TrackFailureResponse]:
        """
        Tracks the failure and asks the engine for an automatic suggestion.

        Returns None when the failure could not be stored. A storage error while
        suggesting does not undo the tracked failure; the response then carries
        no suggestion.
        """
        try:
            failure = await self.tracker.track(
                schedule_id, owner_id, failure_reason, property_id=property_id, error_message=error_message
            )
        except StorageError:
            logger.error("Failed to track report failure.", extra={"schedule_id": schedule_id}, exc_info=True)
            return None

        # Snapshot before suggesting; a rolled-back suggestion expires the ORM row.
        record = FailureRecord.model_validate(failure)
        try:
            suggestion = await self.engine.auto_suggest(record.id, owner_id, schedule_id)
        except StorageError:
            logger.error("Failed to auto-suggest rollback.", extra={"failure_id": record.id}, exc_info=True)
            suggestion = None

        return TrackFailureResponse(
            failure=record,
            suggestion=RollbackSuggestionRecord.model_validate(suggestion) if suggestion is not None else None,
        )

    async def auto_suggest(self, failure_id: int, owner_id: int, schedule_id: int) -> Optional[RollbackSuggestionRecord]:
        suggestion = await self.engine.auto_suggest(failure_id, owner_id, schedule_id)
        return RollbackSuggestionRecord.model_validate(suggestion) if suggestion is not None else None

    async def suggest_rollback(
        self, failure_id: int, owner_id: int, target_version_number: int, reason: str, confidence: int = 80
    ) -> RollbackSuggestionRecord:
        suggestion = await self.engine.suggest_rollback(
            failure_id, owner_id, target_version_number, reason, confidence=confidence
        )
        return RollbackSuggestionRecord.model_validate(suggestion)

    async def get_pending_suggestions(self, owner_id: int) -> PendingSuggestionsResponse:
        suggestions = await self.engine.get_pending_rollback_suggestions(owner_id)
        return PendingSuggestionsResponse(
            owner_id=owner_id,
            suggestions=[RollbackSuggestionRecord.model_validate(s) for s in suggestions],
        )

    async def get_failure_history(self, owner_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> FailureHistoryResponse:
        failures = await self.tracker.get_failure_history(owner_id, limit)
        return FailureHistoryResponse(
            owner_id=owner_id,
            failures=[FailureRecord.model_validate(f) for f in failures],
        )

    async def get_failure_stats(self, owner_id: int) -> FailureStatsResponse:
        return await self.tracker.get_failure_stats(owner_id)

    async def apply_rollback(self, suggestion_id: int, owner_id: int) -> ApplyRollbackResponse:
        try:
            result = await self.coordinator.apply(suggestion_id, owner_id)
        except (NotFoundError, InvalidStateError, VersionNotFoundError) as exc:
            return ApplyRollbackResponse(success=False, message=str(exc))
        except StorageError:
            return ApplyRollbackResponse(success=False, message="Failed to apply rollback")

        return ApplyRollbackResponse(
            success=result.success,
            message=result.message,
            restored_version_number=result.restored_version_number,
        )

    async def dismiss_suggestion(self, suggestion_id: int, owner_id: int) -> bool:
        return await self.coordinator.dismiss(suggestion_id, owner_id)
