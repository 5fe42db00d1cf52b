# src/services/rollback_service/app/repositories/suggestion_repository.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.database_models import RollbackSuggestion
from delivery_common.models import SuggestionOrigin, SuggestionStatus
from delivery_common.utils import async_timed

logger = logging.getLogger(__name__)


class SuggestionRepository:
    """
    Status changes are bulk UPDATEs that bypass the identity map, so reads
    refresh any rows the session already holds.
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    @async_timed(repository="SuggestionRepository", method="create_suggestion")
    async def create_suggestion(
        self,
        *,
        failure_id: int,
        owner_id: int,
        entity_id: str,
        target_version_number: int,
        confidence: int,
        reason: str,
        origin: SuggestionOrigin,
        created_at: datetime,
    ) -> RollbackSuggestion:
        suggestion = RollbackSuggestion(
            failure_id=failure_id,
            owner_id=owner_id,
            entity_id=entity_id,
            target_version_number=target_version_number,
            confidence=confidence,
            reason=reason,
            origin=origin.value,
            status=SuggestionStatus.PENDING.value,
            created_at=created_at,
        )
        self.db.add(suggestion)
        await self.db.flush()
        logger.info(
            "Created rollback suggestion.",
            extra={"suggestion_id": suggestion.id, "failure_id": failure_id, "origin": origin.value},
        )
        return suggestion

    async def get_suggestion(self, suggestion_id: int) -> Optional[RollbackSuggestion]:
        return await self.db.get(RollbackSuggestion, suggestion_id, populate_existing=True)

    async def get_owned_suggestion(self, suggestion_id: int, owner_id: int) -> Optional[RollbackSuggestion]:
        suggestion = await self.get_suggestion(suggestion_id)
        if suggestion is None or suggestion.owner_id != owner_id:
            return None
        return suggestion

    async def get_suggestions_for_failure(self, failure_id: int) -> List[RollbackSuggestion]:
        stmt = (
            select(RollbackSuggestion)
            .where(RollbackSuggestion.failure_id == failure_id)
            .order_by(RollbackSuggestion.created_at.asc(), RollbackSuggestion.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_auto_suggestion_for_failure(self, failure_id: int) -> Optional[RollbackSuggestion]:
        stmt = select(RollbackSuggestion).where(
            RollbackSuggestion.failure_id == failure_id,
            RollbackSuggestion.origin == SuggestionOrigin.AUTO.value,
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    @async_timed(repository="SuggestionRepository", method="get_pending_for_owner")
    async def get_pending_for_owner(self, owner_id: int) -> List[RollbackSuggestion]:
        stmt = (
            select(RollbackSuggestion)
            .where(
                RollbackSuggestion.owner_id == owner_id,
                RollbackSuggestion.status == SuggestionStatus.PENDING.value,
            )
            .order_by(
                RollbackSuggestion.confidence.desc(),
                RollbackSuggestion.created_at.asc(),
                RollbackSuggestion.id.asc(),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @async_timed(repository="SuggestionRepository", method="transition_status")
    async def transition_status(
        self,
        suggestion_id: int,
        owner_id: int,
        from_status: SuggestionStatus,
        to_status: SuggestionStatus,
        applied_at: Optional[datetime] = None,
    ) -> bool:
        """
        Compare-and-set on status. Returns False when the suggestion is missing,
        owned by someone else, or no longer in from_status.
        """
        values = {"status": to_status.value}
        if applied_at is not None:
            values["applied_at"] = applied_at

        stmt = (
            update(RollbackSuggestion)
            .where(
                RollbackSuggestion.id == suggestion_id,
                RollbackSuggestion.owner_id == owner_id,
                RollbackSuggestion.status == from_status.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return (result.rowcount or 0) > 0
