# src/services/rollback_service/app/services/rollback_coordinator.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.exceptions import InvalidStateError, NotFoundError, VersionNotFoundError
from delivery_common.models import EntityKey, SuggestionStatus
from delivery_common.monitoring import ROLLBACK_APPLY_TOTAL
from delivery_common.unit_of_work import transactional

from ..repositories.suggestion_repository import SuggestionRepository
from .failure_tracker import FailureTracker
from .version_store import VersionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollbackResult:
    success: bool
    message: str
    restored_version_number: int


class RollbackCoordinator:
    """
    Applies and dismisses rollback suggestions.

    apply() stages three writes on one session (suggestion pending -> applied,
    version restore append, failure resolution) and commits them together;
    any failure rolls all of them back and the suggestion stays pending.
    """
    def __init__(self, db: AsyncSession, version_store: VersionStore, failure_tracker: FailureTracker):
        self.db = db
        self.version_store = version_store
        self.failure_tracker = failure_tracker
        self.suggestions = SuggestionRepository(db)

    async def apply(self, suggestion_id: int, owner_id: int) -> RollbackResult:
        try:
            async with transactional(self.db, "apply_rollback"):
                suggestion = await self.suggestions.get_owned_suggestion(suggestion_id, owner_id)
                if suggestion is None:
                    raise NotFoundError(f"Suggestion {suggestion_id} not found")
                if suggestion.status != SuggestionStatus.PENDING.value:
                    raise InvalidStateError(
                        f"Suggestion {suggestion_id} is {suggestion.status}; only pending suggestions can be applied"
                    )

                # Claim first: a concurrent apply that already flipped the
                # status makes this compare-and-set miss.
                claimed = await self.suggestions.transition_status(
                    suggestion_id,
                    owner_id,
                    SuggestionStatus.PENDING,
                    SuggestionStatus.APPLIED,
                    applied_at=datetime.now(timezone.utc),
                )
                if not claimed:
                    raise InvalidStateError(f"Suggestion {suggestion_id} is no longer pending")

                entity_key = EntityKey(owner_id=suggestion.owner_id, entity_id=suggestion.entity_id)
                try:
                    restored = await self.version_store.restore(entity_key, suggestion.target_version_number)
                except VersionNotFoundError:
                    logger.error(
                        "Suggested version is missing from the version store.",
                        extra={
                            "suggestion_id": suggestion_id,
                            "entity_key": str(entity_key),
                            "target_version_number": suggestion.target_version_number,
                        },
                    )
                    raise

                await self.failure_tracker.mark_resolved(suggestion.failure_id)
        except Exception:
            ROLLBACK_APPLY_TOTAL.labels(outcome="failed").inc()
            raise

        ROLLBACK_APPLY_TOTAL.labels(outcome="applied").inc()
        logger.info(
            "Applied rollback suggestion.",
            extra={
                "suggestion_id": suggestion_id,
                "failure_id": suggestion.failure_id,
                "restored_from": suggestion.target_version_number,
                "new_version": restored.version_number,
            },
        )
        return RollbackResult(
            success=True,
            message=f"Successfully rolled back to version {suggestion.target_version_number}",
            restored_version_number=restored.version_number,
        )

    async def dismiss(self, suggestion_id: int, owner_id: int) -> bool:
        """
        Moves a pending suggestion to rejected. Returns False, without raising,
        when the suggestion is unknown, not owned, or no longer pending.
        """
        async with transactional(self.db, "dismiss_suggestion"):
            dismissed = await self.suggestions.transition_status(
                suggestion_id, owner_id, SuggestionStatus.PENDING, SuggestionStatus.REJECTED
            )
        if dismissed:
            logger.info("Dismissed rollback suggestion.", extra={"suggestion_id": suggestion_id})
        return dismissed
