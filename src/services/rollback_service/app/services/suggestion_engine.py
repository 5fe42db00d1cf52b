# src/services/rollback_service/app/services/suggestion_engine.py
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.database_models import RollbackSuggestion
from delivery_common.exceptions import InvalidStateError, NotFoundError
from delivery_common.models import EntityKey, SuggestionOrigin, SuggestionStatus
from delivery_common.monitoring import ROLLBACK_SUGGESTIONS_CREATED_TOTAL
from delivery_common.unit_of_work import transactional

from ..repositories.failure_repository import FailureRepository
from ..repositories.schedule_repository import ScheduleRepository
from ..repositories.suggestion_repository import SuggestionRepository
from .version_store import VersionStore

logger = logging.getLogger(__name__)

# Empirical heuristic: 60 base, +5 per retained version, capped at 90.
AUTO_CONFIDENCE_BASE = 60
AUTO_CONFIDENCE_PER_VERSION = 5
AUTO_CONFIDENCE_CAP = 90
MIN_VERSIONS_FOR_SUGGESTION = 2

_OPEN_STATUSES = {SuggestionStatus.PENDING.value, SuggestionStatus.ACCEPTED.value, SuggestionStatus.APPLIED.value}


def clamp_confidence(value: int) -> int:
    return max(0, min(100, int(value)))


def compute_auto_confidence(version_count: int) -> int:
    return clamp_confidence(min(AUTO_CONFIDENCE_CAP, AUTO_CONFIDENCE_BASE + AUTO_CONFIDENCE_PER_VERSION * version_count))


class SuggestionEngine:
    def __init__(self, db: AsyncSession, version_store: VersionStore, schedules: ScheduleRepository):
        self.db = db
        self.version_store = version_store
        self.schedules = schedules
        self.repo = SuggestionRepository(db)
        self.failure_repo = FailureRepository(db)

    async def auto_suggest(self, failure_id: int, owner_id: int, schedule_id: int) -> Optional[RollbackSuggestion]:
        """
        Proposes rolling the schedule's preferences back to the version before
        the current one, on the premise that the latest change caused the failure.

        Returns None when there is nothing to roll back to, the failure is
        already resolved, or the failure's automatic suggestion was already
        dismissed or applied. A still-pending automatic suggestion is returned
        as is; at most one is ever created per failure.
        """
        async with transactional(self.db, "auto_suggest"):
            failure = await self.failure_repo.get_owned_failure(failure_id, owner_id)
            if failure is None or failure.schedule_id != schedule_id:
                raise NotFoundError(f"Failure {failure_id} not found")
            if failure.resolved_at is not None:
                return None

            existing = await self.repo.get_auto_suggestion_for_failure(failure_id)
            if existing is not None:
                return existing if existing.status == SuggestionStatus.PENDING.value else None

            entity_key = await self.schedules.entity_key_for(schedule_id)
            versions = await self.version_store.list_versions(entity_key)
            if len(versions) < MIN_VERSIONS_FOR_SUGGESTION:
                logger.info(
                    "Not enough preference history to suggest a rollback.",
                    extra={"failure_id": failure_id, "entity_key": str(entity_key), "version_count": len(versions)},
                )
                return None

            candidate = versions[1]
            confidence = compute_auto_confidence(len(versions))
            reason = (
                f"Automatically suggested to roll back to version {candidate.version_number}. "
                "This version was previously stable and may resolve the current delivery failures."
            )
            try:
                async with self.db.begin_nested():
                    suggestion = await self.repo.create_suggestion(
                        failure_id=failure_id,
                        owner_id=owner_id,
                        entity_id=entity_key.entity_id,
                        target_version_number=candidate.version_number,
                        confidence=confidence,
                        reason=reason,
                        origin=SuggestionOrigin.AUTO,
                        created_at=datetime.now(timezone.utc),
                    )
            except IntegrityError:
                # A concurrent call created the automatic suggestion first.
                existing = await self.repo.get_auto_suggestion_for_failure(failure_id)
                return existing if existing is not None and existing.status == SuggestionStatus.PENDING.value else None

        ROLLBACK_SUGGESTIONS_CREATED_TOTAL.labels(origin=SuggestionOrigin.AUTO.value).inc()
        return suggestion

    async def suggest_rollback(
        self,
        failure_id: int,
        owner_id: int,
        target_version_number: int,
        reason: str,
        confidence: int = 80,
    ) -> RollbackSuggestion:
        """
        Records a manually chosen rollback target for a failure. Allowed while
        the failure is unresolved, has no pending or applied suggestion, and has
        not already received a manual suggestion.
        """
        async with transactional(self.db, "suggest_rollback"):
            failure = await self.failure_repo.get_owned_failure(failure_id, owner_id)
            if failure is None:
                raise NotFoundError(f"Failure {failure_id} not found")
            if failure.resolved_at is not None:
                raise InvalidStateError(f"Failure {failure_id} is already resolved")

            existing = await self.repo.get_suggestions_for_failure(failure_id)
            if any(s.status in _OPEN_STATUSES for s in existing):
                raise InvalidStateError(f"Failure {failure_id} already has an open or applied suggestion")
            if any(s.origin == SuggestionOrigin.MANUAL.value for s in existing):
                raise InvalidStateError(f"Failure {failure_id} already received a manual suggestion")

            entity_key = await self.schedules.entity_key_for(failure.schedule_id)
            await self._validate_target(entity_key, target_version_number)

            try:
                async with self.db.begin_nested():
                    suggestion = await self.repo.create_suggestion(
                        failure_id=failure_id,
                        owner_id=owner_id,
                        entity_id=entity_key.entity_id,
                        target_version_number=target_version_number,
                        confidence=clamp_confidence(confidence),
                        reason=reason,
                        origin=SuggestionOrigin.MANUAL,
                        created_at=datetime.now(timezone.utc),
                    )
            except IntegrityError:
                # A concurrent request stored the manual suggestion first.
                raise InvalidStateError(f"Failure {failure_id} already received a manual suggestion") from None

        ROLLBACK_SUGGESTIONS_CREATED_TOTAL.labels(origin=SuggestionOrigin.MANUAL.value).inc()
        return suggestion

    async def get_pending_rollback_suggestions(self, owner_id: int) -> list[RollbackSuggestion]:
        """Pending suggestions, highest confidence first, oldest first among equals."""
        return await self.repo.get_pending_for_owner(owner_id)

    async def get_suggestion(self, suggestion_id: int, owner_id: int) -> RollbackSuggestion:
        suggestion = await self.repo.get_owned_suggestion(suggestion_id, owner_id)
        if suggestion is None:
            raise NotFoundError(f"Suggestion {suggestion_id} not found")
        return suggestion

    async def _validate_target(self, entity_key: EntityKey, target_version_number: int) -> None:
        await self.version_store.get_version(entity_key, target_version_number)
        current = await self.version_store.get_current_version_number(entity_key)
        if target_version_number >= current:
            raise InvalidStateError(
                f"Target version {target_version_number} must be older than current version {current}"
            )
