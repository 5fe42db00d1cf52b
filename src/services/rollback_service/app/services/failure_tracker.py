# src/services/rollback_service/app/services/failure_tracker.py
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import before_log, retry, retry_if_exception_type, stop_after_attempt

from delivery_common.config import TRACK_MAX_ATTEMPTS
from delivery_common.database_models import ReportFailure
from delivery_common.exceptions import NotFoundError
from delivery_common.models import FailureReason
from delivery_common.monitoring import REPORT_FAILURES_TRACKED_TOTAL
from delivery_common.unit_of_work import transactional

from ..dtos.failure_dto import FailureStatsResponse
from ..repositories.failure_repository import FailureRepository
from ..repositories.schedule_repository import ScheduleRepository

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20
MAX_HISTORY_LIMIT = 100


class FailureTracker:
    def __init__(self, db: AsyncSession, schedules: ScheduleRepository):
        self.db = db
        self.schedules = schedules
        self.repo = FailureRepository(db)

    async def track(
        self,
        schedule_id: int,
        owner_id: int,
        failure_reason: Union[str, FailureReason],
        property_id: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> ReportFailure:
        """
        Records one delivery failure for a schedule and commits it.

        Folds into the schedule's unresolved failure when there is one
        (consecutive_count + 1, latest reason and message win), otherwise opens
        a new record with consecutive_count = 1.
        """
        reason = FailureReason.coerce(failure_reason)

        async with transactional(self.db, "track_failure"):
            await self.schedules.get_owned_schedule(schedule_id, owner_id)
            retry_config = retry(
                stop=stop_after_attempt(TRACK_MAX_ATTEMPTS),
                before=before_log(logger, logging.DEBUG),
                retry=retry_if_exception_type(IntegrityError),
                reraise=True,
            )
            failure, opened = await retry_config(self._record_occurrence)(
                schedule_id, owner_id, property_id, reason, error_message
            )

        REPORT_FAILURES_TRACKED_TOTAL.labels(reason=reason.value, outcome="opened" if opened else "incremented").inc()
        logger.info(
            "Tracked report failure.",
            extra={
                "failure_id": failure.id,
                "schedule_id": schedule_id,
                "failure_reason": reason.value,
                "consecutive_count": failure.consecutive_count,
            },
        )
        return failure

    async def _record_occurrence(
        self,
        schedule_id: int,
        owner_id: int,
        property_id: Optional[int],
        reason: FailureReason,
        error_message: Optional[str],
    ) -> Tuple[ReportFailure, bool]:
        now = datetime.now(timezone.utc)
        failure_id = await self.repo.increment_open_failure(schedule_id, reason, error_message, now)
        if failure_id is not None:
            return await self.repo.get_failure(failure_id), False

        # Another writer may open the record between the UPDATE and this
        # INSERT; the partial unique index rejects ours and we retry the UPDATE.
        async with self.db.begin_nested():
            failure = await self.repo.insert_failure(
                schedule_id, owner_id, property_id, reason, error_message, now
            )
        return failure, True

    async def get_failure(self, failure_id: int, owner_id: int) -> ReportFailure:
        failure = await self.repo.get_owned_failure(failure_id, owner_id)
        if failure is None:
            raise NotFoundError(f"Failure {failure_id} not found")
        return failure

    async def mark_resolved(self, failure_id: int) -> bool:
        """
        Resolves the failure on the caller's session without committing.
        Already-resolved failures are left untouched; returns whether this call
        resolved it.
        """
        resolved = await self.repo.mark_resolved(failure_id, datetime.now(timezone.utc))
        if resolved:
            logger.info("Marked failure resolved.", extra={"failure_id": failure_id})
        return resolved

    async def get_failure_history(self, owner_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[ReportFailure]:
        if not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
        return await self.repo.get_failure_history(owner_id, limit)

    async def get_failure_stats(self, owner_id: int) -> FailureStatsResponse:
        by_reason, unresolved, most_recent = await self.repo.get_failure_stats(owner_id)
        return FailureStatsResponse(
            total=sum(by_reason.values()),
            by_reason=by_reason,
            unresolved=unresolved,
            most_recent_failure=most_recent,
        )
