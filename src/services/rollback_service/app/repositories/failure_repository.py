# src/services/rollback_service/app/repositories/failure_repository.py
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.database_models import ReportFailure
from delivery_common.models import FailureReason
from delivery_common.utils import async_timed

logger = logging.getLogger(__name__)


class FailureRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @async_timed(repository="FailureRepository", method="increment_open_failure")
    async def increment_open_failure(
        self,
        schedule_id: int,
        failure_reason: FailureReason,
        error_message: Optional[str],
        failed_at: datetime,
    ) -> Optional[int]:
        """
        Atomically bumps consecutive_count on the schedule's unresolved failure,
        if one exists. The read-increment-write happens in a single UPDATE
        guarded by resolved_at IS NULL.

        Returns the id of the updated row, or None when no unresolved failure exists.
        """
        values = {
            "consecutive_count": ReportFailure.consecutive_count + 1,
            "failure_reason": failure_reason.value,
            "last_failed_at": failed_at,
        }
        if error_message is not None:
            values["error_message"] = error_message

        stmt = (
            update(ReportFailure)
            .where(ReportFailure.schedule_id == schedule_id, ReportFailure.resolved_at.is_(None))
            .values(**values)
            .returning(ReportFailure.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    @async_timed(repository="FailureRepository", method="insert_failure")
    async def insert_failure(
        self,
        schedule_id: int,
        owner_id: int,
        property_id: Optional[int],
        failure_reason: FailureReason,
        error_message: Optional[str],
        failed_at: datetime,
    ) -> ReportFailure:
        failure = ReportFailure(
            schedule_id=schedule_id,
            owner_id=owner_id,
            property_id=property_id,
            failure_reason=failure_reason.value,
            error_message=error_message,
            consecutive_count=1,
            last_failed_at=failed_at,
            created_at=failed_at,
        )
        self.db.add(failure)
        await self.db.flush()
        return failure

    async def get_failure(self, failure_id: int) -> Optional[ReportFailure]:
        return await self.db.get(ReportFailure, failure_id, populate_existing=True)

    async def get_owned_failure(self, failure_id: int, owner_id: int) -> Optional[ReportFailure]:
        failure = await self.get_failure(failure_id)
        if failure is None or failure.owner_id != owner_id:
            return None
        return failure

    @async_timed(repository="FailureRepository", method="mark_resolved")
    async def mark_resolved(self, failure_id: int, resolved_at: datetime) -> bool:
        """Sets resolved_at only if still unresolved. Returns whether a row changed."""
        stmt = (
            update(ReportFailure)
            .where(ReportFailure.id == failure_id, ReportFailure.resolved_at.is_(None))
            .values(resolved_at=resolved_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return (result.rowcount or 0) > 0

    @async_timed(repository="FailureRepository", method="get_failure_history")
    async def get_failure_history(self, owner_id: int, limit: int) -> List[ReportFailure]:
        stmt = (
            select(ReportFailure)
            .where(ReportFailure.owner_id == owner_id)
            .order_by(ReportFailure.last_failed_at.desc(), ReportFailure.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @async_timed(repository="FailureRepository", method="get_failure_stats")
    async def get_failure_stats(self, owner_id: int) -> Tuple[Dict[str, int], int, Optional[datetime]]:
        """Returns (count by reason, unresolved count, most recent failure time)."""
        by_reason_stmt = (
            select(ReportFailure.failure_reason, func.count(ReportFailure.id))
            .where(ReportFailure.owner_id == owner_id)
            .group_by(ReportFailure.failure_reason)
        )
        by_reason = {reason: count for reason, count in (await self.db.execute(by_reason_stmt)).all()}

        summary_stmt = select(
            func.count(ReportFailure.id).filter(ReportFailure.resolved_at.is_(None)),
            func.max(ReportFailure.last_failed_at),
        ).where(ReportFailure.owner_id == owner_id)
        unresolved, most_recent = (await self.db.execute(summary_stmt)).one()
        return by_reason, unresolved or 0, most_recent
