# src/services/rollback_service/app/repositories/schedule_repository.py
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.database_models import ReportSchedule
from delivery_common.exceptions import NotFoundError
from delivery_common.models import EntityKey
from delivery_common.utils import async_timed

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """
    Schedule ownership lookup. Resolves a schedule to its owner and to the
    entity key whose preference history drives the scheduled report.
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    @async_timed(repository="ScheduleRepository", method="get_schedule")
    async def get_schedule(self, schedule_id: int) -> Optional[ReportSchedule]:
        stmt = select(ReportSchedule).where(ReportSchedule.id == schedule_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_owned_schedule(self, schedule_id: int, owner_id: int) -> ReportSchedule:
        schedule = await self.get_schedule(schedule_id)
        if schedule is None or schedule.owner_id != owner_id:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return schedule

    async def entity_key_for(self, schedule_id: int) -> EntityKey:
        schedule = await self.get_schedule(schedule_id)
        if schedule is None:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return EntityKey(owner_id=schedule.owner_id, entity_id=schedule.preference_key)

    async def create_schedule(
        self,
        owner_id: int,
        name: str,
        property_id: Optional[int] = None,
        preference_key: str = "default",
    ) -> ReportSchedule:
        schedule = ReportSchedule(
            owner_id=owner_id,
            name=name,
            property_id=property_id,
            preference_key=preference_key,
            status="active",
        )
        self.db.add(schedule)
        await self.db.flush()
        await self.db.refresh(schedule)
        logger.info("Created report schedule.", extra={"schedule_id": schedule.id, "owner_id": owner_id})
        return schedule
