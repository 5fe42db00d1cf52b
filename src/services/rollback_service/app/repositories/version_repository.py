# src/services/rollback_service/app/repositories/version_repository.py
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.database_models import PreferenceVersion
from delivery_common.models import EntityKey
from delivery_common.utils import async_timed


class VersionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @async_timed(repository="VersionRepository", method="list_versions")
    async def list_versions(self, entity_key: EntityKey) -> List[PreferenceVersion]:
        stmt = (
            select(PreferenceVersion)
            .where(
                PreferenceVersion.owner_id == entity_key.owner_id,
                PreferenceVersion.entity_id == entity_key.entity_id,
            )
            .order_by(PreferenceVersion.version_number.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @async_timed(repository="VersionRepository", method="get_version")
    async def get_version(self, entity_key: EntityKey, version_number: int) -> Optional[PreferenceVersion]:
        stmt = select(PreferenceVersion).where(
            PreferenceVersion.owner_id == entity_key.owner_id,
            PreferenceVersion.entity_id == entity_key.entity_id,
            PreferenceVersion.version_number == version_number,
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_max_version_number(self, entity_key: EntityKey) -> int:
        stmt = select(func.max(PreferenceVersion.version_number)).where(
            PreferenceVersion.owner_id == entity_key.owner_id,
            PreferenceVersion.entity_id == entity_key.entity_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    @async_timed(repository="VersionRepository", method="insert_version")
    async def insert_version(
        self,
        entity_key: EntityKey,
        version_number: int,
        snapshot: Any,
        change_description: Optional[str] = None,
    ) -> PreferenceVersion:
        version = PreferenceVersion(
            owner_id=entity_key.owner_id,
            entity_id=entity_key.entity_id,
            version_number=version_number,
            snapshot=snapshot,
            change_description=change_description,
        )
        self.db.add(version)
        await self.db.flush()
        return version
