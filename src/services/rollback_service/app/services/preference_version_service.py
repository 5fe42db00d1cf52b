# src/services/rollback_service/app/services/preference_version_service.py
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.models import EntityKey
from delivery_common.unit_of_work import transactional

from ..dtos.version_dto import PreferenceVersionRecord, PreferenceVersionsResponse, VersionDiff
from .version_store import VersionStore


class PreferenceVersionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = VersionStore(db)

    async def get_versions(self, owner_id: int, entity_id: str) -> PreferenceVersionsResponse:
        versions = await self.store.list_versions(EntityKey(owner_id, entity_id))
        return PreferenceVersionsResponse(
            owner_id=owner_id,
            entity_id=entity_id,
            versions=[PreferenceVersionRecord.model_validate(v) for v in versions],
        )

    async def save_version(
        self, owner_id: int, entity_id: str, snapshot: dict[str, Any], change_description: Optional[str] = None
    ) -> PreferenceVersionRecord:
        async with transactional(self.db, "save_preference_version"):
            version = await self.store.save_version(EntityKey(owner_id, entity_id), snapshot, change_description)
        return PreferenceVersionRecord.model_validate(version)

    async def restore_version(self, owner_id: int, entity_id: str, version_number: int) -> PreferenceVersionRecord:
        async with transactional(self.db, "restore_preference_version"):
            version = await self.store.restore(EntityKey(owner_id, entity_id), version_number)
        return PreferenceVersionRecord.model_validate(version)

    async def get_diff(self, owner_id: int, entity_id: str, from_version: int, to_version: int) -> VersionDiff:
        return await self.store.diff_versions(EntityKey(owner_id, entity_id), from_version, to_version)
