# src/services/rollback_service/app/services/version_store.py
import copy
import logging
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import before_log, retry, retry_if_exception_type, stop_after_attempt

from delivery_common.config import VERSION_APPEND_MAX_ATTEMPTS
from delivery_common.database_models import PreferenceVersion
from delivery_common.exceptions import VersionNotFoundError
from delivery_common.models import EntityKey
from delivery_common.monitoring import PREFERENCE_VERSIONS_APPENDED_TOTAL

from ..dtos.version_dto import FieldChange, VersionDiff
from ..repositories.version_repository import VersionRepository

logger = logging.getLogger(__name__)


class VersionStore:
    """
    Append-only preference history per entity key.

    Methods stage writes on the caller's session and never commit, so a
    restore can share a unit of work with other writes.
    """
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = VersionRepository(db)

    async def list_versions(self, entity_key: EntityKey) -> List[PreferenceVersion]:
        """Versions for the entity, newest first."""
        return await self.repo.list_versions(entity_key)

    async def get_version(self, entity_key: EntityKey, version_number: int) -> PreferenceVersion:
        version = await self.repo.get_version(entity_key, version_number)
        if version is None:
            raise VersionNotFoundError(f"Version {version_number} not found for {entity_key}")
        return version

    async def get_current_version_number(self, entity_key: EntityKey) -> int:
        return await self.repo.get_max_version_number(entity_key)

    async def save_version(
        self, entity_key: EntityKey, snapshot: Any, change_description: Optional[str] = None
    ) -> PreferenceVersion:
        version = await self._append(entity_key, snapshot, change_description)
        PREFERENCE_VERSIONS_APPENDED_TOTAL.labels(kind="save").inc()
        return version

    async def restore(self, entity_key: EntityKey, target_version_number: int) -> PreferenceVersion:
        """
        Re-appends the snapshot of target_version_number as a new current
        version. History is never rewritten.
        """
        target = await self.get_version(entity_key, target_version_number)
        version = await self._append(
            entity_key,
            copy.deepcopy(target.snapshot),
            f"Restored from version {target.version_number}",
        )
        PREFERENCE_VERSIONS_APPENDED_TOTAL.labels(kind="restore").inc()
        logger.info(
            "Restored preference version.",
            extra={
                "entity_key": str(entity_key),
                "restored_from": target.version_number,
                "new_version": version.version_number,
            },
        )
        return version

    async def diff_versions(self, entity_key: EntityKey, from_version: int, to_version: int) -> VersionDiff:
        old = await self.get_version(entity_key, from_version)
        new = await self.get_version(entity_key, to_version)
        return compute_snapshot_diff(old.snapshot, new.snapshot, from_version, to_version)

    async def _append(
        self, entity_key: EntityKey, snapshot: Any, change_description: Optional[str]
    ) -> PreferenceVersion:
        # A concurrent append can take the same number; the unique constraint
        # rejects it and the savepoint lets us retry with a fresh max.
        retry_config = retry(
            stop=stop_after_attempt(VERSION_APPEND_MAX_ATTEMPTS),
            before=before_log(logger, logging.DEBUG),
            retry=retry_if_exception_type(IntegrityError),
            reraise=True,
        )
        return await retry_config(self._append_once)(entity_key, snapshot, change_description)

    async def _append_once(
        self, entity_key: EntityKey, snapshot: Any, change_description: Optional[str]
    ) -> PreferenceVersion:
        async with self.db.begin_nested():
            next_number = await self.repo.get_max_version_number(entity_key) + 1
            return await self.repo.insert_version(entity_key, next_number, snapshot, change_description)


def compute_snapshot_diff(old: Any, new: Any, from_version: int, to_version: int) -> VersionDiff:
    """
    Key-level diff of two snapshots. List values are compared as sets and
    report the members added and removed; non-mapping snapshots are compared
    whole under the key "value".
    """
    old_map = old if isinstance(old, dict) else {"value": old}
    new_map = new if isinstance(new, dict) else {"value": new}

    diff = VersionDiff(from_version=from_version, to_version=to_version)
    for key in new_map.keys() - old_map.keys():
        diff.added[key] = new_map[key]
    for key in old_map.keys() - new_map.keys():
        diff.removed[key] = old_map[key]

    for key in old_map.keys() & new_map.keys():
        before, after = old_map[key], new_map[key]
        if before == after:
            continue
        change = FieldChange(old_value=before, new_value=after)
        if isinstance(before, list) and isinstance(after, list):
            change.items_added = [item for item in after if item not in before]
            change.items_removed = [item for item in before if item not in after]
        diff.changed[key] = change
    return diff
