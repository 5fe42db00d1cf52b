# tests/integration/services/rollback_service/test_int_preference_versions.py
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.exceptions import VersionNotFoundError
from delivery_common.models import EntityKey
from src.services.rollback_service.app.services.preference_version_service import PreferenceVersionService
from src.services.rollback_service.app.services.version_store import VersionStore

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(async_db_session: AsyncSession) -> PreferenceVersionService:
    return PreferenceVersionService(async_db_session)


async def test_save_appends_sequential_versions(service):
    first = await service.save_version(1, "default", {"format": "pdf"}, "Initial layout")
    second = await service.save_version(1, "default", {"format": "csv"})

    assert first.version_number == 1
    assert first.change_description == "Initial layout"
    assert second.version_number == 2

    history = await service.get_versions(1, "default")
    assert [v.version_number for v in history.versions] == [2, 1]
    assert history.versions[0].snapshot == {"format": "csv"}


async def test_version_numbers_are_scoped_per_entity_key(service):
    await service.save_version(1, "default", {"format": "pdf"})
    await service.save_version(1, "default", {"format": "csv"})

    other_entity = await service.save_version(1, "weekly", {"format": "pdf"})
    other_owner = await service.save_version(2, "default", {"format": "pdf"})

    assert other_entity.version_number == 1
    assert other_owner.version_number == 1
    assert (await service.get_versions(3, "default")).versions == []


async def test_restore_appends_copy_and_keeps_history(service):
    await service.save_version(1, "default", {"format": "pdf", "recipients": ["a@example.com"]})
    await service.save_version(1, "default", {"format": "csv", "recipients": []})

    restored = await service.restore_version(1, "default", 1)

    assert restored.version_number == 3
    assert restored.snapshot == {"format": "pdf", "recipients": ["a@example.com"]}
    assert restored.change_description == "Restored from version 1"
    history = await service.get_versions(1, "default")
    assert [v.version_number for v in history.versions] == [3, 2, 1]
    assert history.versions[1].snapshot == {"format": "csv", "recipients": []}


async def test_restore_unknown_version_raises_and_appends_nothing(service):
    await service.save_version(1, "default", {"format": "pdf"})

    with pytest.raises(VersionNotFoundError):
        await service.restore_version(1, "default", 7)

    assert [v.version_number for v in (await service.get_versions(1, "default")).versions] == [1]


async def test_diff_between_versions(service):
    await service.save_version(1, "default", {"format": "pdf", "recipients": ["a@example.com"]})
    await service.save_version(1, "default", {"format": "pdf", "recipients": ["a@example.com", "b@example.com"], "tz": "UTC"})

    diff = await service.get_diff(1, "default", 1, 2)

    assert diff.added == {"tz": "UTC"}
    assert diff.removed == {}
    assert diff.changed["recipients"].items_added == ["b@example.com"]
    with pytest.raises(VersionNotFoundError):
        await service.get_diff(1, "default", 1, 9)


async def test_append_retries_when_version_number_is_taken(async_db_session, monkeypatch):
    """
    GIVEN a concurrent writer that took the next version number
    WHEN the store appends
    THEN the unique constraint rejects the first attempt and the retry takes the following number.
    """
    store = VersionStore(async_db_session)
    key = EntityKey(1, "default")
    await store.save_version(key, {"format": "pdf"})
    await async_db_session.commit()

    real_max = store.repo.get_max_version_number
    calls = {"count": 0}

    async def stale_max_once(entity_key):
        calls["count"] += 1
        if calls["count"] == 1:
            return 0
        return await real_max(entity_key)

    monkeypatch.setattr(store.repo, "get_max_version_number", stale_max_once)

    version = await store.save_version(key, {"format": "csv"})
    await async_db_session.commit()

    assert calls["count"] == 2
    assert version.version_number == 2
