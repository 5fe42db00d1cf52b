# tests/unit/libs/delivery-common/test_unit_of_work.py
import pytest
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from delivery_common.exceptions import NotFoundError, StorageError
from delivery_common.unit_of_work import transactional

pytestmark = pytest.mark.asyncio


@pytest.fixture
def mock_db_session() -> AsyncMock:
    return AsyncMock()


async def test_transactional_commits_on_success(mock_db_session: AsyncMock):
    async with transactional(mock_db_session, "unit_test") as session:
        assert session is mock_db_session

    mock_db_session.commit.assert_awaited_once()
    mock_db_session.rollback.assert_not_awaited()


async def test_transactional_wraps_database_errors(mock_db_session: AsyncMock):
    """
    GIVEN a database error raised inside the unit of work
    WHEN the block exits
    THEN the session is rolled back and a StorageError is raised in its place.
    """
    with pytest.raises(StorageError) as exc_info:
        async with transactional(mock_db_session, "unit_test"):
            raise OperationalError("UPDATE report_failures", {}, Exception("connection reset"))

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert "unit_test" in str(exc_info.value)
    mock_db_session.rollback.assert_awaited_once()
    mock_db_session.commit.assert_not_awaited()


async def test_transactional_propagates_domain_errors_unchanged(mock_db_session: AsyncMock):
    with pytest.raises(NotFoundError):
        async with transactional(mock_db_session, "unit_test"):
            raise NotFoundError("Failure 9 not found")

    mock_db_session.rollback.assert_awaited_once()
    mock_db_session.commit.assert_not_awaited()


async def test_transactional_wraps_commit_failures(mock_db_session: AsyncMock):
    mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("lock timeout"))

    with pytest.raises(StorageError):
        async with transactional(mock_db_session, "unit_test"):
            pass

    mock_db_session.rollback.assert_awaited_once()
