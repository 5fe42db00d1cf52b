# tests/unit/services/rollback_service/repositories/test_failure_repository.py
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from delivery_common.models import FailureReason
from src.services.rollback_service.app.repositories.failure_repository import FailureRepository

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def mock_db_session() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def repository(mock_db_session: AsyncMock) -> FailureRepository:
    return FailureRepository(mock_db_session)


def _compiled(mock_db_session: AsyncMock) -> str:
    stmt = mock_db_session.execute.call_args[0][0]
    return str(stmt.compile(dialect=postgresql.dialect()))


async def test_increment_open_failure_is_single_guarded_update(repository: FailureRepository, mock_db_session: AsyncMock):
    """
    GIVEN a schedule with an unresolved failure
    WHEN increment_open_failure is called
    THEN one UPDATE guarded by resolved_at IS NULL bumps the counter in SQL
    AND the updated row id is returned.
    """
    mock_result = MagicMock()
    mock_result.scalars.return_value.first.return_value = 17
    mock_db_session.execute.return_value = mock_result

    failure_id = await repository.increment_open_failure(7, FailureReason.EMAIL_DELIVERY, "SMTP 550", NOW)

    assert failure_id == 17
    mock_db_session.execute.assert_awaited_once()
    sql = _compiled(mock_db_session)
    assert sql.startswith("UPDATE report_failures")
    assert "consecutive_count=(report_failures.consecutive_count + " in sql
    assert "report_failures.resolved_at IS NULL" in sql
    assert "error_message=" in sql
    assert "RETURNING report_failures.id" in sql


async def test_increment_open_failure_keeps_previous_message_when_none(repository: FailureRepository, mock_db_session: AsyncMock):
    mock_result = MagicMock()
    mock_result.scalars.return_value.first.return_value = None
    mock_db_session.execute.return_value = mock_result

    failure_id = await repository.increment_open_failure(7, FailureReason.UNKNOWN, None, NOW)

    assert failure_id is None
    assert "error_message=" not in _compiled(mock_db_session)


async def test_insert_failure_starts_count_at_one(repository: FailureRepository, mock_db_session: AsyncMock):
    mock_db_session.add = MagicMock()

    failure = await repository.insert_failure(7, 1, 300, FailureReason.PDF_GENERATION, "render timeout", NOW)

    mock_db_session.add.assert_called_once_with(failure)
    mock_db_session.flush.assert_awaited_once()
    assert failure.consecutive_count == 1
    assert failure.failure_reason == "pdf_generation"
    assert failure.last_failed_at == NOW
    assert failure.resolved_at is None


async def test_mark_resolved_reports_whether_row_changed(repository: FailureRepository, mock_db_session: AsyncMock):
    mock_db_session.execute.return_value = MagicMock(rowcount=1)
    assert await repository.mark_resolved(17, NOW) is True
    assert "report_failures.resolved_at IS NULL" in _compiled(mock_db_session)

    mock_db_session.execute.return_value = MagicMock(rowcount=0)
    assert await repository.mark_resolved(17, NOW) is False


async def test_get_owned_failure_hides_other_owners(repository: FailureRepository, mock_db_session: AsyncMock):
    mock_db_session.get.return_value = MagicMock(owner_id=2)

    assert await repository.get_owned_failure(17, owner_id=1) is None
    assert await repository.get_owned_failure(17, owner_id=2) is not None
