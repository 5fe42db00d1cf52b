# tests/unit/services/rollback_service/services/test_failure_rollback_service.py
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock, patch

from delivery_common.exceptions import InvalidStateError, NotFoundError, StorageError, VersionNotFoundError
from src.services.rollback_service.app.services.failure_rollback_service import FailureRollbackService
from src.services.rollback_service.app.services.rollback_coordinator import RollbackResult

pytestmark = pytest.mark.asyncio

SERVICE_MODULE = "src.services.rollback_service.app.services.failure_rollback_service"
NOW = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)


def _failure(**overrides):
    values = dict(
        id=11, schedule_id=7, owner_id=1, property_id=None, failure_reason="email_delivery",
        error_message="SMTP 550", consecutive_count=1, last_failed_at=NOW, created_at=NOW, resolved_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _suggestion(**overrides):
    values = dict(
        id=21, failure_id=11, owner_id=1, entity_id="default", target_version_number=4, confidence=85,
        status="pending", origin="auto", reason="roll back", created_at=NOW, applied_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def mock_components():
    tracker = AsyncMock()
    engine = AsyncMock()
    coordinator = AsyncMock()
    with patch(f"{SERVICE_MODULE}.FailureTracker", return_value=tracker), \
         patch(f"{SERVICE_MODULE}.SuggestionEngine", return_value=engine), \
         patch(f"{SERVICE_MODULE}.RollbackCoordinator", return_value=coordinator):
        yield SimpleNamespace(tracker=tracker, engine=engine, coordinator=coordinator)


@pytest.fixture
def service(mock_components) -> FailureRollbackService:
    return FailureRollbackService(AsyncMock())


async def test_track_failure_returns_failure_and_suggestion(service, mock_components):
    mock_components.tracker.track.return_value = _failure()
    mock_components.engine.auto_suggest.return_value = _suggestion()

    response = await service.track_failure(7, 1, "email_delivery", error_message="SMTP 550")

    assert response.failure.id == 11
    assert response.suggestion.target_version_number == 4
    mock_components.engine.auto_suggest.assert_awaited_once_with(11, 1, 7)


async def test_track_failure_returns_none_on_storage_error(service, mock_components):
    mock_components.tracker.track.side_effect = StorageError("Storage failure during track_failure")

    assert await service.track_failure(7, 1, "email_delivery") is None
    mock_components.engine.auto_suggest.assert_not_awaited()


async def test_track_failure_keeps_failure_when_suggestion_storage_fails(service, mock_components):
    """
    GIVEN a tracked failure
    WHEN the automatic suggestion hits a storage error
    THEN the tracked failure is still returned, without a suggestion.
    """
    mock_components.tracker.track.return_value = _failure(consecutive_count=3)
    mock_components.engine.auto_suggest.side_effect = StorageError("Storage failure during auto_suggest")

    response = await service.track_failure(7, 1, "network_error")

    assert response.failure.consecutive_count == 3
    assert response.suggestion is None


async def test_track_failure_propagates_not_found(service, mock_components):
    mock_components.tracker.track.side_effect = NotFoundError("Schedule 7 not found")

    with pytest.raises(NotFoundError):
        await service.track_failure(7, 2, "email_delivery")


@pytest.mark.parametrize(
    "error",
    [
        NotFoundError("Suggestion 21 not found"),
        InvalidStateError("Suggestion 21 is applied; only pending suggestions can be applied"),
        VersionNotFoundError("Version 4 not found for 1:default"),
    ],
)
async def test_apply_rollback_reports_domain_errors_as_unsuccessful(service, mock_components, error):
    mock_components.coordinator.apply.side_effect = error

    response = await service.apply_rollback(21, 1)

    assert response.success is False
    assert response.message == str(error)
    assert response.restored_version_number is None


async def test_apply_rollback_hides_storage_details(service, mock_components):
    mock_components.coordinator.apply.side_effect = StorageError("Storage failure during apply_rollback")

    response = await service.apply_rollback(21, 1)

    assert response.success is False
    assert response.message == "Failed to apply rollback"


async def test_apply_rollback_success(service, mock_components):
    mock_components.coordinator.apply.return_value = RollbackResult(
        success=True, message="Successfully rolled back to version 4", restored_version_number=6
    )

    response = await service.apply_rollback(21, 1)

    assert response.success is True
    assert response.message == "Successfully rolled back to version 4"
    assert response.restored_version_number == 6
