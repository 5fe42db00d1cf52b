# src/services/rollback_service/app/dependencies.py
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_common.db import get_async_db_session
from .services.failure_rollback_service import FailureRollbackService
from .services.preference_version_service import PreferenceVersionService


def get_current_owner_id(x_user_id: int = Header(..., alias="X-User-Id", ge=1)) -> int:
    """The authenticated principal, as forwarded by the upstream gateway."""
    return x_user_id


def get_failure_rollback_service(
    db: AsyncSession = Depends(get_async_db_session),
) -> FailureRollbackService:
    return FailureRollbackService(db)


def get_preference_version_service(
    db: AsyncSession = Depends(get_async_db_session),
) -> PreferenceVersionService:
    return PreferenceVersionService(db)
