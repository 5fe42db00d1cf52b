# src/libs/delivery-common/delivery_common/unit_of_work.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import StorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transactional(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Commits everything staged on the session inside the block as one unit.

    Any exception rolls the whole unit back. Database errors are logged and
    re-raised as StorageError; domain errors propagate unchanged.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Storage failure; unit of work rolled back.", extra={"operation": operation}, exc_info=True)
        raise StorageError(f"Storage failure during {operation}") from exc
    except BaseException:
        await db.rollback()
        raise
