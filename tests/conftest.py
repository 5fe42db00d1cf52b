# tests/conftest.py
import os
import sys
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from delivery_common.database_models import Base, PreferenceVersion, ReportSchedule  # noqa: E402


@pytest_asyncio.fixture
async def async_db_engine():
    """
    A fresh in-memory SQLite database per test, with the schema created from
    the ORM metadata. pysqlite's own transaction handling is switched off so
    SAVEPOINTs (begin_nested) behave as they do on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_db_session(async_db_engine) -> AsyncSession:
    session_factory = async_sessionmaker(
        bind=async_db_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_schedule(async_db_session: AsyncSession):
    """Factory that persists a report schedule and returns it."""
    async def _make(
        owner_id: int = 1,
        name: str = "Weekly owner statement",
        property_id: Optional[int] = None,
        preference_key: str = "default",
        schedule_id: Optional[int] = None,
    ) -> ReportSchedule:
        schedule = ReportSchedule(
            owner_id=owner_id,
            name=name,
            property_id=property_id,
            preference_key=preference_key,
            status="active",
        )
        if schedule_id is not None:
            schedule.id = schedule_id
        async_db_session.add(schedule)
        await async_db_session.commit()
        return schedule
    return _make


@pytest.fixture
def make_versions(async_db_session: AsyncSession):
    """Factory that seeds versions 1..count for an entity key with distinct snapshots."""
    async def _make(owner_id: int, entity_id: str, count: int) -> list[PreferenceVersion]:
        versions = []
        for number in range(1, count + 1):
            snapshot: dict[str, Any] = {"format": "pdf", "revision": number, "recipients": [f"r{number}@example.com"]}
            version = PreferenceVersion(
                owner_id=owner_id,
                entity_id=entity_id,
                version_number=number,
                snapshot=snapshot,
                change_description=f"Edit {number}",
            )
            async_db_session.add(version)
            versions.append(version)
        await async_db_session.commit()
        return versions
    return _make
