# src/libs/delivery-common/delivery_common/database_models.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer,
    String, Text, DateTime,
    JSON, CheckConstraint, Index, UniqueConstraint, text
)

from .db_base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportSchedule(Base):
    """
    Scheduled report delivery configuration. Only the columns the
    failure/rollback core needs for ownership and version lookups are mapped.
    """
    __tablename__ = 'report_schedules'

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, nullable=False, index=True)
    property_id = Column(Integer, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    preference_key = Column(String, nullable=False, default='default', server_default='default')
    status = Column(String, nullable=False, default='active', server_default='active', index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class PreferenceVersion(Base):
    """
    Append-only snapshot history of a preference set. Rows are never updated
    or deleted; the highest version_number per (owner_id, entity_id) is current.
    """
    __tablename__ = 'preference_versions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, nullable=False, index=True)
    entity_id = Column(String, nullable=False)
    version_number = Column(Integer, nullable=False)
    snapshot = Column(JSON, nullable=False)
    change_description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('owner_id', 'entity_id', 'version_number', name='_owner_entity_version_uc'),
    )


class ReportFailure(Base):
    """
    One row per run of consecutive delivery failures of a schedule. While
    resolved_at is NULL, repeated failures increment consecutive_count on the
    same row; the partial unique index keeps a single open row per schedule.
    """
    __tablename__ = 'report_failures'

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(Integer, nullable=False, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    property_id = Column(Integer, nullable=True)
    failure_reason = Column(String, nullable=False, index=True)
    error_message = Column(Text, nullable=True)
    consecutive_count = Column(Integer, nullable=False, default=1)
    last_failed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            'uq_report_failures_open_schedule',
            'schedule_id',
            unique=True,
            postgresql_where=text('resolved_at IS NULL'),
            sqlite_where=text('resolved_at IS NULL'),
        ),
    )


class RollbackSuggestion(Base):
    """
    Proposed restoration of a prior preference version for a failure.
    Status moves pending -> applied | rejected and is never deleted.
    """
    __tablename__ = 'rollback_suggestions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    failure_id = Column(Integer, nullable=False, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    entity_id = Column(String, nullable=False)
    target_version_number = Column(Integer, nullable=False)
    confidence = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default='pending', index=True)
    origin = Column(String, nullable=False, default='auto')
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            'uq_rollback_suggestions_auto_per_failure',
            'failure_id',
            unique=True,
            postgresql_where=text("origin = 'auto'"),
            sqlite_where=text("origin = 'auto'"),
        ),
        Index(
            'uq_rollback_suggestions_manual_per_failure',
            'failure_id',
            unique=True,
            postgresql_where=text("origin = 'manual'"),
            sqlite_where=text("origin = 'manual'"),
        ),
        Index('ix_rollback_suggestions_owner_status', 'owner_id', 'status'),
        CheckConstraint('confidence BETWEEN 0 AND 100', name='ck_rollback_suggestions_confidence_range'),
    )
