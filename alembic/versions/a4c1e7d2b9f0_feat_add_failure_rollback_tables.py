"""feat: add report schedules, preference versions, failures and rollback suggestions

Revision ID: a4c1e7d2b9f0
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "a4c1e7d2b9f0"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "report_schedules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("preference_key", sa.String(), server_default="default", nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_report_schedules_owner_id", "report_schedules", ["owner_id"], unique=False)
    op.create_index("ix_report_schedules_property_id", "report_schedules", ["property_id"], unique=False)
    op.create_index("ix_report_schedules_status", "report_schedules", ["status"], unique=False)

    op.create_table(
        "preference_versions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("change_description", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "entity_id", "version_number", name="_owner_entity_version_uc"),
    )
    op.create_index("ix_preference_versions_owner_id", "preference_versions", ["owner_id"], unique=False)
    op.create_index("ix_preference_versions_created_at", "preference_versions", ["created_at"], unique=False)

    op.create_table(
        "report_failures",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("schedule_id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("failure_reason", sa.String(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("consecutive_count", sa.Integer(), server_default="1", nullable=False),
        sa.Column("last_failed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_report_failures_schedule_id", "report_failures", ["schedule_id"], unique=False)
    op.create_index("ix_report_failures_owner_id", "report_failures", ["owner_id"], unique=False)
    op.create_index("ix_report_failures_failure_reason", "report_failures", ["failure_reason"], unique=False)
    op.create_index("ix_report_failures_last_failed_at", "report_failures", ["last_failed_at"], unique=False)
    op.create_index(
        "uq_report_failures_open_schedule",
        "report_failures",
        ["schedule_id"],
        unique=True,
        postgresql_where=sa.text("resolved_at IS NULL"),
    )

    op.create_table(
        "rollback_suggestions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("failure_id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("target_version_number", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), server_default="pending", nullable=False),
        sa.Column("origin", sa.String(), server_default="auto", nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("confidence BETWEEN 0 AND 100", name="ck_rollback_suggestions_confidence_range"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rollback_suggestions_failure_id", "rollback_suggestions", ["failure_id"], unique=False)
    op.create_index("ix_rollback_suggestions_owner_id", "rollback_suggestions", ["owner_id"], unique=False)
    op.create_index("ix_rollback_suggestions_status", "rollback_suggestions", ["status"], unique=False)
    op.create_index("ix_rollback_suggestions_owner_status", "rollback_suggestions", ["owner_id", "status"], unique=False)
    op.create_index(
        "uq_rollback_suggestions_auto_per_failure",
        "rollback_suggestions",
        ["failure_id"],
        unique=True,
        postgresql_where=sa.text("origin = 'auto'"),
    )
    op.create_index(
        "uq_rollback_suggestions_manual_per_failure",
        "rollback_suggestions",
        ["failure_id"],
        unique=True,
        postgresql_where=sa.text("origin = 'manual'"),
    )


def downgrade() -> None:
    op.drop_index("uq_rollback_suggestions_manual_per_failure", table_name="rollback_suggestions")
    op.drop_index("uq_rollback_suggestions_auto_per_failure", table_name="rollback_suggestions")
    op.drop_index("ix_rollback_suggestions_owner_status", table_name="rollback_suggestions")
    op.drop_index("ix_rollback_suggestions_status", table_name="rollback_suggestions")
    op.drop_index("ix_rollback_suggestions_owner_id", table_name="rollback_suggestions")
    op.drop_index("ix_rollback_suggestions_failure_id", table_name="rollback_suggestions")
    op.drop_table("rollback_suggestions")

    op.drop_index("uq_report_failures_open_schedule", table_name="report_failures")
    op.drop_index("ix_report_failures_last_failed_at", table_name="report_failures")
    op.drop_index("ix_report_failures_failure_reason", table_name="report_failures")
    op.drop_index("ix_report_failures_owner_id", table_name="report_failures")
    op.drop_index("ix_report_failures_schedule_id", table_name="report_failures")
    op.drop_table("report_failures")

    op.drop_index("ix_preference_versions_created_at", table_name="preference_versions")
    op.drop_index("ix_preference_versions_owner_id", table_name="preference_versions")
    op.drop_table("preference_versions")

    op.drop_index("ix_report_schedules_status", table_name="report_schedules")
    op.drop_index("ix_report_schedules_property_id", table_name="report_schedules")
    op.drop_index("ix_report_schedules_owner_id", table_name="report_schedules")
    op.drop_table("report_schedules")
