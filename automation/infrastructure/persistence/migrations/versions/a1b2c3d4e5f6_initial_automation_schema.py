"""initial_automation_schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-06

Attribute-value store (data_model, data_model_attribute, data_record,
data_record_value), data-sync schedules, workflow definitions and
execution history.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    """Create engine tables, indexes and check constraints."""
    op.create_table(
        "data_model",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_data_model_deleted_at", "data_model", ["deleted_at"])

    op.create_table(
        "data_model_attribute",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("data_model_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("attribute_type", sa.String(), nullable=False),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["data_model_id"], ["data_model.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "attribute_type IN ('TEXT', 'NUMBER', 'BOOLEAN', 'DATE', 'JSON')",
            name="data_model_attribute_type_check",
        ),
    )
    op.create_index("ix_data_model_attribute_data_model_id", "data_model_attribute", ["data_model_id"])

    op.create_table(
        "data_record",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("data_model_id", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["data_model_id"], ["data_model.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_data_record_data_model_id", "data_record", ["data_model_id"])
    op.create_index("ix_data_record_deleted_at", "data_record", ["deleted_at"])

    op.create_table(
        "data_record_value",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("record_id", sa.String(), nullable=False),
        sa.Column("attribute_id", sa.String(), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("value_number", sa.Float(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["record_id"], ["data_record.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["attribute_id"], ["data_model_attribute.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("record_id", "attribute_id", name="uq_data_record_value_record_attribute"),
    )
    op.create_index("ix_data_record_value_record_id", "data_record_value", ["record_id"])
    op.create_index("ix_data_record_value_attribute_id", "data_record_value", ["attribute_id"])

    op.create_table(
        "data_sync_schedule",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("data_model_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("schedule_type", sa.String(), nullable=False),
        sa.Column("schedule_config", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_run_status", sa.String(), nullable=True),
        sa.Column("last_run_error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["data_model_id"], ["data_model.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "schedule_type IN ('MANUAL', 'HOURLY', 'DAILY', 'WEEKLY', 'CUSTOM_CRON')",
            name="data_sync_schedule_type_check",
        ),
        sa.CheckConstraint(
            "last_run_status IN ('RUNNING', 'COMPLETED', 'FAILED')",
            name="data_sync_schedule_last_run_status_check",
        ),
    )
    op.create_index("ix_data_sync_schedule_data_model_id", "data_sync_schedule", ["data_model_id"])
    op.create_index("ix_data_sync_schedule_next_run_at", "data_sync_schedule", ["next_run_at"])
    op.create_index("ix_data_sync_schedule_deleted_at", "data_sync_schedule", ["deleted_at"])

    op.create_table(
        "workflow",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("data_model_id", sa.String(), nullable=False),
        sa.Column("trigger_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("running_since", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["data_model_id"], ["data_model.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "trigger_type IN ('MANUAL', 'SCHEDULED', 'EVENT_BASED')",
            name="workflow_trigger_type_check",
        ),
        sa.CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="workflow_status_check"),
    )
    op.create_index("ix_workflow_data_model_id", "workflow", ["data_model_id"])
    op.create_index("ix_workflow_trigger_type", "workflow", ["trigger_type"])
    op.create_index("ix_workflow_status", "workflow", ["status"])
    op.create_index("ix_workflow_deleted_at", "workflow", ["deleted_at"])

    op.create_table(
        "workflow_condition",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("attribute_id", sa.String(), nullable=False),
        sa.Column("operator", sa.String(), nullable=False),
        sa.Column("condition_value", sa.Text(), nullable=True),
        sa.Column("logical_operator", sa.String(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["attribute_id"], ["data_model_attribute.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_workflow_condition_workflow_id", "workflow_condition", ["workflow_id"])

    op.create_table(
        "workflow_action",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("target_attribute_id", sa.String(), nullable=False),
        sa.Column("update_value", sa.Text(), nullable=True),
        sa.Column("source_attribute_id", sa.String(), nullable=True),
        sa.Column("calculation_formula", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_attribute_id"], ["data_model_attribute.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_attribute_id"], ["data_model_attribute.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "action_type IN ('UPDATE_VALUE', 'SET_DEFAULT', 'COPY_FROM', 'CALCULATE')",
            name="workflow_action_type_check",
        ),
    )
    op.create_index("ix_workflow_action_workflow_id", "workflow_action", ["workflow_id"])

    op.create_table(
        "workflow_schedule",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("schedule_type", sa.String(), nullable=False),
        sa.Column("schedule_config", sa.JSON(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timezone", sa.String(), nullable=False, server_default="UTC"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("trigger_on_sync", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("trigger_on_sync_schedule_id", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["trigger_on_sync_schedule_id"], ["data_sync_schedule.id"], ondelete="SET NULL"
        ),
    )
    op.create_index("ix_workflow_schedule_workflow_id", "workflow_schedule", ["workflow_id"])
    op.create_index(
        "ix_workflow_schedule_trigger_on_sync_schedule_id",
        "workflow_schedule",
        ["trigger_on_sync_schedule_id"],
    )

    op.create_table(
        "workflow_execution",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("execution_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("records_processed", sa.Integer(), nullable=False),
        sa.Column("records_updated", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "execution_type IN ('MANUAL', 'SCHEDULED', 'EVENT_BASED')",
            name="workflow_execution_type_check",
        ),
        sa.CheckConstraint(
            "status IN ('RUNNING', 'COMPLETED', 'COMPLETED_WITH_ERRORS', 'FAILED')",
            name="workflow_execution_status_check",
        ),
    )
    op.create_index("ix_workflow_execution_workflow_id", "workflow_execution", ["workflow_id"])
    op.create_index("ix_workflow_execution_status", "workflow_execution", ["status"])
    # Cadence check: latest SCHEDULED run of a workflow since a boundary.
    op.create_index(
        "ix_workflow_execution_workflow_type_started",
        "workflow_execution",
        ["workflow_id", "execution_type", "started_at"],
    )

    op.create_table(
        "workflow_execution_result",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("execution_id", sa.String(), nullable=False),
        sa.Column("record_id", sa.String(), nullable=False),
        sa.Column("action_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["execution_id"], ["workflow_execution.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('SUCCESS', 'FAILED')",
            name="workflow_execution_result_status_check",
        ),
    )
    op.create_index("ix_workflow_execution_result_execution_id", "workflow_execution_result", ["execution_id"])
    op.create_index("ix_workflow_execution_result_record_id", "workflow_execution_result", ["record_id"])


def downgrade() -> None:
    """Drop engine tables in reverse dependency order."""
    op.drop_table("workflow_execution_result")
    op.drop_table("workflow_execution")
    op.drop_table("workflow_schedule")
    op.drop_table("workflow_action")
    op.drop_table("workflow_condition")
    op.drop_table("workflow")
    op.drop_table("data_sync_schedule")
    op.drop_table("data_record_value")
    op.drop_table("data_record")
    op.drop_table("data_model_attribute")
    op.drop_table("data_model")
