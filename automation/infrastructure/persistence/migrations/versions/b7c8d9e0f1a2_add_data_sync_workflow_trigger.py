"""add_data_sync_workflow_trigger

Revision ID: b7c8d9e0f1a2
Revises: a1b2c3d4e5f6
Create Date: 2026-10-17

Explicit sync -> workflow links; a successful sync runs every linked
EVENT_BASED workflow with trigger_on_success set.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "b7c8d9e0f1a2"
down_revision: Union[str, Sequence[str], None] = "a1b2c3d4e5f6"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create data_sync_workflow_trigger."""
    op.create_table(
        "data_sync_workflow_trigger",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("sync_schedule_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("trigger_on_success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["sync_schedule_id"], ["data_sync_schedule.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflow.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "sync_schedule_id",
            "workflow_id",
            name="data_sync_workflow_trigger_sync_workflow_key",
        ),
    )
    op.create_index(
        "ix_data_sync_workflow_trigger_sync_schedule_id",
        "data_sync_workflow_trigger",
        ["sync_schedule_id"],
    )
    op.create_index(
        "ix_data_sync_workflow_trigger_workflow_id",
        "data_sync_workflow_trigger",
        ["workflow_id"],
    )


def downgrade() -> None:
    """Drop data_sync_workflow_trigger."""
    op.drop_index("ix_data_sync_workflow_trigger_workflow_id", table_name="data_sync_workflow_trigger")
    op.drop_index("ix_data_sync_workflow_trigger_sync_schedule_id", table_name="data_sync_workflow_trigger")
    op.drop_table("data_sync_workflow_trigger")
