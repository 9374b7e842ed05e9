"""Data-sync ORM models. Owned by the data-sync service; the engine only reads them."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from automation.domain.enums import SyncRunStatus, SyncScheduleType
from automation.infrastructure.persistence.database import Base
from automation.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TimestampMixin,
    enum_check,
)


class DataSyncSchedule(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Periodic import job feeding a data model. Table: data_sync_schedule."""

    __tablename__ = "data_sync_schedule"

    data_model_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    schedule_type: Mapped[str] = mapped_column(
        String, nullable=False, default=SyncScheduleType.MANUAL.value
    )
    schedule_config: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )
    next_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    last_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_run_status: Mapped[str | None] = mapped_column(String, nullable=True)
    last_run_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        enum_check(
            "schedule_type",
            SyncScheduleType.values(),
            "data_sync_schedule_type_check",
        ),
        enum_check(
            "last_run_status",
            SyncRunStatus.values(),
            "data_sync_schedule_last_run_status_check",
        ),
    )


class DataSyncWorkflowTrigger(CuidMixin, TimestampMixin, Base):
    """Explicit link: run `workflow_id` after a successful run of `sync_schedule_id`.

    Table: data_sync_workflow_trigger. Unlike the trigger_on_sync flag on a
    workflow schedule, a link names the workflow directly.
    """

    __tablename__ = "data_sync_workflow_trigger"

    sync_schedule_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_sync_schedule.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_on_success: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )

    __table_args__ = (
        UniqueConstraint(
            "sync_schedule_id",
            "workflow_id",
            name="data_sync_workflow_trigger_sync_workflow_key",
        ),
    )
