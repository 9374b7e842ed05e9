"""Workflow definitions and execution history ORM models."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from automation.domain.enums import (
    ActionType,
    ExecutionResultStatus,
    ExecutionStatus,
    ExecutionType,
    LogicalOperator,
    ScheduleType,
    TriggerType,
    WorkflowStatus,
)
from automation.infrastructure.persistence.database import Base
from automation.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TimestampMixin,
    enum_check,
)


class Workflow(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Workflow definition. Table: workflow.

    running_since is the overlap-guard claim: set while a scheduler task
    runs the workflow, cleared afterwards.
    """

    __tablename__ = "workflow"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_model_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_type: Mapped[str] = mapped_column(
        String, nullable=False, default=TriggerType.MANUAL.value, index=True
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=WorkflowStatus.ACTIVE.value, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )
    running_since: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    conditions: Mapped[list["WorkflowCondition"]] = relationship(
        order_by="WorkflowCondition.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    actions: Mapped[list["WorkflowAction"]] = relationship(
        order_by="WorkflowAction.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    schedules: Mapped[list["WorkflowSchedule"]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        enum_check("trigger_type", TriggerType.values(), "workflow_trigger_type_check"),
        enum_check("status", WorkflowStatus.values(), "workflow_status_check"),
    )

    @property
    def active_schedule(self) -> "WorkflowSchedule | None":
        return next((s for s in self.schedules if s.is_active), None)


class WorkflowCondition(CuidMixin, Base):
    """One condition of a workflow predicate. Table: workflow_condition.

    operator is free text so rows with operators this engine does not know
    can still be loaded and skipped.
    """

    __tablename__ = "workflow_condition"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attribute_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model_attribute.id", ondelete="CASCADE"),
        nullable=False,
    )
    operator: Mapped[str] = mapped_column(String, nullable=False)
    condition_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    logical_operator: Mapped[str | None] = mapped_column(
        String, nullable=True, default=LogicalOperator.AND.value
    )
    order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )


class WorkflowAction(CuidMixin, Base):
    """One mutating action. Table: workflow_action."""

    __tablename__ = "workflow_action"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    target_attribute_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model_attribute.id", ondelete="CASCADE"),
        nullable=False,
    )
    update_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_attribute_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("data_model_attribute.id", ondelete="SET NULL"),
        nullable=True,
    )
    calculation_formula: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )

    __table_args__ = (
        enum_check("action_type", ActionType.values(), "workflow_action_type_check"),
    )


class WorkflowSchedule(CuidMixin, TimestampMixin, Base):
    """Cadence of a scheduled workflow, or sync trigger of an event-based one.

    Table: workflow_schedule.
    """

    __tablename__ = "workflow_schedule"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    schedule_type: Mapped[str] = mapped_column(
        String, nullable=False, default=ScheduleType.ONCE.value
    )
    schedule_config: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    timezone: Mapped[str] = mapped_column(
        String, nullable=False, default="UTC", server_default="UTC"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )
    trigger_on_sync: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.false()
    )
    trigger_on_sync_schedule_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("data_sync_schedule.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class WorkflowExecution(CuidMixin, Base):
    """One run of a workflow. Table: workflow_execution."""

    __tablename__ = "workflow_execution"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    execution_type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ExecutionStatus.RUNNING.value, index=True
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    results: Mapped[list["WorkflowExecutionResult"]] = relationship(
        order_by="WorkflowExecutionResult.created_at",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (
        Index(
            "ix_workflow_execution_workflow_type_started",
            "workflow_id",
            "execution_type",
            "started_at",
        ),
        enum_check(
            "execution_type",
            ExecutionType.values(),
            "workflow_execution_type_check",
        ),
        enum_check(
            "status", ExecutionStatus.values(), "workflow_execution_status_check"
        ),
    )


class WorkflowExecutionResult(CuidMixin, Base):
    """Per (record, action) outcome of an execution; append-only.

    Table: workflow_execution_result.
    """

    __tablename__ = "workflow_execution_result"

    execution_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow_execution.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    record_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    action_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        enum_check(
            "status",
            ExecutionResultStatus.values(),
            "workflow_execution_result_status_check",
        ),
    )
