"""Execution history repository: WorkflowExecution and its append-only results."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from automation.application.dtos.execution import ActionOutcome
from automation.domain.enums import ExecutionStatus, ExecutionType
from automation.infrastructure.persistence.models.workflow import (
    WorkflowExecution,
    WorkflowExecutionResult,
)
from automation.infrastructure.persistence.repositories.base import BaseRepository
from automation.shared.utils.datetime import ensure_utc


class ExecutionRepository(BaseRepository[WorkflowExecution]):
    """Creates, finalizes and queries executions. Implements IExecutionHistory."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowExecution)

    async def start(
        self, workflow_id: str, execution_type: ExecutionType, started_at: datetime
    ) -> WorkflowExecution:
        """Insert a RUNNING execution and flush so its id is available."""
        execution = WorkflowExecution(
            workflow_id=workflow_id,
            execution_type=execution_type.value,
            status=ExecutionStatus.RUNNING.value,
            started_at=started_at,
            records_processed=0,
            records_updated=0,
        )
        self.db.add(execution)
        await self.db.flush()
        return execution

    async def finalize(
        self,
        execution: WorkflowExecution,
        *,
        status: ExecutionStatus,
        completed_at: datetime,
        records_processed: int = 0,
        records_updated: int = 0,
        error_message: str | None = None,
    ) -> WorkflowExecution:
        execution.status = status.value
        execution.completed_at = completed_at
        execution.records_processed = records_processed
        execution.records_updated = records_updated
        execution.error_message = error_message
        await self.db.flush()
        return execution

    async def mark_failed(
        self, execution_id: str, completed_at: datetime, error_message: str
    ) -> None:
        """Fail an execution by id; used after the run's own transaction rolled back."""
        await self.db.execute(
            update(WorkflowExecution)
            .where(WorkflowExecution.id == execution_id)
            .values(
                status=ExecutionStatus.FAILED.value,
                completed_at=completed_at,
                error_message=error_message,
            )
        )

    async def add_results(
        self, execution_id: str, outcomes: Sequence[ActionOutcome]
    ) -> None:
        if not outcomes:
            return
        self.db.add_all(
            WorkflowExecutionResult(
                execution_id=execution_id,
                record_id=o.record_id,
                action_id=o.action_id,
                status=o.status.value,
                new_value=o.new_value,
                error_message=o.error,
            )
            for o in outcomes
        )
        await self.db.flush()

    async def has_scheduled_execution(
        self, workflow_id: str, since: datetime | None = None
    ) -> bool:
        q = select(WorkflowExecution.id).where(
            WorkflowExecution.workflow_id == workflow_id,
            WorkflowExecution.execution_type == ExecutionType.SCHEDULED.value,
        )
        if since is not None:
            q = q.where(WorkflowExecution.started_at >= ensure_utc(since))
        result = await self.db.execute(q.limit(1))
        return result.first() is not None

    async def list_for_workflow(
        self, workflow_id: str, skip: int = 0, limit: int = 50
    ) -> list[WorkflowExecution]:
        """Most recent first."""
        result = await self.db.execute(
            select(WorkflowExecution)
            .where(WorkflowExecution.workflow_id == workflow_id)
            .order_by(WorkflowExecution.started_at.desc(), WorkflowExecution.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_with_results(self, execution_id: str) -> WorkflowExecution | None:
        result = await self.db.execute(
            select(WorkflowExecution)
            .options(selectinload(WorkflowExecution.results))
            .where(WorkflowExecution.id == execution_id)
        )
        return result.scalar_one_or_none()
