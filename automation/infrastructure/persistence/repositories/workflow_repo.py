"""Workflow repository: definitions, scheduler candidate queries and the overlap claim."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from automation.domain.entities.workflow import (
    ActionSpec,
    ConditionSpec,
    ScheduleSpec,
    coerce_tag,
)
from automation.domain.enums import ScheduleType, TriggerType, WorkflowStatus
from automation.infrastructure.persistence.models.data_sync import DataSyncWorkflowTrigger
from automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowAction,
    WorkflowCondition,
    WorkflowSchedule,
)
from automation.infrastructure.persistence.repositories.base import BaseRepository
from automation.shared.utils.datetime import ensure_utc


class WorkflowRepository(BaseRepository[Workflow]):
    """Workflow repository. Conditions, actions and schedules load with the workflow."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Workflow)

    async def get_live(self, workflow_id: str) -> Workflow | None:
        """Return the workflow unless it is missing or soft-deleted."""
        result = await self.db.execute(
            select(Workflow).where(
                Workflow.id == workflow_id,
                Workflow.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def list_workflows(
        self,
        skip: int = 0,
        limit: int = 100,
        data_model_id: str | None = None,
        include_inactive: bool = False,
    ) -> list[Workflow]:
        q = select(Workflow).where(Workflow.deleted_at.is_(None))
        if data_model_id:
            q = q.where(Workflow.data_model_id == data_model_id)
        if not include_inactive:
            q = q.where(Workflow.is_active.is_(True))
        q = q.order_by(Workflow.created_at.desc(), Workflow.id).offset(skip).limit(limit)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def replace_definition(
        self,
        workflow: Workflow,
        conditions: list[WorkflowCondition],
        actions: list[WorkflowAction],
        schedules: list[WorkflowSchedule],
    ) -> Workflow:
        """Swap conditions, actions and schedules in one flush (old rows are deleted)."""
        workflow.conditions = conditions
        workflow.actions = actions
        workflow.schedules = schedules
        await self.db.flush()
        await self.db.refresh(workflow)
        return workflow

    async def soft_delete(self, workflow: Workflow, now: datetime) -> Workflow:
        """Mark deleted and inactive; the row and its history are kept."""
        workflow.deleted_at = now
        workflow.is_active = False
        workflow.status = WorkflowStatus.INACTIVE.value
        await self.db.flush()
        return workflow

    async def find_scheduled_candidates(self, now: datetime) -> list[Workflow]:
        """Live SCHEDULED workflows whose active schedule window contains `now`."""
        result = await self.db.execute(
            select(Workflow)
            .join(
                WorkflowSchedule,
                (WorkflowSchedule.workflow_id == Workflow.id)
                & WorkflowSchedule.is_active.is_(True),
            )
            .where(
                Workflow.trigger_type == TriggerType.SCHEDULED.value,
                Workflow.status == WorkflowStatus.ACTIVE.value,
                Workflow.is_active.is_(True),
                Workflow.deleted_at.is_(None),
                or_(WorkflowSchedule.start_date.is_(None), WorkflowSchedule.start_date <= now),
                or_(WorkflowSchedule.end_date.is_(None), WorkflowSchedule.end_date >= now),
            )
            .order_by(Workflow.created_at, Workflow.id)
        )
        return list(result.scalars().unique().all())

    async def find_sync_dependents(
        self, data_model_id: str, sync_schedule_id: str
    ) -> list[Workflow]:
        """Live EVENT_BASED workflows that fire after the given sync succeeds.

        A workflow qualifies through its active schedule (trigger_on_sync on the
        same data model, for any sync or this one) or through an explicit
        trigger_on_success link to this sync. Each workflow is returned once.
        """
        via_schedule = (
            select(WorkflowSchedule.id)
            .where(
                WorkflowSchedule.workflow_id == Workflow.id,
                WorkflowSchedule.is_active.is_(True),
                WorkflowSchedule.trigger_on_sync.is_(True),
                or_(
                    WorkflowSchedule.trigger_on_sync_schedule_id.is_(None),
                    WorkflowSchedule.trigger_on_sync_schedule_id == sync_schedule_id,
                ),
            )
            .exists()
        )
        via_link = (
            select(DataSyncWorkflowTrigger.id)
            .where(
                DataSyncWorkflowTrigger.workflow_id == Workflow.id,
                DataSyncWorkflowTrigger.sync_schedule_id == sync_schedule_id,
                DataSyncWorkflowTrigger.trigger_on_success.is_(True),
            )
            .exists()
        )
        result = await self.db.execute(
            select(Workflow)
            .where(
                Workflow.trigger_type == TriggerType.EVENT_BASED.value,
                Workflow.status == WorkflowStatus.ACTIVE.value,
                Workflow.is_active.is_(True),
                Workflow.deleted_at.is_(None),
                or_(
                    and_(Workflow.data_model_id == data_model_id, via_schedule),
                    via_link,
                ),
            )
            .order_by(Workflow.created_at, Workflow.id)
        )
        return list(result.scalars().all())

    async def claim(
        self, workflow_id: str, now: datetime, stale_after: timedelta
    ) -> bool:
        """Set running_since when unclaimed or stale; True when this caller won the claim.

        The conditional UPDATE is atomic, so two schedulers racing for the
        same workflow cannot both succeed.
        """
        result = await self.db.execute(
            update(Workflow)
            .where(
                Workflow.id == workflow_id,
                or_(
                    Workflow.running_since.is_(None),
                    Workflow.running_since < now - stale_after,
                ),
            )
            .values(running_since=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release(self, workflow_id: str) -> None:
        await self.db.execute(
            update(Workflow)
            .where(Workflow.id == workflow_id)
            .values(running_since=None)
            .execution_options(synchronize_session=False)
        )


def condition_specs(workflow: Workflow) -> list[ConditionSpec]:
    return [
        ConditionSpec.from_raw(
            attribute_id=c.attribute_id,
            operator=c.operator,
            value=c.condition_value,
            logical_operator=c.logical_operator,
            order=c.order,
            id=c.id,
        )
        for c in workflow.conditions
    ]


def action_specs(workflow: Workflow) -> list[ActionSpec]:
    return [
        ActionSpec.from_raw(
            action_type=a.action_type,
            target_attribute_id=a.target_attribute_id,
            update_value=a.update_value,
            source_attribute_id=a.source_attribute_id,
            calculation_formula=a.calculation_formula,
            order=a.order,
            id=a.id,
        )
        for a in workflow.actions
    ]


def schedule_spec(schedule: WorkflowSchedule) -> ScheduleSpec:
    return ScheduleSpec(
        schedule_type=coerce_tag(ScheduleType, schedule.schedule_type)
        or schedule.schedule_type,
        schedule_config=dict(schedule.schedule_config or {}),
        timezone=schedule.timezone or "UTC",
        start_date=ensure_utc(schedule.start_date),
        end_date=ensure_utc(schedule.end_date),
    )
