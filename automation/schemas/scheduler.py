"""Scheduler trigger and health API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from automation.domain.enums import ExecutionStatus, ExecutionType


class WorkflowRunOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    workflow_id: str
    name: str | None
    execution_type: ExecutionType
    executed: bool
    success: bool
    status: ExecutionStatus | None
    execution_id: str | None
    records_processed: int
    records_updated: int
    skipped_reason: str | None
    error: str | None


class SyncRunOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    schedule_id: str
    name: str | None
    data_model_id: str | None
    executed: bool
    success: bool
    records_fetched: int
    records_updated: int
    skipped_reason: str | None
    error: str | None
    triggered_workflows: list[WorkflowRunOutcomeResponse]


class SchedulerRunTotals(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_processed: int
    workflows_executed: int
    syncs_executed: int
    errors: int


class SchedulerTriggerResponse(BaseModel):
    """Response for POST /scheduler/trigger."""

    timestamp: datetime
    workflows: list[WorkflowRunOutcomeResponse]
    data_syncs: list[SyncRunOutcomeResponse] = Field(serialization_alias="dataSyncs")
    summary: SchedulerRunTotals


class SchedulerHealthResponse(BaseModel):
    """Response for GET /scheduler/health."""

    model_config = ConfigDict(from_attributes=True)

    status: str = "ok"
    workflows_due: int
    syncs_due: int
    timestamp: datetime
