"""Workflow execution API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from automation.domain.enums import ExecutionStatus


class ExecutionSummaryResponse(BaseModel):
    """Result of POST /workflows/{id}/run."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    status: ExecutionStatus | None = None
    execution_id: str | None = None
    records_processed: int = 0
    records_updated: int = 0
    error: str | None = None


class WorkflowExecutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    execution_type: str
    status: str
    started_at: datetime
    completed_at: datetime | None
    records_processed: int
    records_updated: int
    error_message: str | None


class WorkflowExecutionResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    record_id: str
    action_id: str | None
    status: str
    new_value: str | None
    error_message: str | None
    created_at: datetime


class WorkflowExecutionDetailResponse(WorkflowExecutionResponse):
    """Execution with its per (record, action) results."""

    results: list[WorkflowExecutionResultResponse]
