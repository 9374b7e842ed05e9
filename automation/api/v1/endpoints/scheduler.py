"""Scheduler API: the periodic trigger and the due-work report."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from automation.api.v1.dependencies import get_scheduler_service
from automation.core.limiter import limit_scheduler_trigger
from automation.infrastructure.services.scheduler_service import SchedulerService
from automation.schemas.scheduler import (
    SchedulerHealthResponse,
    SchedulerRunTotals,
    SchedulerTriggerResponse,
    SyncRunOutcomeResponse,
    WorkflowRunOutcomeResponse,
)

router = APIRouter()


@router.post("/trigger", response_model=SchedulerTriggerResponse)
@limit_scheduler_trigger
async def trigger_scheduler(
    request: Request,
    scheduler: Annotated[SchedulerService, Depends(get_scheduler_service)],
):
    """Run one scheduler pass. Per-item failures are reported in the body, not as errors."""
    summary = await scheduler.run_due_work()
    return SchedulerTriggerResponse(
        timestamp=summary.timestamp,
        workflows=[
            WorkflowRunOutcomeResponse.model_validate(w) for w in summary.workflows
        ],
        data_syncs=[
            SyncRunOutcomeResponse.model_validate(s) for s in summary.data_syncs
        ],
        summary=SchedulerRunTotals.model_validate(summary),
    )


@router.get("/health", response_model=SchedulerHealthResponse)
async def scheduler_health(
    scheduler: Annotated[SchedulerService, Depends(get_scheduler_service)],
):
    """Report how many workflows and syncs are due right now (read-only)."""
    health = await scheduler.get_health()
    return SchedulerHealthResponse.model_validate(health)
