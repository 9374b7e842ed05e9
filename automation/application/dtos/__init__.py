"""Data transfer objects shared between services, repositories and the API layer."""

from automation.application.dtos.data_sync import SyncRunResult
from automation.application.dtos.execution import (
    ActionOutcome,
    ExecutionSummary,
    RecordSnapshot,
)
from automation.application.dtos.scheduler import (
    SchedulerHealth,
    SchedulerRunSummary,
    SyncRunOutcome,
    WorkflowRunOutcome,
)

__all__ = [
    "ActionOutcome",
    "ExecutionSummary",
    "RecordSnapshot",
    "SchedulerHealth",
    "SchedulerRunSummary",
    "SyncRunOutcome",
    "SyncRunResult",
    "WorkflowRunOutcome",
]
