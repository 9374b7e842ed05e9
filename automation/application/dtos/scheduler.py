"""DTOs for scheduler passes and the health report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from automation.domain.enums import ExecutionStatus, ExecutionType


@dataclass
class WorkflowRunOutcome:
    """What happened to one workflow during a scheduler pass or sync cascade."""

    workflow_id: str
    name: str | None = None
    execution_type: ExecutionType = ExecutionType.SCHEDULED
    executed: bool = False
    success: bool = False
    status: ExecutionStatus | None = None
    execution_id: str | None = None
    records_processed: int = 0
    records_updated: int = 0
    skipped_reason: str | None = None
    error: str | None = None


@dataclass
class SyncRunOutcome:
    """What happened to one due data-sync job, including its cascade."""

    schedule_id: str
    name: str | None = None
    data_model_id: str | None = None
    executed: bool = False
    success: bool = False
    records_fetched: int = 0
    records_updated: int = 0
    skipped_reason: str | None = None
    error: str | None = None
    triggered_workflows: list[WorkflowRunOutcome] = field(default_factory=list)


@dataclass
class SchedulerRunSummary:
    """Aggregate of one scheduler pass. Used for observability only."""

    timestamp: datetime
    workflows: list[WorkflowRunOutcome] = field(default_factory=list)
    data_syncs: list[SyncRunOutcome] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.workflows) + len(self.data_syncs)

    @property
    def workflows_executed(self) -> int:
        cascaded = sum(
            1
            for sync in self.data_syncs
            for outcome in sync.triggered_workflows
            if outcome.executed
        )
        return sum(1 for w in self.workflows if w.executed) + cascaded

    @property
    def syncs_executed(self) -> int:
        return sum(1 for s in self.data_syncs if s.executed)

    @property
    def errors(self) -> int:
        cascaded = sum(
            1
            for sync in self.data_syncs
            for outcome in sync.triggered_workflows
            if outcome.error
        )
        return (
            sum(1 for w in self.workflows if w.error)
            + sum(1 for s in self.data_syncs if s.error)
            + cascaded
        )


@dataclass(frozen=True)
class SchedulerHealth:
    """Counts of work currently due (nothing is executed to compute them)."""

    workflows_due: int
    syncs_due: int
    timestamp: datetime
    status: str = "ok"
