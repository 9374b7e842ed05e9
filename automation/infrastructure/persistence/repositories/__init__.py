"""Repositories: ORM access for the engine, scheduler and API."""

from automation.infrastructure.persistence.repositories.attribute_value_repo import (
    AttributeValueRepository,
)
from automation.infrastructure.persistence.repositories.execution_repo import (
    ExecutionRepository,
)
from automation.infrastructure.persistence.repositories.sync_schedule_repo import (
    SyncScheduleRepository,
)
from automation.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowRepository,
)

__all__ = [
    "AttributeValueRepository",
    "ExecutionRepository",
    "SyncScheduleRepository",
    "WorkflowRepository",
]
