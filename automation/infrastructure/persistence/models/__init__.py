"""ORM models. Importing this package registers every table on Base.metadata."""

from automation.infrastructure.persistence.models.data_model import (
    DataModel,
    DataModelAttribute,
    DataRecord,
    DataRecordValue,
)
from automation.infrastructure.persistence.models.data_sync import (
    DataSyncSchedule,
    DataSyncWorkflowTrigger,
)
from automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowAction,
    WorkflowCondition,
    WorkflowExecution,
    WorkflowExecutionResult,
    WorkflowSchedule,
)

__all__ = [
    "DataModel",
    "DataModelAttribute",
    "DataRecord",
    "DataRecordValue",
    "DataSyncSchedule",
    "DataSyncWorkflowTrigger",
    "Workflow",
    "WorkflowAction",
    "WorkflowCondition",
    "WorkflowExecution",
    "WorkflowExecutionResult",
    "WorkflowSchedule",
]
