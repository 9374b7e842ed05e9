"""DTOs for a single workflow execution (no dependency on ORM)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from automation.domain.enums import ExecutionResultStatus, ExecutionStatus


@dataclass(frozen=True)
class RecordSnapshot:
    """Values of one record as of the start of its processing.

    Every action applied to the record reads from this snapshot, so writes
    made by earlier actions in the same run are not visible to later ones.
    """

    record_id: str
    values: Mapping[str, str | None]
    attribute_names: Mapping[str, str] = field(default_factory=dict)

    def value_of(self, attribute_id: str) -> str | None:
        return self.values.get(attribute_id)

    def by_name(self) -> dict[str, str | None]:
        """Values keyed by attribute name (unknown ids keep their id as key)."""
        return {
            self.attribute_names.get(attr_id, attr_id): value
            for attr_id, value in self.values.items()
        }


@dataclass(frozen=True)
class ActionOutcome:
    """Result of applying one action to one record (persisted as an execution result)."""

    record_id: str
    action_id: str | None
    status: ExecutionResultStatus
    new_value: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionResultStatus.SUCCESS


@dataclass
class ExecutionSummary:
    """Outcome of WorkflowEngine.run.

    success is False only for precondition and compile failures; a run that
    finished with per-record errors is successful with status
    COMPLETED_WITH_ERRORS.
    """

    success: bool
    records_processed: int = 0
    records_updated: int = 0
    status: ExecutionStatus | None = None
    execution_id: str | None = None
    error: str | None = None
