"""Domain entities and value objects."""

from automation.domain.entities.workflow import (
    ActionSpec,
    ConditionSpec,
    ScheduleSpec,
)

__all__ = ["ActionSpec", "ConditionSpec", "ScheduleSpec"]
