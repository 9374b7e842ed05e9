"""Domain enumerations for the automation engine.

Values are upper-case strings because they are persisted as-is and exposed
unchanged through the API.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings (e.g. for CHECK constraints)."""
        return [member.value for member in cls]


class TriggerType(_ValuesMixin, str, Enum):
    """How a workflow gets started."""

    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"
    EVENT_BASED = "EVENT_BASED"


class WorkflowStatus(_ValuesMixin, str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ConditionOperator(_ValuesMixin, str, Enum):
    """Comparison applied to one attribute value of a record."""

    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    IS_EMPTY = "IS_EMPTY"
    IS_NOT_EMPTY = "IS_NOT_EMPTY"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"


class LogicalOperator(_ValuesMixin, str, Enum):
    """Joins a condition to the previous one (no precedence, left to right)."""

    AND = "AND"
    OR = "OR"


class ActionType(_ValuesMixin, str, Enum):
    UPDATE_VALUE = "UPDATE_VALUE"
    SET_DEFAULT = "SET_DEFAULT"
    COPY_FROM = "COPY_FROM"
    CALCULATE = "CALCULATE"


class ScheduleType(_ValuesMixin, str, Enum):
    """Cadence of a scheduled workflow."""

    ONCE = "ONCE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM_CRON = "CUSTOM_CRON"


class ExecutionType(_ValuesMixin, str, Enum):
    """What started a workflow execution."""

    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"
    EVENT_BASED = "EVENT_BASED"


class ExecutionStatus(_ValuesMixin, str, Enum):
    """Workflow execution lifecycle: RUNNING, then one terminal state."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"
    FAILED = "FAILED"


class ExecutionResultStatus(_ValuesMixin, str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class AttributeType(_ValuesMixin, str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    JSON = "JSON"


class SyncScheduleType(_ValuesMixin, str, Enum):
    """Cadence of an external data-sync job. MANUAL jobs never auto-run."""

    MANUAL = "MANUAL"
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    CUSTOM_CRON = "CUSTOM_CRON"


class SyncRunStatus(_ValuesMixin, str, Enum):
    """Last run status of a data-sync job, written by the sync service."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
