"""Workflow definition API schemas."""

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from automation.domain.enums import (
    ActionType,
    ConditionOperator,
    LogicalOperator,
    ScheduleType,
    TriggerType,
    WorkflowStatus,
)


class WorkflowConditionIn(BaseModel):
    """One condition; logical_operator joins it to the previous condition."""

    attribute_id: str = Field(..., min_length=1)
    operator: ConditionOperator
    condition_value: str | None = None
    logical_operator: LogicalOperator = LogicalOperator.AND
    order: int = 0


class WorkflowActionIn(BaseModel):
    action_type: ActionType
    target_attribute_id: str = Field(..., min_length=1)
    update_value: str | None = None
    source_attribute_id: str | None = None
    calculation_formula: str | None = None
    order: int = 0


class WorkflowScheduleIn(BaseModel):
    """Cadence (SCHEDULED workflows) or sync trigger (EVENT_BASED workflows)."""

    schedule_type: ScheduleType = ScheduleType.ONCE
    schedule_config: dict[str, Any] = Field(default_factory=dict)
    start_date: datetime | None = None
    end_date: datetime | None = None
    timezone: str = "UTC"
    is_active: bool = True
    trigger_on_sync: bool = False
    trigger_on_sync_schedule_id: str | None = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v!r}") from e
        return v

    @model_validator(mode="after")
    def validate_cadence(self) -> "WorkflowScheduleIn":
        if self.schedule_type == ScheduleType.CUSTOM_CRON:
            expression = self.schedule_config.get("cron_expression")
            if not isinstance(expression, str) or not croniter.is_valid(expression):
                raise ValueError(
                    "CUSTOM_CRON schedules need a valid schedule_config.cron_expression"
                )
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class WorkflowDefinition(BaseModel):
    """Fields shared by create and full replace (PUT)."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    trigger_type: TriggerType = TriggerType.MANUAL
    status: WorkflowStatus = WorkflowStatus.ACTIVE
    is_active: bool = True
    conditions: list[WorkflowConditionIn] = Field(default_factory=list)
    actions: list[WorkflowActionIn] = Field(default_factory=list)
    schedule: WorkflowScheduleIn | None = None

    @model_validator(mode="after")
    def validate_schedule(self) -> "WorkflowDefinition":
        if self.trigger_type == TriggerType.SCHEDULED and self.schedule is None:
            raise ValueError("SCHEDULED workflows need a schedule")
        return self

    def attribute_ids(self) -> set[str]:
        """Every attribute id referenced by conditions and actions."""
        ids = {c.attribute_id for c in self.conditions}
        for action in self.actions:
            ids.add(action.target_attribute_id)
            if action.source_attribute_id:
                ids.add(action.source_attribute_id)
        return ids


class WorkflowCreateRequest(WorkflowDefinition):
    data_model_id: str = Field(..., min_length=1)


class WorkflowUpdateRequest(WorkflowDefinition):
    """Full replacement: conditions, actions and schedule are recreated."""


class WorkflowConditionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    attribute_id: str
    operator: str
    condition_value: str | None
    logical_operator: str | None
    order: int


class WorkflowActionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    action_type: str
    target_attribute_id: str
    update_value: str | None
    source_attribute_id: str | None
    calculation_formula: str | None
    order: int


class WorkflowScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    schedule_type: str
    schedule_config: dict[str, Any] | None
    start_date: datetime | None
    end_date: datetime | None
    timezone: str
    is_active: bool
    trigger_on_sync: bool
    trigger_on_sync_schedule_id: str | None


class WorkflowResponse(BaseModel):
    """Workflow with its conditions, actions and schedules."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    data_model_id: str
    trigger_type: str
    status: str
    is_active: bool
    running_since: datetime | None
    created_at: datetime
    updated_at: datetime
    conditions: list[WorkflowConditionResponse]
    actions: list[WorkflowActionResponse]
    schedules: list[WorkflowScheduleResponse]
