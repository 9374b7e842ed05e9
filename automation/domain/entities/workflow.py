"""Workflow value objects consumed by the compiler, interpreter and cadence rules.

Conditions and actions are data, not code: each one is a tagged variant
(an enum tag plus a typed payload). Tags read from storage that are not
known enum members are kept as raw strings so callers can decide how to
degrade instead of failing at load time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from automation.domain.enums import (
    ActionType,
    ConditionOperator,
    LogicalOperator,
    ScheduleType,
)

E = TypeVar("E", bound=Enum)


def coerce_tag(enum_cls: type[E], raw: str | None) -> E | str | None:
    """Return the enum member for `raw`, or `raw` unchanged when unknown."""
    if raw is None:
        return None
    try:
        return enum_cls(raw.strip().upper())
    except ValueError:
        return raw


@dataclass(frozen=True)
class ConditionSpec:
    """One condition: (attribute, operator, comparison value) joined to its predecessor."""

    attribute_id: str
    operator: ConditionOperator | str
    value: str | None = None
    logical_operator: LogicalOperator | str | None = LogicalOperator.AND
    order: int = 0
    id: str | None = None

    @classmethod
    def from_raw(
        cls,
        *,
        attribute_id: str,
        operator: str,
        value: str | None,
        logical_operator: str | None,
        order: int,
        id: str | None = None,
    ) -> "ConditionSpec":
        return cls(
            attribute_id=attribute_id,
            operator=coerce_tag(ConditionOperator, operator) or operator,
            value=value,
            logical_operator=coerce_tag(LogicalOperator, logical_operator),
            order=order,
            id=id,
        )


@dataclass(frozen=True)
class ActionSpec:
    """One mutating action applied to a matching record."""

    action_type: ActionType | str
    target_attribute_id: str
    update_value: str | None = None
    source_attribute_id: str | None = None
    calculation_formula: str | None = None
    order: int = 0
    id: str | None = None

    @classmethod
    def from_raw(
        cls,
        *,
        action_type: str,
        target_attribute_id: str,
        update_value: str | None,
        source_attribute_id: str | None,
        calculation_formula: str | None,
        order: int,
        id: str | None = None,
    ) -> "ActionSpec":
        return cls(
            action_type=coerce_tag(ActionType, action_type) or action_type,
            target_attribute_id=target_attribute_id,
            update_value=update_value,
            source_attribute_id=source_attribute_id,
            calculation_formula=calculation_formula,
            order=order,
            id=id,
        )


@dataclass(frozen=True)
class ScheduleSpec:
    """Cadence of a scheduled workflow (bounds are enforced by the driver query)."""

    schedule_type: ScheduleType | str
    schedule_config: dict[str, Any] = field(default_factory=dict)
    timezone: str = "UTC"
    start_date: datetime | None = None
    end_date: datetime | None = None

    @property
    def cron_expression(self) -> str | None:
        value = self.schedule_config.get("cron_expression")
        return value.strip() if isinstance(value, str) and value.strip() else None
