"""Cadence evaluator: is a scheduled workflow due, judged from execution history only.

Each schedule type is one CadenceRule that returns the window in which a
prior SCHEDULED execution satisfies the cadence. The workflow is due when
no such execution exists in the window. Adding a schedule type means adding
one rule.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from automation.application.interfaces.repositories import IExecutionHistory
from automation.domain.entities.workflow import ScheduleSpec
from automation.domain.enums import ScheduleType
from automation.shared.telemetry.logging import get_logger
from automation.shared.utils.datetime import (
    ensure_utc,
    start_of_day,
    start_of_month,
    start_of_week,
    utc_now,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CadenceWindow:
    """Lookback window: a SCHEDULED execution started at or after `since` satisfies the cadence.

    since=None means the whole history.
    """

    since: datetime | None


class CadenceRule(ABC):
    """Computes the lookback window for one schedule type."""

    SCHEDULE_TYPE: ClassVar[ScheduleType]

    @abstractmethod
    def window(
        self, schedule: ScheduleSpec, now: datetime, reference_tz: tzinfo
    ) -> CadenceWindow | None:
        """Return the window, or None when the schedule can never be due."""


class OnceRule(CadenceRule):
    SCHEDULE_TYPE = ScheduleType.ONCE

    def window(self, schedule, now, reference_tz):
        return CadenceWindow(since=None)


class DailyRule(CadenceRule):
    SCHEDULE_TYPE = ScheduleType.DAILY

    def window(self, schedule, now, reference_tz):
        return CadenceWindow(since=start_of_day(now, reference_tz))


class WeeklyRule(CadenceRule):
    SCHEDULE_TYPE = ScheduleType.WEEKLY

    def window(self, schedule, now, reference_tz):
        return CadenceWindow(since=start_of_week(now, reference_tz))


class MonthlyRule(CadenceRule):
    SCHEDULE_TYPE = ScheduleType.MONTHLY

    def window(self, schedule, now, reference_tz):
        return CadenceWindow(since=start_of_month(now, reference_tz))


class CronRule(CadenceRule):
    """Due once per cron fire time (schedule_config['cron_expression'], schedule timezone)."""

    SCHEDULE_TYPE = ScheduleType.CUSTOM_CRON

    def window(self, schedule, now, reference_tz):
        expression = schedule.cron_expression
        if not expression or not croniter.is_valid(expression):
            logger.warning(
                "CUSTOM_CRON schedule has missing or invalid cron_expression: %r",
                expression,
            )
            return None
        try:
            tz: tzinfo = ZoneInfo(schedule.timezone or "UTC")
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "Unknown schedule timezone %r; using reference timezone",
                schedule.timezone,
            )
            tz = reference_tz
        last_fire = croniter(expression, now.astimezone(tz)).get_prev(datetime)
        return CadenceWindow(since=last_fire)


DEFAULT_RULES: tuple[CadenceRule, ...] = (
    OnceRule(),
    DailyRule(),
    WeeklyRule(),
    MonthlyRule(),
    CronRule(),
)


class CadenceEvaluator:
    """Decides whether a scheduled workflow is due now. Read-only."""

    def __init__(
        self,
        history: IExecutionHistory,
        reference_tz: tzinfo = UTC,
        rules: Mapping[ScheduleType, CadenceRule] | None = None,
    ) -> None:
        self._history = history
        self._reference_tz = reference_tz
        self._rules: Mapping[ScheduleType, CadenceRule] = rules or {
            rule.SCHEDULE_TYPE: rule for rule in DEFAULT_RULES
        }

    async def is_due(
        self,
        workflow_id: str,
        schedule: ScheduleSpec,
        now: datetime | None = None,
    ) -> bool:
        """Return True when no SCHEDULED execution falls in the schedule's current window."""
        rule = self._rules.get(schedule.schedule_type)
        if rule is None:
            logger.debug(
                "No cadence rule for schedule type %r (workflow %s)",
                schedule.schedule_type,
                workflow_id,
            )
            return False
        window = rule.window(schedule, ensure_utc(now) or utc_now(), self._reference_tz)
        if window is None:
            return False
        ran = await self._history.has_scheduled_execution(
            workflow_id, since=ensure_utc(window.since)
        )
        return not ran
