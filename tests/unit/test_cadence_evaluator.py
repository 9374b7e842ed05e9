"""CadenceEvaluator unit tests with a fake execution history."""

import logging
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from automation.application.services.cadence_evaluator import (
    CadenceEvaluator,
    CadenceRule,
    CadenceWindow,
)
from automation.domain.entities.workflow import ScheduleSpec
from automation.domain.enums import ScheduleType

CADENCE_LOGGER = "automation.application.services.cadence_evaluator"


class FakeHistory:
    """Holds SCHEDULED execution start times; remembers the last `since` asked for."""

    def __init__(self, *started: datetime) -> None:
        self.started = list(started)
        self.asked_since: list[datetime | None] = []

    async def has_scheduled_execution(self, workflow_id, since=None):
        self.asked_since.append(since)
        return any(since is None or t >= since for t in self.started)


# Wednesday
NOW = datetime(2026, 10, 14, 15, 30, tzinfo=UTC)


async def _due(history: FakeHistory, schedule_type, **kw) -> bool:
    evaluator = CadenceEvaluator(history, kw.pop("reference_tz", UTC))
    return await evaluator.is_due("wf1", ScheduleSpec(schedule_type, **kw), NOW)


class TestOnce:
    async def test_due_when_never_run(self) -> None:
        assert await _due(FakeHistory(), ScheduleType.ONCE)

    async def test_not_due_after_any_scheduled_run(self) -> None:
        long_ago = datetime(2020, 1, 1, tzinfo=UTC)
        history = FakeHistory(long_ago)
        assert not await _due(history, ScheduleType.ONCE)
        assert history.asked_since == [None]


class TestDaily:
    async def test_due_when_last_run_was_yesterday(self) -> None:
        history = FakeHistory(NOW - timedelta(days=1))
        assert await _due(history, ScheduleType.DAILY)
        assert history.asked_since == [datetime(2026, 10, 14, tzinfo=UTC)]

    async def test_not_due_when_already_run_today(self) -> None:
        history = FakeHistory(datetime(2026, 10, 14, 0, 5, tzinfo=UTC))
        assert not await _due(history, ScheduleType.DAILY)

    async def test_day_boundary_follows_reference_timezone(self) -> None:
        # 15:30 UTC is 02:30 on Oct 15 in Sydney (UTC+11), so a run at 10:00 UTC
        # belongs to Sydney's previous day.
        history = FakeHistory(datetime(2026, 10, 14, 10, 0, tzinfo=UTC))
        assert await _due(
            history, ScheduleType.DAILY, reference_tz=ZoneInfo("Australia/Sydney")
        )


class TestWeekly:
    async def test_week_starts_monday(self) -> None:
        history = FakeHistory()
        await _due(history, ScheduleType.WEEKLY)
        since = history.asked_since[0]
        assert since == datetime(2026, 10, 12, tzinfo=UTC)
        assert since.weekday() == 0

    async def test_not_due_after_run_this_monday(self) -> None:
        history = FakeHistory(datetime(2026, 10, 12, 9, 0, tzinfo=UTC))
        assert not await _due(history, ScheduleType.WEEKLY)

    async def test_due_after_run_last_sunday(self) -> None:
        history = FakeHistory(datetime(2026, 10, 11, 23, 0, tzinfo=UTC))
        assert await _due(history, ScheduleType.WEEKLY)


class TestMonthly:
    async def test_window_starts_on_the_first(self) -> None:
        history = FakeHistory(datetime(2026, 9, 30, 23, 59, tzinfo=UTC))
        assert await _due(history, ScheduleType.MONTHLY)
        assert history.asked_since == [datetime(2026, 10, 1, tzinfo=UTC)]

    async def test_not_due_after_run_this_month(self) -> None:
        history = FakeHistory(datetime(2026, 10, 1, 0, 0, tzinfo=UTC))
        assert not await _due(history, ScheduleType.MONTHLY)


class TestCustomCron:
    async def test_due_when_no_run_since_last_fire_time(self) -> None:
        # Every hour at :00; last fire 15:00, last run 14:10.
        history = FakeHistory(datetime(2026, 10, 14, 14, 10, tzinfo=UTC))
        assert await _due(
            history,
            ScheduleType.CUSTOM_CRON,
            schedule_config={"cron_expression": "0 * * * *"},
        )
        assert history.asked_since[0] == datetime(2026, 10, 14, 15, 0, tzinfo=UTC)

    async def test_not_due_when_run_after_last_fire_time(self) -> None:
        history = FakeHistory(datetime(2026, 10, 14, 15, 1, tzinfo=UTC))
        assert not await _due(
            history,
            ScheduleType.CUSTOM_CRON,
            schedule_config={"cron_expression": "0 * * * *"},
        )

    async def test_fire_time_uses_schedule_timezone(self) -> None:
        # 09:00 daily in New York (EDT, UTC-4) is 13:00 UTC.
        history = FakeHistory()
        await _due(
            history,
            ScheduleType.CUSTOM_CRON,
            schedule_config={"cron_expression": "0 9 * * *"},
            timezone="America/New_York",
        )
        assert history.asked_since[0].astimezone(UTC) == datetime(
            2026, 10, 14, 13, 0, tzinfo=UTC
        )

    @pytest.mark.parametrize("config", [{}, {"cron_expression": "every day"}])
    async def test_missing_or_invalid_expression_is_never_due(self, config, caplog) -> None:
        history = FakeHistory()
        with caplog.at_level(logging.WARNING, logger=CADENCE_LOGGER):
            assert not await _due(
                history, ScheduleType.CUSTOM_CRON, schedule_config=config
            )
        assert history.asked_since == []
        assert [r.name for r in caplog.records] == [CADENCE_LOGGER]
        assert "invalid cron_expression" in caplog.records[0].getMessage()


async def test_unknown_schedule_type_is_not_due() -> None:
    history = FakeHistory()
    assert not await _due(history, "FORTNIGHTLY")
    assert history.asked_since == []


async def test_custom_rules_can_replace_defaults() -> None:
    class AlwaysSinceEpoch(CadenceRule):
        SCHEDULE_TYPE = ScheduleType.DAILY

        def window(self, schedule, now, reference_tz):
            return CadenceWindow(since=datetime(1970, 1, 1, tzinfo=UTC))

    history = FakeHistory(datetime(2000, 1, 1, tzinfo=UTC))
    evaluator = CadenceEvaluator(history, rules={ScheduleType.DAILY: AlwaysSinceEpoch()})
    assert not await evaluator.is_due("wf1", ScheduleSpec(ScheduleType.DAILY), NOW)
