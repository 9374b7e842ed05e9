"""SchedulerService passes: cadence, overlap claims, sync cascade and health."""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

from automation.application.dtos.data_sync import SyncRunResult
from automation.domain.enums import (
    ExecutionStatus,
    ExecutionType,
    SyncRunStatus,
    SyncScheduleType,
    TriggerType,
    WorkflowStatus,
)
from automation.domain.exceptions import DataSyncException
from automation.infrastructure.persistence.models import DataSyncSchedule
from automation.infrastructure.services.expression_evaluator import (
    JinjaExpressionEvaluator,
)
from automation.infrastructure.services.scheduler_service import (
    KeyedLocks,
    SchedulerService,
)
from automation.shared.utils.datetime import utc_now

PENDING_TO_REVIEWED = {
    "conditions": [{"attribute": "status", "operator": "EQUALS", "value": "PENDING"}],
    "actions": [{"type": "UPDATE_VALUE", "target": "status", "value": "REVIEWED"}],
}


class FakeSyncRunner:
    """Records calls; returns a canned result or raises."""

    def __init__(self, result: SyncRunResult | Exception | None = None) -> None:
        self.result = result or SyncRunResult(success=True, records_fetched=5, records_updated=2)
        self.calls: list[str] = []

    async def run(self, schedule_id: str) -> SyncRunResult:
        self.calls.append(schedule_id)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class AdvancingSyncRunner(FakeSyncRunner):
    """Behaves like the sync service: a run moves the schedule to tomorrow."""

    def __init__(self, session_factory) -> None:
        super().__init__()
        self._session_factory = session_factory

    async def run(self, schedule_id: str) -> SyncRunResult:
        result = await super().run(schedule_id)
        async with self._session_factory() as session, session.begin():
            schedule = await session.get(DataSyncSchedule, schedule_id)
            schedule.next_run_at = utc_now() + timedelta(days=1)
            schedule.last_run_status = SyncRunStatus.COMPLETED.value
        return result


class ContendedLocks(KeyedLocks):
    """Sets `contended` once `waiters` callers have asked for `key`."""

    def __init__(self, key: str, waiters: int) -> None:
        super().__init__()
        self._key = key
        self._waiters = waiters
        self._requests = 0
        self.contended = asyncio.Event()

    @asynccontextmanager
    async def hold(self, key: str):
        if key == self._key:
            self._requests += 1
            if self._requests >= self._waiters:
                self.contended.set()
        async with super().hold(key):
            yield


@pytest.fixture
def make_scheduler(session_factory):
    def _make(sync_runner=None, **kwargs) -> SchedulerService:
        return SchedulerService(
            session_factory,
            JinjaExpressionEvaluator(),
            sync_runner=sync_runner,
            max_concurrency=1,
            locks=KeyedLocks(),
            **kwargs,
        )

    return _make


@pytest.fixture
async def model(seed):
    m = await seed.data_model({"status": None})
    await seed.record(m, {"status": "PENDING"})
    return m


async def scheduled(seed, model, schedule_type="DAILY", **kwargs):
    schedule = {"schedule_type": schedule_type, **kwargs.pop("schedule", {})}
    return await seed.workflow(
        model,
        trigger_type=TriggerType.SCHEDULED,
        schedule=schedule,
        **PENDING_TO_REVIEWED,
        **kwargs,
    )


class TestScheduledWorkflows:
    async def test_daily_runs_once_per_day(self, seed, model, make_scheduler) -> None:
        wf = await scheduled(seed, model)
        scheduler = make_scheduler()

        first = await scheduler.run_due_work()
        second = await scheduler.run_due_work()

        [outcome] = first.workflows
        assert outcome.workflow_id == wf
        assert outcome.executed is True
        assert outcome.success is True
        assert outcome.status == ExecutionStatus.COMPLETED
        assert outcome.execution_type == ExecutionType.SCHEDULED
        assert outcome.records_updated == 1
        assert first.workflows_executed == 1

        [again] = second.workflows
        assert again.executed is False
        assert again.skipped_reason == "Not due"
        assert second.workflows_executed == 0

        [execution] = await seed.executions(wf)
        assert execution.execution_type == "SCHEDULED"
        assert (await seed.workflow_row(wf)).running_since is None

    async def test_yesterdays_run_does_not_block_today(self, seed, model, make_scheduler) -> None:
        wf = await scheduled(seed, model)
        await seed.execution(wf, "SCHEDULED", utc_now() - timedelta(days=1, hours=1))

        summary = await make_scheduler().run_due_work()

        assert summary.workflows[0].executed is True
        assert len(await seed.executions(wf)) == 2

    async def test_manual_runs_do_not_count_toward_cadence(
        self, seed, model, make_scheduler
    ) -> None:
        wf = await scheduled(seed, model)
        await seed.execution(wf, "MANUAL", utc_now())

        summary = await make_scheduler().run_due_work()

        assert summary.workflows[0].executed is True

    async def test_once_never_repeats(self, seed, model, make_scheduler) -> None:
        wf = await scheduled(seed, model, "ONCE")
        await seed.execution(wf, "SCHEDULED", utc_now() - timedelta(days=30))

        summary = await make_scheduler().run_due_work()

        assert summary.workflows[0].skipped_reason == "Not due"
        assert len(await seed.executions(wf)) == 1

    async def test_held_claim_skips_workflow(self, seed, model, make_scheduler) -> None:
        claimed_at = utc_now() - timedelta(minutes=5)
        wf = await scheduled(seed, model, running_since=claimed_at)

        summary = await make_scheduler().run_due_work()

        [outcome] = summary.workflows
        assert outcome.executed is False
        assert outcome.skipped_reason == "Workflow is already running"
        assert outcome.error is None
        assert await seed.executions(wf) == []
        assert (await seed.workflow_row(wf)).running_since is not None

    async def test_stale_claim_is_taken_over(self, seed, model, make_scheduler) -> None:
        wf = await scheduled(seed, model, running_since=utc_now() - timedelta(hours=2))

        summary = await make_scheduler(claim_stale_after=timedelta(hours=1)).run_due_work()

        assert summary.workflows[0].executed is True
        assert (await seed.workflow_row(wf)).running_since is None

    @pytest.mark.parametrize(
        "schedule",
        [
            {"start_date": utc_now() + timedelta(days=1)},
            {"end_date": utc_now() - timedelta(days=1)},
            {"is_active": False},
        ],
    )
    async def test_schedule_window_excludes_workflow(
        self, seed, model, make_scheduler, schedule
    ) -> None:
        await scheduled(seed, model, schedule=schedule)

        summary = await make_scheduler().run_due_work()

        assert summary.workflows == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"trigger_type": TriggerType.MANUAL},
            {"status": WorkflowStatus.INACTIVE},
            {"is_active": False},
        ],
    )
    async def test_only_active_scheduled_workflows_are_candidates(
        self, seed, model, make_scheduler, kwargs
    ) -> None:
        fields = {"trigger_type": TriggerType.SCHEDULED, **kwargs}
        await seed.workflow(model, schedule={"schedule_type": "DAILY"}, **fields)

        summary = await make_scheduler().run_due_work()

        assert summary.workflows == []

    async def test_compile_failure_is_reported_not_raised(
        self, seed, model, make_scheduler
    ) -> None:
        await seed.workflow(
            model,
            trigger_type=TriggerType.SCHEDULED,
            schedule={"schedule_type": "DAILY"},
            conditions=[{"attribute": "status", "operator": "GREATER_THAN", "value": "x"}],
        )

        summary = await make_scheduler().run_due_work()

        [outcome] = summary.workflows
        assert outcome.executed is True
        assert outcome.success is False
        assert outcome.status == ExecutionStatus.FAILED
        assert "not a number" in outcome.error
        assert summary.errors == 1


class TestDataSyncs:
    async def test_successful_sync_cascades_to_event_workflows(
        self, seed, model, make_scheduler
    ) -> None:
        sync = await seed.sync_schedule(model)
        follower = await seed.workflow(
            model,
            trigger_type=TriggerType.EVENT_BASED,
            schedule={"trigger_on_sync": True},
            **PENDING_TO_REVIEWED,
        )
        runner = FakeSyncRunner()

        summary = await make_scheduler(runner).run_due_work()

        assert runner.calls == [sync]
        [sync_outcome] = summary.data_syncs
        assert sync_outcome.executed is True
        assert sync_outcome.success is True
        assert sync_outcome.records_fetched == 5
        [triggered] = sync_outcome.triggered_workflows
        assert triggered.workflow_id == follower
        assert triggered.execution_type == ExecutionType.EVENT_BASED
        assert triggered.executed is True
        assert summary.syncs_executed == 1
        assert summary.workflows_executed == 1
        [execution] = await seed.executions(follower)
        assert execution.execution_type == "EVENT_BASED"

    async def test_cascade_respects_sync_specific_trigger(
        self, seed, model, make_scheduler
    ) -> None:
        sync = await seed.sync_schedule(model, name="A")
        other = await seed.sync_schedule(
            model, name="B", next_run_at=utc_now() + timedelta(days=1)
        )
        for_a = await seed.workflow(
            model,
            trigger_type=TriggerType.EVENT_BASED,
            schedule={"trigger_on_sync": True, "trigger_on_sync_schedule_id": sync},
        )
        await seed.workflow(
            model,
            trigger_type=TriggerType.EVENT_BASED,
            schedule={"trigger_on_sync": True, "trigger_on_sync_schedule_id": other},
        )
        await seed.workflow(
            model,
            trigger_type=TriggerType.EVENT_BASED,
            schedule={"trigger_on_sync": False},
        )

        summary = await make_scheduler(FakeSyncRunner()).run_due_work()

        [sync_outcome] = summary.data_syncs
        assert [w.workflow_id for w in sync_outcome.triggered_workflows] == [for_a]

    async def test_linked_workflow_runs_after_sync(self, seed, model, make_scheduler) -> None:
        sync = await seed.sync_schedule(model)
        other_model = await seed.data_model({"status": None}, name="Orders")
        linked = await seed.workflow(
            other_model, trigger_type=TriggerType.EVENT_BASED, name="linked"
        )
        muted = await seed.workflow(
            model, trigger_type=TriggerType.EVENT_BASED, name="muted"
        )
        manual = await seed.workflow(model, name="manual")
        await seed.sync_trigger(sync, linked)
        await seed.sync_trigger(sync, muted, trigger_on_success=False)
        await seed.sync_trigger(sync, manual)

        summary = await make_scheduler(FakeSyncRunner()).run_due_work()

        [sync_outcome] = summary.data_syncs
        assert [w.workflow_id for w in sync_outcome.triggered_workflows] == [linked]
        [execution] = await seed.executions(linked)
        assert execution.execution_type == "EVENT_BASED"
        assert await seed.executions(muted) == []
        assert await seed.executions(manual) == []

    async def test_workflow_linked_both_ways_runs_once(
        self, seed, model, make_scheduler
    ) -> None:
        sync = await seed.sync_schedule(model)
        follower = await seed.workflow(
            model,
            trigger_type=TriggerType.EVENT_BASED,
            schedule={"trigger_on_sync": True},
        )
        await seed.sync_trigger(sync, follower)

        summary = await make_scheduler(FakeSyncRunner()).run_due_work()

        [sync_outcome] = summary.data_syncs
        assert [w.workflow_id for w in sync_outcome.triggered_workflows] == [follower]
        assert len(await seed.executions(follower)) == 1

    async def test_failed_sync_triggers_nothing(self, seed, model, make_scheduler) -> None:
        sync = await seed.sync_schedule(model)
        follower = await seed.workflow(
            model,
            trigger_type=TriggerType.EVENT_BASED,
            schedule={"trigger_on_sync": True},
        )
        linked = await seed.workflow(model, trigger_type=TriggerType.EVENT_BASED)
        await seed.sync_trigger(sync, linked)
        runner = FakeSyncRunner(SyncRunResult(success=False, error="bad credentials"))

        summary = await make_scheduler(runner).run_due_work()

        [sync_outcome] = summary.data_syncs
        assert sync_outcome.success is False
        assert sync_outcome.error == "bad credentials"
        assert sync_outcome.triggered_workflows == []
        assert await seed.executions(follower) == []
        assert await seed.executions(linked) == []

    async def test_runner_exception_becomes_outcome_error(
        self, seed, model, make_scheduler
    ) -> None:
        sync = await seed.sync_schedule(model)
        runner = FakeSyncRunner(DataSyncException(sync, "service returned HTTP 502"))

        summary = await make_scheduler(runner).run_due_work()

        [sync_outcome] = summary.data_syncs
        assert sync_outcome.executed is True
        assert sync_outcome.success is False
        assert "HTTP 502" in sync_outcome.error
        assert summary.errors == 1

    @pytest.mark.parametrize(
        "fields",
        [
            {"schedule_type": SyncScheduleType.MANUAL},
            {"last_run_status": SyncRunStatus.RUNNING.value},
            {"next_run_at": utc_now() + timedelta(hours=1)},
            {"is_active": False},
        ],
    )
    async def test_sync_not_due(self, seed, model, make_scheduler, fields) -> None:
        await seed.sync_schedule(model, **fields)
        runner = FakeSyncRunner()

        summary = await make_scheduler(runner).run_due_work()

        assert summary.data_syncs == []
        assert runner.calls == []

    async def test_due_syncs_skipped_without_runner(self, seed, model, make_scheduler) -> None:
        await seed.sync_schedule(model)

        summary = await make_scheduler().run_due_work()

        assert summary.data_syncs == []

    async def test_batch_size_limits_syncs(self, seed, model, make_scheduler) -> None:
        for i in range(3):
            await seed.sync_schedule(model, name=f"sync {i}")
        runner = FakeSyncRunner()

        summary = await make_scheduler(runner, sync_batch_size=2).run_due_work()

        assert len(summary.data_syncs) == 2
        assert len(runner.calls) == 2

    async def test_overlapping_passes_run_a_sync_once(
        self, seed, model, session_factory
    ) -> None:
        sync = await seed.sync_schedule(model)
        key = f"sync:{sync}"
        # This test holds the lock first, then both passes queue behind it.
        locks = ContendedLocks(key, waiters=3)
        runner = AdvancingSyncRunner(session_factory)

        def make() -> SchedulerService:
            return SchedulerService(
                session_factory,
                JinjaExpressionEvaluator(),
                sync_runner=runner,
                max_concurrency=1,
                locks=locks,
            )

        async with locks.hold(key):
            passes = [asyncio.create_task(make().run_due_work()) for _ in range(2)]
            await asyncio.wait_for(locks.contended.wait(), timeout=10)
        summaries = await asyncio.gather(*passes)

        assert runner.calls == [sync]
        outcomes = [s.data_syncs[0] for s in summaries]
        assert sorted(o.executed for o in outcomes) == [False, True]
        [skipped] = [o for o in outcomes if not o.executed]
        assert skipped.skipped_reason == "Not due"
        assert skipped.error is None
        assert sum(s.syncs_executed for s in summaries) == 1


async def test_get_health_counts_without_running(seed, model, make_scheduler) -> None:
    wf_due = await scheduled(seed, model, name="due")
    wf_done = await scheduled(seed, model, name="done")
    await seed.execution(wf_done, "SCHEDULED", utc_now())
    await seed.sync_schedule(model)
    await seed.sync_schedule(model, schedule_type=SyncScheduleType.MANUAL)

    health = await make_scheduler().get_health()

    assert health.workflows_due == 1
    assert health.syncs_due == 1
    assert health.status == "ok"
    assert await seed.executions(wf_due) == []
