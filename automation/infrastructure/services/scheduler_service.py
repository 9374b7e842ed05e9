"""Scheduler service: one pass over due scheduled workflows and due data syncs.

Every workflow and sync runs in its own task with its own database session.
Tasks run concurrently up to a bound and are serialized per workflow id and
per sync id inside this process. Across processes, a scheduled workflow is
guarded by the running_since claim on its row.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from automation.application.dtos.scheduler import (
    SchedulerHealth,
    SchedulerRunSummary,
    SyncRunOutcome,
    WorkflowRunOutcome,
)
from automation.application.interfaces.services import (
    IDataSyncRunner,
    IExpressionEvaluator,
)
from automation.application.services.cadence_evaluator import CadenceEvaluator
from automation.core.config import Settings
from automation.domain.enums import ExecutionType
from automation.infrastructure.persistence.predicate_compiler import PredicateCompiler
from automation.infrastructure.persistence.repositories.execution_repo import (
    ExecutionRepository,
)
from automation.infrastructure.persistence.repositories.sync_schedule_repo import (
    SyncScheduleRepository,
)
from automation.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowRepository,
    schedule_spec,
)
from automation.infrastructure.services.expression_evaluator import (
    build_expression_evaluator,
)
from automation.infrastructure.services.workflow_engine import WorkflowEngine
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import TracedOperation, traced
from automation.shared.utils.datetime import ensure_utc, utc_now

logger = get_logger(__name__)


class KeyedLocks:
    """One asyncio.Lock per key, created on demand."""

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        async with self._locks[key]:
            yield


# Shared by every SchedulerService in the process so overlapping triggers
# serialize on the same keys.
process_locks = KeyedLocks()


@dataclass(frozen=True)
class _WorkflowRef:
    id: str
    name: str


@dataclass(frozen=True)
class _SyncRef:
    id: str
    name: str
    data_model_id: str


class SchedulerService:
    """Runs due work (run_due_work) and reports how much is due (get_health)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        evaluator: IExpressionEvaluator,
        *,
        sync_runner: IDataSyncRunner | None = None,
        reference_tz: tzinfo = UTC,
        max_concurrency: int = 4,
        sync_batch_size: int = 50,
        run_timeout_seconds: float = 300.0,
        claim_stale_after: timedelta = timedelta(hours=1),
        strict_predicates: bool = False,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._evaluator = evaluator
        self._sync_runner = sync_runner
        self._reference_tz = reference_tz
        self._max_concurrency = max_concurrency
        self._sync_batch_size = sync_batch_size
        self._run_timeout = run_timeout_seconds
        self._claim_stale_after = claim_stale_after
        self._strict_predicates = strict_predicates
        self._locks = locks or process_locks

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        sync_runner: IDataSyncRunner | None = None,
    ) -> SchedulerService:
        """Build a scheduler configured from SCHEDULER_* and engine settings."""
        return cls(
            session_factory,
            build_expression_evaluator(settings.calculate_evaluator),
            sync_runner=sync_runner,
            reference_tz=settings.reference_timezone,
            max_concurrency=settings.scheduler_max_concurrency,
            sync_batch_size=settings.sync_batch_size,
            run_timeout_seconds=settings.workflow_run_timeout_seconds,
            claim_stale_after=timedelta(seconds=settings.workflow_claim_stale_seconds),
            strict_predicates=settings.predicate_strict_mode,
        )

    @traced("scheduler.run_due_work")
    async def run_due_work(self, now: datetime | None = None) -> SchedulerRunSummary:
        """Run every due scheduled workflow and due data sync once; never raises per item."""
        now = ensure_utc(now) or utc_now()
        async with self._session_factory() as session:
            workflows = [
                _WorkflowRef(w.id, w.name)
                for w in await WorkflowRepository(session).find_scheduled_candidates(now)
            ]
            syncs = []
            if self._sync_runner is not None:
                syncs = [
                    _SyncRef(s.id, s.name, s.data_model_id)
                    for s in await SyncScheduleRepository(session).find_due(
                        now, limit=self._sync_batch_size
                    )
                ]
            elif await SyncScheduleRepository(session).count_due(now):
                logger.warning(
                    "Data syncs are due but no data-sync service is configured; skipping"
                )
        logger.info(
            "Scheduler pass at %s: %d candidate workflows, %d due syncs",
            now.isoformat(),
            len(workflows),
            len(syncs),
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)
        workflow_results, sync_results = await asyncio.gather(
            asyncio.gather(
                *(self._scheduled_workflow_task(ref, now, semaphore) for ref in workflows)
            ),
            asyncio.gather(*(self._sync_task(ref, now, semaphore) for ref in syncs)),
        )
        summary = SchedulerRunSummary(
            timestamp=now,
            workflows=list(workflow_results),
            data_syncs=list(sync_results),
        )
        logger.info(
            "Scheduler pass done: %d workflows executed, %d syncs executed, %d errors",
            summary.workflows_executed,
            summary.syncs_executed,
            summary.errors,
        )
        return summary

    async def get_health(self, now: datetime | None = None) -> SchedulerHealth:
        """Count due workflows and syncs without claiming or running anything."""
        now = ensure_utc(now) or utc_now()
        async with self._session_factory() as session:
            cadence = CadenceEvaluator(ExecutionRepository(session), self._reference_tz)
            workflows_due = 0
            for workflow in await WorkflowRepository(session).find_scheduled_candidates(now):
                schedule = workflow.active_schedule
                if schedule is not None and await cadence.is_due(
                    workflow.id, schedule_spec(schedule), now
                ):
                    workflows_due += 1
            syncs_due = await SyncScheduleRepository(session).count_due(now)
        return SchedulerHealth(
            workflows_due=workflows_due, syncs_due=syncs_due, timestamp=now
        )

    async def _scheduled_workflow_task(
        self, ref: _WorkflowRef, now: datetime, semaphore: asyncio.Semaphore
    ) -> WorkflowRunOutcome:
        async with semaphore:
            return await self._guarded_run(ref, ExecutionType.SCHEDULED, now)

    async def _guarded_run(
        self, ref: _WorkflowRef, execution_type: ExecutionType, now: datetime
    ) -> WorkflowRunOutcome:
        """Run one workflow under its lock and timeout; failures become the outcome's error."""
        async with self._locks.hold(f"workflow:{ref.id}"):
            try:
                async with TracedOperation(
                    "scheduler.workflow",
                    {"workflow_id": ref.id, "execution_type": execution_type.value},
                ):
                    return await asyncio.wait_for(
                        self._run_claimed(ref, execution_type, now),
                        timeout=self._run_timeout,
                    )
            except TimeoutError:
                logger.error(
                    "Workflow %s timed out after %.0fs", ref.id, self._run_timeout
                )
                return WorkflowRunOutcome(
                    workflow_id=ref.id,
                    name=ref.name,
                    execution_type=execution_type,
                    error=f"Timed out after {self._run_timeout:.0f}s",
                )
            except Exception as e:
                logger.exception("Workflow %s failed in scheduler", ref.id)
                return WorkflowRunOutcome(
                    workflow_id=ref.id,
                    name=ref.name,
                    execution_type=execution_type,
                    error=str(e) or e.__class__.__name__,
                )

    async def _run_claimed(
        self, ref: _WorkflowRef, execution_type: ExecutionType, now: datetime
    ) -> WorkflowRunOutcome:
        outcome = WorkflowRunOutcome(
            workflow_id=ref.id, name=ref.name, execution_type=execution_type
        )
        async with self._session_factory() as session:
            repo = WorkflowRepository(session)
            async with session.begin():
                claimed = await repo.claim(ref.id, utc_now(), self._claim_stale_after)
            if not claimed:
                outcome.skipped_reason = "Workflow is already running"
                return outcome
            try:
                if execution_type == ExecutionType.SCHEDULED:
                    async with session.begin():
                        reason = await self._not_due_reason(session, ref.id, now)
                    if reason is not None:
                        outcome.skipped_reason = reason
                        return outcome
                # The engine commits its own transactions on this session.
                engine = WorkflowEngine(
                    session,
                    self._evaluator,
                    compiler=PredicateCompiler(strict=self._strict_predicates),
                )
                summary = await engine.run(
                    workflow_id=ref.id, execution_type=execution_type
                )
            finally:
                await self._release(session, repo, ref.id)

        outcome.executed = summary.execution_id is not None
        outcome.success = summary.success
        outcome.status = summary.status
        outcome.execution_id = summary.execution_id
        outcome.records_processed = summary.records_processed
        outcome.records_updated = summary.records_updated
        if not summary.success:
            outcome.error = summary.error
        return outcome

    async def _not_due_reason(
        self, session: AsyncSession, workflow_id: str, now: datetime
    ) -> str | None:
        # Re-read after the claim: another process may have run it meanwhile.
        workflow = await WorkflowRepository(session).get_live(workflow_id)
        schedule = workflow.active_schedule if workflow is not None else None
        if schedule is None:
            return "No active schedule"
        cadence = CadenceEvaluator(ExecutionRepository(session), self._reference_tz)
        if not await cadence.is_due(workflow_id, schedule_spec(schedule), now):
            return "Not due"
        return None

    async def _release(
        self, session: AsyncSession, repo: WorkflowRepository, workflow_id: str
    ) -> None:
        try:
            async with session.begin():
                await repo.release(workflow_id)
        except SQLAlchemyError:
            logger.exception(
                "Could not release claim on workflow %s; it frees up once stale",
                workflow_id,
            )

    async def _sync_task(
        self, ref: _SyncRef, now: datetime, semaphore: asyncio.Semaphore
    ) -> SyncRunOutcome:
        async with semaphore, self._locks.hold(f"sync:{ref.id}"):
            outcome = SyncRunOutcome(
                schedule_id=ref.id, name=ref.name, data_model_id=ref.data_model_id
            )
            try:
                # Re-read under the lock: an overlapping pass may have run it meanwhile.
                async with self._session_factory() as session:
                    still_due = await SyncScheduleRepository(session).is_due(ref.id, now)
            except SQLAlchemyError as e:
                logger.exception("Could not re-check data sync %s", ref.id)
                outcome.error = str(e) or e.__class__.__name__
                return outcome
            if not still_due:
                outcome.skipped_reason = "Not due"
                return outcome
            outcome.executed = True
            try:
                async with TracedOperation("scheduler.data_sync", {"schedule_id": ref.id}):
                    result = await self._sync_runner.run(ref.id)
            except Exception as e:
                logger.exception("Data sync %s failed", ref.id)
                outcome.error = str(e) or e.__class__.__name__
                return outcome
            outcome.success = result.success
            outcome.records_fetched = result.records_fetched
            outcome.records_updated = result.records_updated
            if not result.success:
                outcome.error = result.error or "Data sync reported failure"
                return outcome
            outcome.triggered_workflows = await self._cascade(ref)
            return outcome

    async def _cascade(self, ref: _SyncRef) -> list[WorkflowRunOutcome]:
        """Run the event-based workflows that follow a successful sync."""
        try:
            async with self._session_factory() as session:
                dependents = [
                    _WorkflowRef(w.id, w.name)
                    for w in await WorkflowRepository(session).find_sync_dependents(
                        ref.data_model_id, ref.id
                    )
                ]
        except SQLAlchemyError:
            logger.exception("Could not load workflows triggered by sync %s", ref.id)
            return []
        outcomes = []
        for dependent in dependents:
            outcome = await self._guarded_run(
                dependent, ExecutionType.EVENT_BASED, utc_now()
            )
            if outcome.error:
                logger.warning(
                    "Workflow %s triggered by sync %s failed: %s",
                    dependent.id,
                    ref.id,
                    outcome.error,
                )
            outcomes.append(outcome)
        return outcomes
