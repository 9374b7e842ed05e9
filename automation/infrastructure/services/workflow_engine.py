"""Workflow engine: run one workflow end to end and record the execution."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.execution import ExecutionSummary, RecordSnapshot
from automation.application.interfaces.services import IExpressionEvaluator
from automation.application.services.action_interpreter import ActionInterpreter
from automation.domain.enums import ExecutionStatus, ExecutionType, WorkflowStatus
from automation.domain.exceptions import PredicateCompileException
from automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowExecution,
)
from automation.infrastructure.persistence.predicate_compiler import PredicateCompiler
from automation.infrastructure.persistence.repositories.attribute_value_repo import (
    AttributeValueRepository,
)
from automation.infrastructure.persistence.repositories.execution_repo import (
    ExecutionRepository,
)
from automation.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowRepository,
    action_specs,
    condition_specs,
)
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import add_span_attributes, traced
from automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


def _not_runnable_reason(workflow: Workflow | None) -> str | None:
    if workflow is None:
        return "Workflow not found"
    if workflow.status != WorkflowStatus.ACTIVE.value or not workflow.is_active:
        return "Workflow is not active"
    return None


class WorkflowEngine:
    """Runs a workflow: match records, apply actions, persist the execution log.

    The engine commits its own transactions, so `db` must not have one in
    progress. The RUNNING execution is committed before any record is
    matched; matching, value writes and the final status then commit
    together. Matching and every value write run in savepoints, so one
    failing record or action never aborts the run.
    """

    def __init__(
        self,
        db: AsyncSession,
        evaluator: IExpressionEvaluator,
        *,
        compiler: PredicateCompiler | None = None,
        workflow_repo: WorkflowRepository | None = None,
        value_repo: AttributeValueRepository | None = None,
        execution_repo: ExecutionRepository | None = None,
    ) -> None:
        self.db = db
        self.compiler = compiler or PredicateCompiler()
        self.workflow_repo = workflow_repo or WorkflowRepository(db)
        self.value_repo = value_repo or AttributeValueRepository(db)
        self.execution_repo = execution_repo or ExecutionRepository(db)
        self.interpreter = ActionInterpreter(self.value_repo, evaluator)

    @traced("workflow_engine.run")
    async def run(
        self,
        workflow_id: str,
        execution_type: ExecutionType = ExecutionType.MANUAL,
    ) -> ExecutionSummary:
        """Execute the workflow once.

        Returns success=False without an execution row when the workflow or
        its data model is not runnable, and with a FAILED execution when the
        conditions cannot be compiled or queried. Any other error marks the
        execution FAILED and propagates. A run that is cancelled or whose
        process dies leaves its execution RUNNING.
        """
        async with self.db.begin():
            workflow = await self.workflow_repo.get_live(workflow_id)
            reason = _not_runnable_reason(workflow)
            if reason is None and not await self.value_repo.get_live_data_model(
                workflow.data_model_id
            ):
                reason = "Data model not found or inactive"
            if reason is not None:
                logger.info("Workflow %s not run: %s", workflow_id, reason)
                return ExecutionSummary(success=False, error=reason)
            execution = await self.execution_repo.start(
                workflow.id, execution_type, utc_now()
            )
            execution_id = execution.id
        add_span_attributes(execution_id=execution_id)

        try:
            async with self.db.begin():
                return await self._execute(workflow, execution)
        except Exception as e:
            logger.exception(
                "Workflow %s execution %s failed unexpectedly", workflow_id, execution_id
            )
            await self._mark_failed(execution_id, str(e) or e.__class__.__name__)
            raise

    async def _execute(
        self, workflow: Workflow, execution: WorkflowExecution
    ) -> ExecutionSummary:
        try:
            async with self.db.begin_nested():
                stmt = self.compiler.compile(
                    workflow.data_model_id, condition_specs(workflow)
                )
                record_ids = await self.value_repo.find_matching_record_ids(stmt)
        except (PredicateCompileException, SQLAlchemyError) as e:
            message = getattr(e, "message", None) or str(e)
            logger.warning(
                "Workflow %s execution %s failed while matching records: %s",
                workflow.id,
                execution.id,
                message,
            )
            await self.execution_repo.finalize(
                execution,
                status=ExecutionStatus.FAILED,
                completed_at=utc_now(),
                error_message=message,
            )
            return ExecutionSummary(
                success=False,
                status=ExecutionStatus.FAILED,
                execution_id=execution.id,
                error=message,
            )

        names = await self.value_repo.get_attribute_names(workflow.data_model_id)
        actions = action_specs(workflow)
        records_updated = 0
        errors: list[str] = []
        for record_id in record_ids:
            try:
                values = await self.value_repo.get_record_values(record_id)
            except SQLAlchemyError as e:
                logger.exception("Could not read values of record %s", record_id)
                errors.append(f"Record {record_id}: {e}")
                continue
            snapshot = RecordSnapshot(record_id, values, names)
            outcomes = await self.interpreter.apply_all(actions, snapshot)
            await self.execution_repo.add_results(execution.id, outcomes)
            if any(o.succeeded for o in outcomes):
                records_updated += 1
            errors.extend(
                f"Record {record_id}: {o.error}" for o in outcomes if not o.succeeded
            )

        status = (
            ExecutionStatus.COMPLETED_WITH_ERRORS if errors else ExecutionStatus.COMPLETED
        )
        await self.execution_repo.finalize(
            execution,
            status=status,
            completed_at=utc_now(),
            records_processed=len(record_ids),
            records_updated=records_updated,
            error_message="; ".join(errors) or None,
        )
        logger.info(
            "Workflow %s execution %s %s: %d processed, %d updated, %d errors",
            workflow.id,
            execution.id,
            status.value,
            len(record_ids),
            records_updated,
            len(errors),
        )
        return ExecutionSummary(
            success=True,
            records_processed=len(record_ids),
            records_updated=records_updated,
            status=status,
            execution_id=execution.id,
            error="; ".join(errors) or None,
        )

    async def _mark_failed(self, execution_id: str, message: str) -> None:
        try:
            async with self.db.begin():
                await self.execution_repo.mark_failed(execution_id, utc_now(), message)
        except SQLAlchemyError:
            logger.exception("Could not mark execution %s as failed", execution_id)
