"""Workflow API: definition CRUD, manual runs and execution history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from automation.api.v1.dependencies import (
    get_execution_repo,
    get_value_repo_for_write,
    get_workflow_engine,
    get_workflow_repo,
    get_workflow_repo_for_write,
)
from automation.core.limiter import limit_writes
from automation.domain.enums import ExecutionType
from automation.domain.exceptions import ResourceNotFoundException, ValidationException
from automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowAction,
    WorkflowCondition,
    WorkflowSchedule,
)
from automation.infrastructure.persistence.repositories import (
    AttributeValueRepository,
    ExecutionRepository,
    WorkflowRepository,
)
from automation.infrastructure.services.workflow_engine import WorkflowEngine
from automation.schemas.execution import (
    ExecutionSummaryResponse,
    WorkflowExecutionDetailResponse,
    WorkflowExecutionResponse,
)
from automation.schemas.workflow import (
    WorkflowCreateRequest,
    WorkflowDefinition,
    WorkflowResponse,
    WorkflowUpdateRequest,
)
from automation.shared.utils.datetime import ensure_utc, utc_now

router = APIRouter()


async def _check_attributes(
    value_repo: AttributeValueRepository, data_model_id: str, body: WorkflowDefinition
) -> None:
    """Reject definitions that reference a missing data model or a foreign attribute."""
    if await value_repo.get_live_data_model(data_model_id) is None:
        raise ResourceNotFoundException("data_model", data_model_id)
    known = await value_repo.get_attribute_names(data_model_id)
    unknown = sorted(body.attribute_ids() - known.keys())
    if unknown:
        raise ValidationException(
            f"Attributes not in data model {data_model_id}: {', '.join(unknown)}",
            field="attribute_id",
        )


def _children(
    body: WorkflowDefinition,
) -> tuple[list[WorkflowCondition], list[WorkflowAction], list[WorkflowSchedule]]:
    conditions = [
        WorkflowCondition(
            attribute_id=c.attribute_id,
            operator=c.operator.value,
            condition_value=c.condition_value,
            logical_operator=c.logical_operator.value,
            order=c.order,
        )
        for c in body.conditions
    ]
    actions = [
        WorkflowAction(
            action_type=a.action_type.value,
            target_attribute_id=a.target_attribute_id,
            update_value=a.update_value,
            source_attribute_id=a.source_attribute_id,
            calculation_formula=a.calculation_formula,
            order=a.order,
        )
        for a in body.actions
    ]
    schedules = []
    if body.schedule is not None:
        s = body.schedule
        schedules.append(
            WorkflowSchedule(
                schedule_type=s.schedule_type.value,
                schedule_config=s.schedule_config,
                start_date=ensure_utc(s.start_date),
                end_date=ensure_utc(s.end_date),
                timezone=s.timezone,
                is_active=s.is_active,
                trigger_on_sync=s.trigger_on_sync,
                trigger_on_sync_schedule_id=s.trigger_on_sync_schedule_id,
            )
        )
    return conditions, actions, schedules


@router.post("", response_model=WorkflowResponse, status_code=201)
@limit_writes
async def create_workflow(
    request: Request,
    body: WorkflowCreateRequest,
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo_for_write),
    value_repo: AttributeValueRepository = Depends(get_value_repo_for_write),
):
    """Create a workflow with its conditions, actions and optional schedule."""
    await _check_attributes(value_repo, body.data_model_id, body)
    conditions, actions, schedules = _children(body)
    workflow = await workflow_repo.create(
        Workflow(
            name=body.name,
            description=body.description,
            data_model_id=body.data_model_id,
            trigger_type=body.trigger_type.value,
            status=body.status.value,
            is_active=body.is_active,
            conditions=conditions,
            actions=actions,
            schedules=schedules,
        )
    )
    return WorkflowResponse.model_validate(workflow)


@router.get("", response_model=list[WorkflowResponse])
async def list_workflows(
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
    data_model_id: str | None = Query(None),
    include_inactive: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    workflows = await workflow_repo.list_workflows(
        skip=skip,
        limit=limit,
        data_model_id=data_model_id,
        include_inactive=include_inactive,
    )
    return [WorkflowResponse.model_validate(w) for w in workflows]


@router.get(
    "/executions/{execution_id}",
    response_model=WorkflowExecutionDetailResponse,
)
async def get_execution(
    execution_id: str,
    execution_repo: ExecutionRepository = Depends(get_execution_repo),
):
    """Get one execution with its result rows."""
    execution = await execution_repo.get_with_results(execution_id)
    if not execution:
        raise ResourceNotFoundException("workflow_execution", execution_id)
    return WorkflowExecutionDetailResponse.model_validate(execution)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str,
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
):
    workflow = await workflow_repo.get_live(workflow_id)
    if not workflow:
        raise ResourceNotFoundException("workflow", workflow_id)
    return WorkflowResponse.model_validate(workflow)


@router.put("/{workflow_id}", response_model=WorkflowResponse)
@limit_writes
async def replace_workflow(
    request: Request,
    workflow_id: str,
    body: WorkflowUpdateRequest,
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo_for_write),
    value_repo: AttributeValueRepository = Depends(get_value_repo_for_write),
):
    """Replace the definition; conditions, actions and schedule are deleted and recreated."""
    workflow = await workflow_repo.get_live(workflow_id)
    if not workflow:
        raise ResourceNotFoundException("workflow", workflow_id)
    await _check_attributes(value_repo, workflow.data_model_id, body)
    workflow.name = body.name
    workflow.description = body.description
    workflow.trigger_type = body.trigger_type.value
    workflow.status = body.status.value
    workflow.is_active = body.is_active
    conditions, actions, schedules = _children(body)
    workflow = await workflow_repo.replace_definition(
        workflow, conditions, actions, schedules
    )
    return WorkflowResponse.model_validate(workflow)


@router.delete("/{workflow_id}", status_code=204)
@limit_writes
async def delete_workflow(
    request: Request,
    workflow_id: str,
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo_for_write),
):
    """Soft-delete: the workflow stops running; its execution history is kept."""
    workflow = await workflow_repo.get_live(workflow_id)
    if not workflow:
        raise ResourceNotFoundException("workflow", workflow_id)
    await workflow_repo.soft_delete(workflow, utc_now())


@router.post("/{workflow_id}/run", response_model=ExecutionSummaryResponse)
@limit_writes
async def run_workflow(
    request: Request,
    workflow_id: str,
    engine: Annotated[WorkflowEngine, Depends(get_workflow_engine)],
):
    """Run the workflow now (MANUAL execution).

    A workflow that exists but is inactive returns success=false rather than
    an error status.
    """
    async with engine.db.begin():
        found = await engine.workflow_repo.get_live(workflow_id) is not None
    if not found:
        raise ResourceNotFoundException("workflow", workflow_id)
    summary = await engine.run(workflow_id=workflow_id, execution_type=ExecutionType.MANUAL)
    return ExecutionSummaryResponse.model_validate(summary)


@router.get(
    "/{workflow_id}/executions",
    response_model=list[WorkflowExecutionResponse],
)
async def list_workflow_executions(
    workflow_id: str,
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
    execution_repo: ExecutionRepository = Depends(get_execution_repo),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """Execution history, most recent first (soft-deleted workflows included)."""
    workflow = await workflow_repo.get_by_id(workflow_id)
    if not workflow:
        raise ResourceNotFoundException("workflow", workflow_id)
    executions = await execution_repo.list_for_workflow(
        workflow_id, skip=skip, limit=limit
    )
    return [WorkflowExecutionResponse.model_validate(e) for e in executions]
