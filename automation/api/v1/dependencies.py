"""Presentation-layer dependency injection (composition root).

Routes depend only on these providers. Tests override get_db,
get_db_transactional and get_session_factory to point at a test database.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from automation.application.interfaces.services import (
    IDataSyncRunner,
    IExpressionEvaluator,
)
from automation.core.config import get_settings
from automation.infrastructure.external.data_sync.http_runner import HttpDataSyncRunner
from automation.infrastructure.persistence.database import (
    get_db,
    get_db_transactional,
    get_session_factory,
)
from automation.infrastructure.persistence.predicate_compiler import PredicateCompiler
from automation.infrastructure.persistence.repositories import (
    AttributeValueRepository,
    ExecutionRepository,
    WorkflowRepository,
)
from automation.infrastructure.services.expression_evaluator import (
    build_expression_evaluator,
)
from automation.infrastructure.services.scheduler_service import SchedulerService
from automation.infrastructure.services.workflow_engine import WorkflowEngine


async def get_workflow_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowRepository:
    """Workflow repository for read operations (list, get by id)."""
    return WorkflowRepository(db)


async def get_workflow_repo_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> WorkflowRepository:
    """Workflow repository for create/update/delete (transactional)."""
    return WorkflowRepository(db)


async def get_value_repo_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> AttributeValueRepository:
    """Shares the transactional session with get_workflow_repo_for_write."""
    return AttributeValueRepository(db)


async def get_execution_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ExecutionRepository:
    return ExecutionRepository(db)


@lru_cache
def _evaluator_for(name: str) -> IExpressionEvaluator:
    return build_expression_evaluator(name)


def get_expression_evaluator() -> IExpressionEvaluator:
    return _evaluator_for(get_settings().calculate_evaluator)


async def get_workflow_engine(
    session_factory: Annotated[
        async_sessionmaker[AsyncSession], Depends(get_session_factory)
    ],
    evaluator: Annotated[IExpressionEvaluator, Depends(get_expression_evaluator)],
) -> AsyncIterator[WorkflowEngine]:
    """Engine for manual runs on its own session; the engine commits its own transactions."""
    async with session_factory() as session:
        yield WorkflowEngine(
            session,
            evaluator,
            compiler=PredicateCompiler(strict=get_settings().predicate_strict_mode),
        )


def get_data_sync_runner(request: Request) -> IDataSyncRunner | None:
    """HTTP runner on the app's shared client; None when no service URL is configured."""
    settings = get_settings()
    if not settings.data_sync_service_url:
        return None
    return HttpDataSyncRunner(
        settings.data_sync_service_url,
        timeout=settings.data_sync_timeout_seconds,
        http_client=getattr(request.app.state, "data_sync_http_client", None),
    )


def get_scheduler_service(
    session_factory: Annotated[
        async_sessionmaker[AsyncSession], Depends(get_session_factory)
    ],
    sync_runner: Annotated[IDataSyncRunner | None, Depends(get_data_sync_runner)],
) -> SchedulerService:
    return SchedulerService.from_settings(
        get_settings(), session_factory, sync_runner=sync_runner
    )
