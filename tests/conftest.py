"""Pytest configuration and fixtures for the automation engine.

Integration and API tests run against a throwaway SQLite database
(aiosqlite) created per test from the ORM metadata. HTTP tests use
automation.main:app with its database dependencies pointed at that
database.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

os.environ.setdefault("TELEMETRY_ENABLED", "false")
# SQLite serializes writers; scheduler passes in API tests run one task at a time.
os.environ.setdefault("SCHEDULER_MAX_CONCURRENCY", "1")
os.environ.pop("DATA_SYNC_SERVICE_URL", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from automation.core.limiter import limiter
from automation.domain.enums import SyncScheduleType, TriggerType, WorkflowStatus
from automation.infrastructure.persistence.database import (
    build_engine,
    get_db,
    get_db_transactional,
    get_session_factory,
    init_db,
    make_session_factory,
)
from automation.infrastructure.persistence.models import (
    DataModel,
    DataModelAttribute,
    DataRecord,
    DataRecordValue,
    DataSyncSchedule,
    DataSyncWorkflowTrigger,
    Workflow,
    WorkflowAction,
    WorkflowCondition,
    WorkflowExecution,
    WorkflowSchedule,
)
from automation.main import app
from automation.shared.utils.values import parse_number


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test, schema created from metadata."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'automation.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    """Session for repository/integration tests. Rolls back after the test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(session_factory) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI) bound to the test database."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_db_transactional():
        async with session_factory() as session:
            async with session.begin():
                yield session

    limiter.reset()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_db_transactional] = _get_db_transactional
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@dataclass
class SeededModel:
    """A data model created by the seeder; attrs maps attribute name -> id."""

    id: str
    attrs: dict[str, str] = field(default_factory=dict)


class Seeder:
    """Writes fixture rows in committed transactions and reads back state."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _add(self, obj: Any) -> str:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(obj)
                await session.flush()
                return obj.id

    async def data_model(
        self,
        attributes: dict[str, str | None],
        name: str = "Customers",
        is_active: bool = True,
    ) -> SeededModel:
        """Create a model whose attributes are given as name -> default_value."""
        model = DataModel(
            name=name,
            is_active=is_active,
            attributes=[
                DataModelAttribute(name=attr, default_value=default, order=i)
                for i, (attr, default) in enumerate(attributes.items())
            ],
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(model)
                await session.flush()
                return SeededModel(model.id, {a.name: a.id for a in model.attributes})

    async def record(
        self,
        model: SeededModel,
        values: dict[str, str | None] | None = None,
        *,
        is_active: bool = True,
        deleted_at: datetime | None = None,
    ) -> str:
        """Create a record with values keyed by attribute name."""
        record = DataRecord(
            data_model_id=model.id, is_active=is_active, deleted_at=deleted_at
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(record)
                await session.flush()
                for name, value in (values or {}).items():
                    session.add(
                        DataRecordValue(
                            record_id=record.id,
                            attribute_id=model.attrs[name],
                            value=value,
                            value_number=parse_number(value),
                        )
                    )
                return record.id

    async def workflow(
        self,
        model: SeededModel,
        *,
        conditions: list[dict[str, Any]] | None = None,
        actions: list[dict[str, Any]] | None = None,
        schedule: dict[str, Any] | None = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
        status: WorkflowStatus = WorkflowStatus.ACTIVE,
        is_active: bool = True,
        name: str = "Workflow",
        running_since: datetime | None = None,
    ) -> str:
        """Create a workflow; condition and action dicts name attributes, not ids.

        Condition keys: attribute, operator, value, logical_operator.
        Action keys: type, target, value, source, formula.
        """
        workflow = Workflow(
            name=name,
            data_model_id=model.id,
            trigger_type=trigger_type.value,
            status=status.value,
            is_active=is_active,
            running_since=running_since,
            conditions=[
                WorkflowCondition(
                    attribute_id=model.attrs[c["attribute"]],
                    operator=c["operator"],
                    condition_value=c.get("value"),
                    logical_operator=c.get("logical_operator", "AND"),
                    order=i,
                )
                for i, c in enumerate(conditions or [])
            ],
            actions=[
                WorkflowAction(
                    action_type=a["type"],
                    target_attribute_id=model.attrs[a["target"]],
                    update_value=a.get("value"),
                    source_attribute_id=(
                        model.attrs[a["source"]] if a.get("source") else None
                    ),
                    calculation_formula=a.get("formula"),
                    order=a.get("order", i),
                )
                for i, a in enumerate(actions or [])
            ],
            schedules=[WorkflowSchedule(**schedule)] if schedule is not None else [],
        )
        return await self._add(workflow)

    async def execution(
        self, workflow_id: str, execution_type: str, started_at: datetime
    ) -> str:
        return await self._add(
            WorkflowExecution(
                workflow_id=workflow_id,
                execution_type=execution_type,
                status="COMPLETED",
                started_at=started_at,
                completed_at=started_at,
                records_processed=0,
                records_updated=0,
            )
        )

    async def sync_schedule(
        self,
        model: SeededModel,
        *,
        name: str = "Nightly import",
        schedule_type: SyncScheduleType = SyncScheduleType.DAILY,
        **fields: Any,
    ) -> str:
        return await self._add(
            DataSyncSchedule(
                data_model_id=model.id,
                name=name,
                schedule_type=schedule_type.value,
                **fields,
            )
        )

    async def sync_trigger(
        self, sync_schedule_id: str, workflow_id: str, *, trigger_on_success: bool = True
    ) -> str:
        return await self._add(
            DataSyncWorkflowTrigger(
                sync_schedule_id=sync_schedule_id,
                workflow_id=workflow_id,
                trigger_on_success=trigger_on_success,
            )
        )

    async def values(self, model: SeededModel, record_id: str) -> dict[str, str | None]:
        """Current values of a record keyed by attribute name."""
        names = {attr_id: name for name, attr_id in model.attrs.items()}
        async with self._session_factory() as session:
            result = await session.execute(
                select(DataRecordValue).where(DataRecordValue.record_id == record_id)
            )
            return {names[v.attribute_id]: v.value for v in result.scalars()}

    async def value_row(self, model: SeededModel, record_id: str, attr: str):
        async with self._session_factory() as session:
            result = await session.execute(
                select(DataRecordValue).where(
                    DataRecordValue.record_id == record_id,
                    DataRecordValue.attribute_id == model.attrs[attr],
                )
            )
            return result.scalar_one_or_none()

    async def executions(self, workflow_id: str) -> list[WorkflowExecution]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WorkflowExecution)
                .where(WorkflowExecution.workflow_id == workflow_id)
                .order_by(WorkflowExecution.started_at)
            )
            return list(result.scalars().all())

    async def workflow_row(self, workflow_id: str) -> Workflow:
        async with self._session_factory() as session:
            return await session.get(Workflow, workflow_id)


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)
