"""Read-only queries over data-sync schedules."""

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from automation.domain.enums import SyncRunStatus, SyncScheduleType
from automation.infrastructure.persistence.models.data_sync import DataSyncSchedule
from automation.infrastructure.persistence.repositories.base import BaseRepository


def _due_filter(now: datetime) -> list[ColumnElement[bool]]:
    return [
        DataSyncSchedule.is_active.is_(True),
        DataSyncSchedule.deleted_at.is_(None),
        DataSyncSchedule.schedule_type != SyncScheduleType.MANUAL.value,
        or_(DataSyncSchedule.next_run_at.is_(None), DataSyncSchedule.next_run_at <= now),
        or_(
            DataSyncSchedule.last_run_status.is_(None),
            DataSyncSchedule.last_run_status != SyncRunStatus.RUNNING.value,
        ),
    ]


class SyncScheduleRepository(BaseRepository[DataSyncSchedule]):
    """Finds sync schedules that are due (never-run schedules first)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, DataSyncSchedule)

    async def find_due(self, now: datetime, limit: int = 50) -> list[DataSyncSchedule]:
        result = await self.db.execute(
            select(DataSyncSchedule)
            .where(*_due_filter(now))
            .order_by(
                DataSyncSchedule.next_run_at.asc().nulls_first(), DataSyncSchedule.id
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_due(self, now: datetime) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(DataSyncSchedule).where(*_due_filter(now))
        )
        return int(result.scalar_one())

    async def is_due(self, schedule_id: str, now: datetime) -> bool:
        """Re-check one schedule; False once another pass has run or started it."""
        result = await self.db.execute(
            select(DataSyncSchedule.id).where(
                DataSyncSchedule.id == schedule_id, *_due_filter(now)
            )
        )
        return result.scalar_one_or_none() is not None
