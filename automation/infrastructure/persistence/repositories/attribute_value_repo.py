"""Attribute-value store repository: data models, attributes, records and their values."""

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from automation.domain.exceptions import ResourceNotFoundException
from automation.infrastructure.persistence.models.data_model import (
    DataModel,
    DataModelAttribute,
    DataRecordValue,
)
from automation.infrastructure.persistence.repositories.base import BaseRepository
from automation.shared.utils.values import parse_number


class AttributeValueRepository(BaseRepository[DataRecordValue]):
    """Reads and upserts (record, attribute) values. Implements IAttributeValueStore."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, DataRecordValue)

    async def get_live_data_model(self, data_model_id: str) -> DataModel | None:
        """Return the data model when it exists, is active and not soft-deleted."""
        result = await self.db.execute(
            select(DataModel).where(
                DataModel.id == data_model_id,
                DataModel.is_active.is_(True),
                DataModel.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_attribute_names(self, data_model_id: str) -> dict[str, str]:
        """Map attribute id -> name for every attribute of the model."""
        result = await self.db.execute(
            select(DataModelAttribute.id, DataModelAttribute.name).where(
                DataModelAttribute.data_model_id == data_model_id
            )
        )
        return {row.id: row.name for row in result}

    async def find_matching_record_ids(self, stmt: Select[tuple[str]]) -> list[str]:
        """Execute a compiled predicate query and return record ids."""
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_record_values(self, record_id: str) -> dict[str, str | None]:
        result = await self.db.execute(
            select(DataRecordValue.attribute_id, DataRecordValue.value).where(
                DataRecordValue.record_id == record_id
            )
        )
        return {row.attribute_id: row.value for row in result}

    async def get_attribute_default(self, attribute_id: str) -> str | None:
        result = await self.db.execute(
            select(DataModelAttribute.default_value).where(
                DataModelAttribute.id == attribute_id
            )
        )
        row = result.one_or_none()
        if row is None:
            raise ResourceNotFoundException("attribute", attribute_id)
        return row.default_value

    async def upsert_value(self, record_id: str, attribute_id: str, value: str) -> None:
        """Insert or overwrite the value at (record, attribute) inside a savepoint.

        A failing write rolls back only its savepoint so the caller's
        transaction stays usable for the remaining actions.
        """
        async with self.db.begin_nested():
            result = await self.db.execute(
                select(DataRecordValue).where(
                    DataRecordValue.record_id == record_id,
                    DataRecordValue.attribute_id == attribute_id,
                )
            )
            existing = result.scalar_one_or_none()
            if existing is None:
                self.db.add(
                    DataRecordValue(
                        record_id=record_id,
                        attribute_id=attribute_id,
                        value=value,
                        value_number=parse_number(value),
                    )
                )
            else:
                existing.value = value
                existing.value_number = parse_number(value)
            await self.db.flush()
