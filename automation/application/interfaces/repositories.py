"""Repository interfaces (ports) for the application layer.

Protocols define the slice of the attribute-value store and the execution
history that the interpreter and cadence evaluator need (DIP).
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IAttributeValueStore(Protocol):
    """Read/write access to (record, attribute) values with upsert semantics."""

    async def get_record_values(self, record_id: str) -> dict[str, str | None]:
        """Return the record's current values keyed by attribute id."""

    async def get_attribute_default(self, attribute_id: str) -> str | None:
        """Return the attribute's configured default value (None when unset).

        Raises ResourceNotFoundException when the attribute does not exist.
        """

    async def upsert_value(
        self, record_id: str, attribute_id: str, value: str
    ) -> None:
        """Insert or overwrite the value at (record, attribute).

        A failed write must leave the surrounding transaction usable.
        """


class IExecutionHistory(Protocol):
    """Query side of the append-only execution history."""

    async def has_scheduled_execution(
        self, workflow_id: str, since: datetime | None = None
    ) -> bool:
        """Return whether a SCHEDULED execution started at or after `since` (None: ever)."""
