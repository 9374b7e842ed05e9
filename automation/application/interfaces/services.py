"""Service interfaces (ports) for the application layer."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from automation.application.dtos.data_sync import SyncRunResult


class IExpressionEvaluator(Protocol):
    """Evaluates a CALCULATE formula against one record's values."""

    def evaluate(
        self, formula: str, values: Mapping[str, str | None]
    ) -> str | None:
        """Return the computed value as text (None: nothing to write).

        `values` are keyed by attribute name. Raises
        ExpressionEvaluationException when the formula is invalid.
        """


class IDataSyncRunner(Protocol):
    """External data-sync subsystem: runs one sync job to completion."""

    async def run(self, schedule_id: str) -> SyncRunResult:
        """Execute the sync job and return its completion signal."""
