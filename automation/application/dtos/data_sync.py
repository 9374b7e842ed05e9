"""DTO returned by the external data-sync runner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SyncRunResult:
    """Completion signal of one data-sync job run."""

    success: bool
    records_fetched: int = 0
    records_processed: int = 0
    records_inserted: int = 0
    records_updated: int = 0
    records_failed: int = 0
    error: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SyncRunResult:
        """Build from the sync service JSON body (missing counters default to 0)."""

        def _count(key: str) -> int:
            try:
                return int(payload.get(key) or 0)
            except (TypeError, ValueError):
                return 0

        return cls(
            success=bool(payload.get("success")),
            records_fetched=_count("records_fetched"),
            records_processed=_count("records_processed"),
            records_inserted=_count("records_inserted"),
            records_updated=_count("records_updated"),
            records_failed=_count("records_failed"),
            error=payload.get("error") or None,
        )
