"""Client for the external data-sync service."""

from automation.infrastructure.external.data_sync.http_runner import (
    HttpDataSyncRunner,
    build_data_sync_runner,
)

__all__ = ["HttpDataSyncRunner", "build_data_sync_runner"]
