"""HTTP data-sync runner: asks the data-sync service to execute one schedule."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from automation.application.dtos.data_sync import SyncRunResult
from automation.core.config import Settings
from automation.domain.exceptions import DataSyncException
from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class HttpDataSyncRunner:
    """Implements IDataSyncRunner over `POST {base_url}/schedules/{id}/execute`.

    The call blocks until the sync finishes; the response body is the
    completion signal. Transport errors and non-2xx responses raise
    DataSyncException.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 600.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._shared_http = http_client

    @asynccontextmanager
    async def _http_cm(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared client or a short-lived one."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def run(self, schedule_id: str) -> SyncRunResult:
        url = f"{self._base_url}/schedules/{schedule_id}/execute"
        try:
            async with self._http_cm() as client:
                resp = await client.post(url, json={"schedule_id": schedule_id})
        except httpx.HTTPError as e:
            raise DataSyncException(schedule_id, f"request failed: {e}") from e
        if resp.status_code >= 400:
            raise DataSyncException(
                schedule_id, f"service returned HTTP {resp.status_code}"
            )
        try:
            payload = resp.json() if resp.content else {}
        except ValueError as e:
            raise DataSyncException(schedule_id, "response is not JSON") from e
        if not isinstance(payload, dict):
            raise DataSyncException(schedule_id, "response is not a JSON object")
        result = SyncRunResult.from_payload(payload)
        logger.info(
            "Data sync %s finished: success=%s fetched=%d updated=%d",
            schedule_id,
            result.success,
            result.records_fetched,
            result.records_updated,
        )
        return result


def build_data_sync_runner(settings: Settings) -> HttpDataSyncRunner | None:
    """Return a runner when DATA_SYNC_SERVICE_URL is set, else None."""
    if not settings.data_sync_service_url:
        return None
    return HttpDataSyncRunner(
        settings.data_sync_service_url,
        timeout=settings.data_sync_timeout_seconds,
    )
