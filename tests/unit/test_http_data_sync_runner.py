"""HttpDataSyncRunner tests against httpx.MockTransport."""

import json

import httpx
import pytest

from automation.core.config import Settings
from automation.domain.exceptions import DataSyncException
from automation.infrastructure.external.data_sync.http_runner import (
    HttpDataSyncRunner,
    build_data_sync_runner,
)


def _runner(handler) -> HttpDataSyncRunner:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpDataSyncRunner("http://sync.local/api/", http_client=client)


async def test_posts_to_schedule_execute_and_parses_result() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "success": True,
                "records_fetched": 12,
                "records_processed": 12,
                "records_inserted": 2,
                "records_updated": 10,
                "records_failed": 0,
            },
        )

    result = await _runner(handler).run("sync1")

    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://sync.local/api/schedules/sync1/execute"
    assert json.loads(seen[0].content) == {"schedule_id": "sync1"}
    assert result.success is True
    assert result.records_fetched == 12
    assert result.records_updated == 10
    assert result.error is None


async def test_reported_failure_is_a_result_not_an_exception() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "bad credentials"})

    result = await _runner(handler).run("sync1")
    assert result.success is False
    assert result.error == "bad credentials"
    assert result.records_fetched == 0


async def test_http_error_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down")

    with pytest.raises(DataSyncException) as exc_info:
        await _runner(handler).run("sync1")
    assert exc_info.value.details == {"schedule_id": "sync1"}
    assert "503" in exc_info.value.message


async def test_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DataSyncException, match="request failed"):
        await _runner(handler).run("sync1")


async def test_non_json_body_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>ok</html>")

    with pytest.raises(DataSyncException, match="not JSON"):
        await _runner(handler).run("sync1")


class TestBuildDataSyncRunner:
    def test_none_without_service_url(self) -> None:
        assert build_data_sync_runner(Settings(data_sync_service_url=None)) is None

    def test_runner_with_service_url(self) -> None:
        runner = build_data_sync_runner(
            Settings(data_sync_service_url="http://sync.local")
        )
        assert isinstance(runner, HttpDataSyncRunner)
