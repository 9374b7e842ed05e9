"""Settings validation tests."""

from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from automation.core.config import Settings


def test_defaults_are_valid() -> None:
    settings = Settings()
    assert settings.calculate_evaluator == "jinja"
    assert settings.predicate_strict_mode is False
    assert settings.reference_timezone == ZoneInfo("UTC")


def test_reference_timezone_is_parsed() -> None:
    settings = Settings(scheduler_reference_timezone="Africa/Kampala")
    assert settings.reference_timezone == ZoneInfo("Africa/Kampala")


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"scheduler_max_concurrency": 0}, "SCHEDULER_MAX_CONCURRENCY"),
        ({"sync_batch_size": 0}, "SYNC_BATCH_SIZE"),
        ({"workflow_run_timeout_seconds": 0}, "WORKFLOW_RUN_TIMEOUT_SECONDS"),
        ({"calculate_evaluator": "python"}, "calculate_evaluator"),
        ({"scheduler_reference_timezone": "Mars/Olympus"}, "SCHEDULER_REFERENCE_TIMEZONE"),
        ({"database_url": ""}, "DATABASE_URL"),
    ],
)
def test_invalid_settings_rejected(overrides, message) -> None:
    with pytest.raises(ValidationError, match=message):
        Settings(**overrides)
