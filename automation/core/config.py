"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Scheduler and engine tunables are validated at load time.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment and .env (case-insensitive)."""

    # App
    app_name: str = "automation-engine"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database: postgresql+asyncpg://... in production, sqlite+aiosqlite:///... locally
    database_url: str = "sqlite+aiosqlite:///./automation.db"
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None

    # CORS
    allowed_origins: str = "http://localhost:3000"

    # Predicate compiler: False drops unsupported operators with a warning,
    # True fails the run with a compile error.
    predicate_strict_mode: bool = False

    # CALCULATE action evaluator: "jinja" (sandboxed expressions) or
    # "passthrough" (store the formula text unevaluated).
    calculate_evaluator: str = "jinja"

    # Scheduler driver
    scheduler_reference_timezone: str = "UTC"
    scheduler_max_concurrency: int = 4
    sync_batch_size: int = 50
    workflow_run_timeout_seconds: float = 300.0
    # A running_since claim older than this is considered abandoned.
    workflow_claim_stale_seconds: int = 3600

    # External data-sync service (runs the actual ingestion jobs)
    data_sync_service_url: str | None = None
    data_sync_timeout_seconds: float = 600.0

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_engine_settings(self) -> "Settings":
        """Validate database URL, scheduler bounds, timezone and evaluator name."""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")
        if self.scheduler_max_concurrency < 1:
            raise ValueError("SCHEDULER_MAX_CONCURRENCY must be >= 1")
        if self.sync_batch_size < 1:
            raise ValueError("SYNC_BATCH_SIZE must be >= 1")
        if self.workflow_run_timeout_seconds <= 0:
            raise ValueError("WORKFLOW_RUN_TIMEOUT_SECONDS must be > 0")
        if self.calculate_evaluator not in ("jinja", "passthrough"):
            raise ValueError(
                f"calculate_evaluator must be 'jinja' or 'passthrough', "
                f"got: {self.calculate_evaluator!r}"
            )
        try:
            ZoneInfo(self.scheduler_reference_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(
                f"Unknown SCHEDULER_REFERENCE_TIMEZONE: {self.scheduler_reference_timezone!r}"
            ) from e
        return self

    @property
    def reference_timezone(self) -> ZoneInfo:
        """Timezone whose calendar defines 'today', 'this week' and 'this month'."""
        return ZoneInfo(self.scheduler_reference_timezone)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() after overriding env vars.
    """
    return Settings()
