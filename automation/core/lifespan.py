"""Application lifespan: startup and shutdown.

Wiring of infrastructure only (logging, shared HTTP client, telemetry,
DB engine dispose); no business logic here.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from automation.core.config import get_settings
from automation.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: logging, shared HTTP client for the data-sync service,
    telemetry (if enabled). Shutdown in reverse, then SQL engine dispose.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    app.state.data_sync_http_client = httpx.AsyncClient(
        timeout=settings.data_sync_timeout_seconds
    )

    if settings.telemetry_enabled:
        from automation.infrastructure.persistence import database
        from automation.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        database._ensure_engine()
        if database.engine is not None:
            telemetry.instrument_sqlalchemy(database.engine)
        logger.info("Telemetry initialized")

    yield

    # ---- Shutdown ----
    if getattr(app.state, "data_sync_http_client", None) is not None:
        await app.state.data_sync_http_client.aclose()
        app.state.data_sync_http_client = None
        logger.info("Data-sync HTTP client closed")

    from automation.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)
        logger.info("Telemetry shutdown complete")

    from automation.infrastructure.persistence import database

    await database.dispose_engine()
    logger.info("Database engine disposed")
