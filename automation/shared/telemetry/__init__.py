"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from automation.shared.telemetry.logging import get_logger, setup_logging
from automation.shared.telemetry.telemetry import (
    TelemetryConfig,
    get_telemetry,
    set_telemetry,
)
from automation.shared.telemetry.tracing import (
    TracedOperation,
    add_span_attributes,
    traced,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "TelemetryConfig",
    "get_telemetry",
    "set_telemetry",
    "TracedOperation",
    "add_span_attributes",
    "traced",
]
