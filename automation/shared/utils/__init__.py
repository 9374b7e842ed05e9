"""Shared utilities: datetime, generators, value coercion."""

from automation.shared.utils.datetime import (
    ensure_utc,
    start_of_day,
    start_of_month,
    start_of_week,
    utc_now,
)
from automation.shared.utils.generators import generate_cuid
from automation.shared.utils.values import parse_number

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "start_of_day",
    "start_of_week",
    "start_of_month",
    "parse_number",
]
