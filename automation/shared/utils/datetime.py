"""
UTC datetime utilities and calendar boundaries for cadence checks.

All datetime values persisted by the engine are timezone-aware UTC.
Calendar boundaries (day/week/month) are computed in a reference timezone
and returned in that timezone; convert with ensure_utc() before querying.
"""

from datetime import UTC, datetime, timedelta, tzinfo


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Use this instead of datetime.now() (naive) or datetime.utcnow() (deprecated).
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone (SQLite returns naive values)
    - If aware, converts to UTC

    Use at repository/persistence boundaries to normalize datetimes.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def start_of_day(now: datetime, tz: tzinfo) -> datetime:
    """Midnight of the calendar day containing `now`, as seen in `tz`."""
    local = now.astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime, tz: tzinfo) -> datetime:
    """Monday 00:00 of the ISO week containing `now`, as seen in `tz`."""
    day_start = start_of_day(now, tz)
    return day_start - timedelta(days=day_start.weekday())


def start_of_month(now: datetime, tz: tzinfo) -> datetime:
    """First day of the month containing `now`, 00:00 in `tz`."""
    return start_of_day(now, tz).replace(day=1)
