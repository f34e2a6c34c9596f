"""Clinic-local time helpers.

Timestamps are stored as naive wall-clock values in the clinic timezone.
"""

from datetime import UTC, date, datetime, time, timedelta, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from app.config import settings


@lru_cache
def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


def clinic_tz() -> tzinfo:
    """Get the configured clinic timezone."""
    return _zone(settings.clinic_timezone)


def clinic_now() -> datetime:
    """Current clinic-local time as a naive datetime."""
    return datetime.now(clinic_tz()).replace(tzinfo=None)


def to_clinic_time(value: datetime) -> datetime:
    """
    Normalize a timestamp to naive clinic-local time.

    Aware values are converted to the clinic timezone; naive values are
    already clinic-local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(clinic_tz()).replace(tzinfo=None)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Half-open window of a calendar day: [00:00 that day, 00:00 the next)."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def format_marker(value: datetime) -> str:
    """Human-readable timestamp used in notes markers."""
    return value.strftime("%Y-%m-%d %H:%M:%S")
