# production_monitoring/utils.py
"""Utility functions for Production Monitoring System"""
import math
import re
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Tuple, Union

from errors import ValidationError

REFERENCE_PATTERN = re.compile(r'^[0-9a-fA-F]{24}$')


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_reference() -> str:
    """Generate a 24 hex character document reference"""
    return secrets.token_hex(12)


def is_valid_reference(value: Optional[str]) -> bool:
    return bool(value) and bool(REFERENCE_PATTERN.match(value))


def parse_day(value: Union[str, date, datetime]) -> date:
    """
    Normalize a day given as 'YYYY-MM-DD', a date or a datetime.

    Datetimes are converted to UTC before the calendar day is taken.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")


def get_day_bounds(day: Union[str, date, datetime]) -> Tuple[datetime, datetime]:
    """
    Get the UTC boundaries of a production record day.

    Args:
        day: Date string in 'YYYY-MM-DD' format, or a date/datetime

    Returns:
        Tuple of (midnight, next midnight), both timezone-aware UTC
    """
    base_date = parse_day(day)
    start_time = datetime(base_date.year, base_date.month, base_date.day, tzinfo=timezone.utc)
    return start_time, start_time + timedelta(days=1)


def hour_start(day: Union[str, date, datetime], hour: int) -> datetime:
    """Timestamp of hour:00 on the given day (UTC)"""
    start_time, _ = get_day_bounds(day)
    return start_time + timedelta(hours=hour)


def iter_days(start: Union[str, date, datetime], end: Union[str, date, datetime]) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive"""
    current = parse_day(start)
    last = parse_day(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes coming back from MySQL as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value).replace('Z', '+00:00')))


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat().replace('+00:00', 'Z')


def round_half_up(value: float) -> int:
    """Round like the dashboard front end does (0.5 always goes up)"""
    return int(math.floor(value + 0.5))
