"""
Timezone-aware datetime utilities for ClientDesk.

All values handed around the application are timezone-aware UTC datetimes.
SQLite drops tzinfo on the way back out of the database, so anything read
from a model column goes through ensure_utc() before it is compared.
"""

from datetime import datetime, timezone
from typing import Optional
import pytz


def utc_now() -> datetime:
    """
    Get the current UTC time as a timezone-aware datetime object.

    Returns:
        datetime: Current UTC time with timezone information
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime object is timezone-aware and in UTC.

    Naive datetimes are assumed to already be UTC. None passes through so
    nullable columns can be normalized without a guard at every call site.

    Example:
        >>> ensure_utc(datetime(2025, 1, 1, 12, 0, 0)).tzinfo
        datetime.timezone.utc
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    if dt.tzinfo != timezone.utc:
        return dt.astimezone(timezone.utc)
    return dt


def utc_to_local(dt: datetime, local_tz: str = 'America/Montevideo') -> datetime:
    """
    Convert a UTC datetime to a local timezone.

    Args:
        dt: UTC datetime (naive values are treated as UTC)
        local_tz: Target timezone name

    Returns:
        datetime: Datetime in the specified local timezone
    """
    return ensure_utc(dt).astimezone(pytz.timezone(local_tz))


def start_of_local_day(now: datetime, local_tz: str = 'America/Montevideo') -> datetime:
    """Midnight of the local calendar day containing ``now``, returned in UTC."""
    local_timezone = pytz.timezone(local_tz)
    local_now = utc_to_local(now, local_tz)
    midnight = local_timezone.localize(datetime(local_now.year, local_now.month, local_now.day))
    return midnight.astimezone(timezone.utc)


def start_of_local_month(now: datetime, local_tz: str = 'America/Montevideo') -> datetime:
    """First instant of the local calendar month containing ``now``, returned in UTC."""
    local_timezone = pytz.timezone(local_tz)
    local_now = utc_to_local(now, local_tz)
    first_day = local_timezone.localize(datetime(local_now.year, local_now.month, 1))
    return first_day.astimezone(timezone.utc)


def format_utc_iso(dt: Optional[datetime]) -> Optional[str]:
    """ISO 8601 string in UTC, or None for a missing value."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
