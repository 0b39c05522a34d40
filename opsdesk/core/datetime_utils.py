"""Centralized datetime utilities for consistent timezone handling.

All functions return naive UTC datetimes for database compatibility
(SQLAlchemy models store naive UTC).

Usage:
    from opsdesk.core.datetime_utils import utc_now, get_cutoff, start_of_day

    now = utc_now()
    cutoff = get_cutoff(hours=24)
    runs = query.where(SyncRun.created_at > cutoff)
"""

import math
from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Get current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def is_expired(expires_at: datetime) -> bool:
    """Check if a timestamp has expired.

    Args:
        expires_at: Expiry timestamp (naive UTC)

    Returns:
        True if current time is past expires_at
    """
    return utc_now() > expires_at


def get_cutoff(hours: int = 0, days: int = 0) -> datetime:
    """Get cutoff datetime for filtering queries.

    Args:
        hours: Hours to subtract from now
        days: Days to subtract from now

    Returns:
        Naive UTC datetime representing the cutoff point
    """
    return utc_now() - timedelta(hours=hours, days=days)


def get_expiry(minutes: int = 0, hours: int = 0, days: int = 0) -> datetime:
    """Get future expiry datetime (naive UTC)."""
    return utc_now() + timedelta(minutes=minutes, hours=hours, days=days)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert a datetime to naive UTC.

    Naive input is assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def start_of_day(dt: datetime) -> datetime:
    """Midnight (UTC) of the day containing dt."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def seconds_since(then: datetime, now: datetime | None = None) -> float:
    """Elapsed seconds from a naive UTC timestamp until now."""
    return ((now or utc_now()) - then).total_seconds()


def days_until(target: datetime, now: datetime | None = None) -> int:
    """Whole days until target, rounded up (negative once target has passed).

    A due date 30 hours away is 2 days out; one 1 hour ago is 0.
    """
    delta = (target - (now or utc_now())).total_seconds()
    return math.ceil(delta / 86400)
