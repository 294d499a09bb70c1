"""UTC timestamp helpers.

Timestamps written by the service are ISO-8601 strings in UTC so that range
comparisons behave the same on SQLite and PostgreSQL.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_iso(now: Optional[datetime] = None) -> str:
    return (now or utcnow()).strftime("%Y-%m-%dT%H:%M:%S")


def month_start_iso(now: Optional[datetime] = None) -> str:
    """First instant of the current calendar month."""
    now = now or utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0).strftime("%Y-%m-%dT%H:%M:%S")


def period_start_iso(period: str, now: Optional[datetime] = None) -> str:
    """Start of a reporting period: 'today', 'week' (last 7 days) or 'month'."""
    now = now or utcnow()
    if period == "today":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == "week":
        start = (now - timedelta(days=7)).replace(hour=0, minute=0, second=0, microsecond=0)
    else:
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start.strftime("%Y-%m-%dT%H:%M:%S")
