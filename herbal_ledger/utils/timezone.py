# herbal_ledger/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date, time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from herbal_ledger.core.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """
    Returns a *naive* datetime representing local (settings.TIMEZONE) time.
    This avoids SQLite/SQLAlchemy issues when DateTime columns are naive.
    """
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def day_bounds(d: date) -> Tuple[datetime, datetime]:
    """00:00:00 .. 23:59:59.999999 of the given calendar day."""
    start = datetime.combine(d, time.min)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def period_window(period: str,
                  now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    now = now or now_local()
    if period == "yesterday":
        return day_bounds(now.date() - timedelta(days=1))
    if period == "today":
        return datetime.combine(now.date(), time.min), now
    raise ValueError(f"Unknown period: {period}")


def to_local_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes are converted to local time; naive ones are taken as local."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(LOCAL_TZ).replace(tzinfo=None)
