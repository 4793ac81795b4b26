"""
Clock helpers.

Services never read the clock themselves: callers pass `today`/`now` in.
These helpers are the single place the HTTP layer and scheduled jobs derive
those values, using the configured learner timezone.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config.settings import settings


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def local_today(tz_name: Optional[str] = None, now: Optional[datetime] = None) -> date:
    """
    Learner-local calendar day.

    Args:
        tz_name: IANA timezone name (defaults to settings.APP_TIMEZONE)
        now: Reference instant (defaults to the current time)
    """
    tz = ZoneInfo(tz_name or settings.APP_TIMEZONE)
    return (now or utc_now()).astimezone(tz).date()


def default_cutoff(today: date) -> date:
    """Eviction cutoff: events dated before yesterday are past."""
    return today - timedelta(days=1)
