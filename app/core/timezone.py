"""
Timezone helpers - every business timestamp is expressed in settings.TIMEZONE
"""
from datetime import datetime, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from app.core.config import settings


@lru_cache(maxsize=None)
def get_local_zone(name: str = None) -> tzinfo:
    """
    Resolve the configured zone

    Raises:
        ZoneInfoNotFoundError: Unknown zone name
    """
    return ZoneInfo(name or settings.TIMEZONE)


def now_local() -> datetime:
    """Current time in the business timezone"""
    return datetime.now(get_local_zone())


def to_local(value: datetime) -> datetime:
    """
    Normalize a datetime to the business timezone.

    Naive values are taken to already be local wall-clock time; this is how
    drivers without timezone support (SQLite) hand back stored values.
    """
    if value is None:
        return None
    zone = get_local_zone()
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value.astimezone(zone)


def start_of_day(value: datetime) -> datetime:
    local = to_local(value)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)
