from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from appcore.settings import get_settings

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current wall-clock time in the configured timezone (naive)."""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE)).replace(tzinfo=None)


def local_midnight(now: datetime) -> datetime:
    """Start of the day containing `now`."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def as_local(value: datetime) -> datetime:
    """Naive local time for `value`; naive input is taken as local already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(get_settings().TIMEZONE)).replace(tzinfo=None)
