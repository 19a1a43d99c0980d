# teachtune/core/clock.py
from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from teachtune.core.config import get_settings


class Clock:
    """
    Single source of "now" for the scheduling engine and the monitor.

    A clock also carries the local timezone of the teacher's scheduling
    device, so wall-clock values (slot times, naive booking timestamps,
    "today") are converted to absolute instants explicitly instead of
    relying on the process timezone.
    """

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self.tz = tz

    def now(self) -> datetime:
        """Current instant as an aware UTC datetime."""
        return datetime.now(tz=timezone.utc)

    def today(self) -> date:
        """Current calendar date in the local timezone."""
        return self.now().astimezone(self.tz).date()

    def local_midnight(self, day: date) -> datetime:
        """Start of `day` in the local timezone, as an aware datetime."""
        return datetime.combine(day, time(0, 0), tzinfo=self.tz)

    def to_utc(self, value: datetime) -> datetime:
        """
        Normalize a datetime to aware UTC.

        Naive values are interpreted as local wall-clock time.
        """
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.tz)
        return value.astimezone(timezone.utc)


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


@lru_cache()
def get_clock() -> Clock:
    """
    FastAPI dependency returning the process-wide clock.

    Tests override it through `app.dependency_overrides[get_clock]`.
    """
    settings = get_settings()
    return Clock(tz=resolve_timezone(settings.LOCAL_TIMEZONE))
