"""Rollover conventions for volatility surfaces.

Surfaces roll over at 17:00 New York time. A surface recorded after 17:00 NY
but before midnight GMT belongs to the next GMT trading day; the *effective
date* of a surface captures that.
"""

from __future__ import annotations

import functools
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

NEW_YORK = ZoneInfo("America/New_York")


def as_utc(date: datetime) -> datetime:
    """Return `date` as an aware UTC datetime (naive input is read as UTC)."""
    if date.tzinfo is None:
        return date.replace(tzinfo=UTC)
    return date.astimezone(UTC)


def to_epoch(date: datetime | int | float) -> int:
    if isinstance(date, datetime):
        return int(as_utc(date).timestamp())
    return int(date)


def from_epoch(epoch: int | float) -> datetime:
    return datetime.fromtimestamp(epoch, tz=UTC)


def truncate_to_day(date: datetime) -> datetime:
    return as_utc(date).replace(hour=0, minute=0, second=0, microsecond=0)


class RolloverCalendar:
    """Effective-date arithmetic around the NY 17:00 rollover.

    The America/New_York offset from GMT is looked up per call, through a
    bounded cache keyed by the hour (``epoch // 3600``) owned by the instance.

    Parameters
    ----------
    cache_size : int, default 8760
        Maximum number of hourly offsets kept (one year of hours).
    """

    def __init__(self, *, cache_size: int = 24 * 365) -> None:
        if cache_size <= 0:
            raise ValueError("cache_size must be > 0")
        self._offset_by_hour = functools.lru_cache(maxsize=cache_size)(
            _ny_offset_for_hour
        )

    def ny_offset_hours(self, date: datetime | int | float) -> int:
        """Signed hour offset of America/New_York from GMT at `date` (-5 or -4)."""
        return self._offset_by_hour(to_epoch(date) // SECONDS_PER_HOUR)

    def cache_info(self):
        return self._offset_by_hour.cache_info()

    def rollover_time_on(self, date: datetime) -> datetime:
        """The NY 17:00 instant on the GMT calendar day of `date`."""
        offset = self.ny_offset_hours(date)
        return truncate_to_day(date) + timedelta(hours=17 - offset)

    def effective_date_for(self, date: datetime) -> datetime:
        """GMT midnight of the trading day a surface recorded at `date` is for."""
        offset = self.ny_offset_hours(date)
        return truncate_to_day(as_utc(date) + timedelta(hours=7 + offset))

    def is_before_rollover(self, date: datetime) -> bool:
        return not as_utc(date) > self.rollover_time_on(date)


def _ny_offset_for_hour(hour: int) -> int:
    instant = datetime.fromtimestamp(hour * SECONDS_PER_HOUR, tz=UTC)
    offset = instant.astimezone(NEW_YORK).utcoffset()
    assert offset is not None
    return int(offset.total_seconds() // SECONDS_PER_HOUR)


_DEFAULT_CALENDAR: RolloverCalendar | None = None


def default_calendar() -> RolloverCalendar:
    """Shared calendar used by surfaces that are not given one explicitly."""
    global _DEFAULT_CALENDAR
    if _DEFAULT_CALENDAR is None:
        _DEFAULT_CALENDAR = RolloverCalendar()
    return _DEFAULT_CALENDAR
