from __future__ import annotations

from datetime import UTC, datetime, timedelta

from volsurface.dates import RolloverCalendar, as_utc, to_epoch


def test_ny_offset_follows_daylight_saving():
    cal = RolloverCalendar()
    assert cal.ny_offset_hours(datetime(2026, 10, 19, 12, tzinfo=UTC)) == -4
    assert cal.ny_offset_hours(datetime(2026, 1, 15, 12, tzinfo=UTC)) == -5


def test_offset_cache_is_per_hour():
    cal = RolloverCalendar()
    t = datetime(2026, 10, 19, 12, 5, tzinfo=UTC)
    cal.ny_offset_hours(t)
    cal.ny_offset_hours(t + timedelta(minutes=30))  # same hour -> cache hit
    cal.ny_offset_hours(t + timedelta(hours=1))

    info = cal.cache_info()
    assert info.hits == 1
    assert info.misses == 2


def test_rollover_time_is_five_pm_new_york():
    cal = RolloverCalendar()
    summer = cal.rollover_time_on(datetime(2026, 10, 19, 8, tzinfo=UTC))
    winter = cal.rollover_time_on(datetime(2026, 1, 15, 8, tzinfo=UTC))

    assert summer == datetime(2026, 10, 19, 21, tzinfo=UTC)
    assert winter == datetime(2026, 1, 15, 22, tzinfo=UTC)


def test_effective_date_rolls_after_new_york_close():
    cal = RolloverCalendar()
    before = cal.effective_date_for(datetime(2026, 10, 19, 20, 59, tzinfo=UTC))
    after = cal.effective_date_for(datetime(2026, 10, 19, 22, 0, tzinfo=UTC))

    assert before == datetime(2026, 10, 19, tzinfo=UTC)
    assert after == datetime(2026, 10, 20, tzinfo=UTC)


def test_is_before_rollover_includes_the_rollover_instant():
    cal = RolloverCalendar()
    rollover = datetime(2026, 10, 19, 21, tzinfo=UTC)

    assert cal.is_before_rollover(rollover)
    assert cal.is_before_rollover(rollover - timedelta(seconds=1))
    assert not cal.is_before_rollover(rollover + timedelta(seconds=1))


def test_naive_datetimes_are_read_as_utc():
    naive = datetime(2026, 10, 19, 8)
    assert as_utc(naive) == datetime(2026, 10, 19, 8, tzinfo=UTC)
    assert to_epoch(naive) == to_epoch(datetime(2026, 10, 19, 8, tzinfo=UTC))
