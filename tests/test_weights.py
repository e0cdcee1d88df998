from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from volsurface.dates import to_epoch
from volsurface.exceptions import InputError
from volsurface.vol.weights import (
    TradingDayWeight,
    UniformWeight,
    break_range_into_days,
    weight_between,
)


def ep(*args: int) -> int:
    return to_epoch(datetime(*args, tzinfo=UTC))


def test_break_range_within_one_day():
    start, end = ep(2026, 10, 19, 8), ep(2026, 10, 19, 20)
    assert break_range_into_days(start, end) == [start, end]


def test_break_range_across_one_midnight():
    start, end = ep(2026, 10, 19, 20), ep(2026, 10, 20, 4)
    assert break_range_into_days(start, end) == [start, ep(2026, 10, 20), end]


def test_break_range_across_several_days():
    start, end = ep(2026, 10, 19, 12), ep(2026, 10, 22, 6)
    assert break_range_into_days(start, end) == [
        start,
        ep(2026, 10, 20),
        ep(2026, 10, 21),
        ep(2026, 10, 22),
        end,
    ]


def test_break_range_rejects_inverted_dates():
    with pytest.raises(InputError):
        break_range_into_days(ep(2026, 10, 20), ep(2026, 10, 19))


def test_uniform_weight_counts_calendar_days():
    start, end = ep(2026, 10, 19, 8), ep(2026, 10, 22, 14)
    assert weight_between(start, end, UniformWeight()) == pytest.approx(3.25)


def test_trading_day_weight_discounts_weekends():
    # Friday noon -> Monday noon
    start, end = ep(2026, 10, 23, 12), ep(2026, 10, 26, 12)
    w = TradingDayWeight(weekend_weight=0.5)
    assert weight_between(start, end, w) == pytest.approx(0.5 + 0.5 + 0.5 + 0.5)

    w0 = TradingDayWeight(weekend_weight=0.0)
    assert weight_between(start, end, w0) == pytest.approx(1.0)


def test_trading_day_weight_holidays_override():
    w = TradingDayWeight(weekend_weight=0.0, holidays={date(2026, 12, 25): 0.1})
    assert w.weight_on(ep(2026, 12, 25)) == pytest.approx(0.1)
    assert w.weight_on(ep(2026, 12, 24)) == 1.0
    assert w.weight_on(ep(2026, 12, 26)) == 0.0


def test_trading_day_weight_rejects_negative_weights():
    with pytest.raises(ValueError):
        TradingDayWeight(weekend_weight=-0.1)
