from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from ..dates import SECONDS_PER_DAY, from_epoch
from ..exceptions import InputError


class WeightFunction(Protocol):
    """Weight of the calendar day starting at `epoch` (1.0 == a full day)."""

    def weight_on(self, epoch: int) -> float: ...


@dataclass(frozen=True, slots=True)
class UniformWeight:
    """Every day counts as one day."""

    def weight_on(self, epoch: int) -> float:
        return 1.0


@dataclass(frozen=True, slots=True)
class TradingDayWeight:
    """
    Trading-calendar weighting.

    Saturdays and Sundays get `weekend_weight`; dates listed in `holidays`
    get their own weight (overriding the weekday/weekend rule); every other
    day weighs 1.0.
    """

    weekend_weight: float
    holidays: Mapping[date, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.weekend_weight < 0:
            raise ValueError("weekend_weight must be >= 0")
        if any(w < 0 for w in self.holidays.values()):
            raise ValueError("holiday weights must be >= 0")

    def weight_on(self, epoch: int) -> float:
        day = from_epoch(epoch).date()
        if day in self.holidays:
            return float(self.holidays[day])
        if day.weekday() >= 5:
            return float(self.weekend_weight)
        return 1.0


def break_range_into_days(start: int, end: int) -> list[int]:
    """Split ``[start, end]`` (epochs) at every GMT midnight in between.

    Returns the boundaries: ``start``, each intervening midnight, ``end``.
    """
    if end < start:
        raise InputError(f"inverted dates [{start} > {end}]")

    days_between = end // SECONDS_PER_DAY - start // SECONDS_PER_DAY
    if days_between == 0:
        return [start, end]

    next_day = start + SECONDS_PER_DAY
    next_day -= next_day % SECONDS_PER_DAY
    if days_between == 1:
        return [start, next_day, end]

    bounds = [start]
    while next_day < end:
        bounds.append(next_day)
        next_day += SECONDS_PER_DAY
    bounds.append(end)
    return bounds


def weight_between(start: int, end: int, weight: WeightFunction) -> float:
    """Weighted number of days between two epochs."""
    bounds = break_range_into_days(start, end)
    total = 0.0
    for lo, hi in zip(bounds[:-1], bounds[1:], strict=True):
        total += weight.weight_on(lo) * (hi - lo) / SECONDS_PER_DAY
    return total
