from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from ..typing import FloatArray


class RateCurve(Protocol):
    """Continuously-compounded rate lookup by year fraction ``t``.

    ``interpolate`` and ``find_closest_to`` are the two lookup styles used for
    the q side of a surface: interpolated for FX, nearest point for equities.
    """

    def interest_rate_for(self, t: float) -> float: ...
    def interpolate(self, t: float) -> float: ...
    def find_closest_to(self, t: float) -> float: ...


@dataclass(frozen=True, slots=True)
class FlatRateCurve:
    rate: float

    def interest_rate_for(self, t: float) -> float:
        if float(t) < 0:
            raise ValueError("t must be >= 0")
        return float(self.rate)

    def interpolate(self, t: float) -> float:
        return self.interest_rate_for(t)

    def find_closest_to(self, t: float) -> float:
        return self.interest_rate_for(t)


@dataclass(frozen=True, slots=True)
class YieldCurve:
    """
    Term structure of rates quoted at tenors in days.

    rates: {days: rate}, rates continuous and annualized (0.05 == 5%).
    Lookups take a year fraction t and convert with `days_per_year`.
    Interpolation is linear in days with flat extrapolation.
    """

    rates: Mapping[int, float]
    asset: str = ""
    days_per_year: int = 365
    _days: FloatArray = field(init=False, repr=False, compare=False)
    _values: FloatArray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.rates:
            raise ValueError("rates must not be empty")
        items = sorted((float(d), float(r)) for d, r in self.rates.items())
        days = np.asarray([d for d, _ in items], dtype=np.float64)
        if np.any(days < 0):
            raise ValueError("tenors must be >= 0 days")
        object.__setattr__(self, "_days", days)
        object.__setattr__(
            self, "_values", np.asarray([r for _, r in items], dtype=np.float64)
        )

    def _to_days(self, t: float) -> float:
        t = float(t)
        if t < 0:
            raise ValueError("t must be >= 0")
        return t * self.days_per_year

    def interpolate(self, t: float) -> float:
        return float(np.interp(self._to_days(t), self._days, self._values))

    def interest_rate_for(self, t: float) -> float:
        return self.interpolate(t)

    def find_closest_to(self, t: float) -> float:
        idx = int(np.argmin(np.abs(self._days - self._to_days(t))))
        return float(self._values[idx])
