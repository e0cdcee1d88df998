from __future__ import annotations

import bisect
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeAlias

from ..dates import SECONDS_PER_DAY, SECONDS_PER_HOUR, RolloverCalendar, to_epoch
from ..exceptions import InputError
from ..logging import get_logger
from ..types import RawSurface, SmilePoint
from .weights import UniformWeight, WeightFunction, weight_between

logger = get_logger(__name__)

# Provider quotes expire at 10:00 NY; the grid is anchored to that hour.
_EXPIRY_HOUR_NY = 10

VarianceRow: TypeAlias = Mapping[SmilePoint, float]


@dataclass(frozen=True, slots=True)
class VarianceTermStructure:
    """Cumulative variance per smile point, keyed by absolute expiry epoch.

    Each row holds ``vol^2 * days`` where ``days`` is the actual time from the
    recorded date to the expiry. The recorded epoch itself is always present
    with zero variance for every point.

    Parameters
    ----------
    table : Mapping[int, VarianceRow]
        ``epoch -> {point: variance}``.
    smile_points : Sequence[SmilePoint]
        Points carried by every row.
    weight : WeightFunction
        Day weighting used when interpolating between expiries.

    Notes
    -----
    Use :meth:`build` to construct from raw quotes.
    """

    table: Mapping[int, VarianceRow]
    smile_points: tuple[SmilePoint, ...]
    weight: WeightFunction = field(default_factory=UniformWeight)
    _epochs: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "smile_points", tuple(self.smile_points))
        object.__setattr__(self, "_epochs", tuple(sorted(self.table)))

    @classmethod
    def build(
        cls,
        raw: RawSurface,
        *,
        recorded_date: datetime,
        effective_date: datetime,
        smile_points: Sequence[SmilePoint],
        calendar: RolloverCalendar,
        weight: WeightFunction | None = None,
    ) -> VarianceTermStructure:
        """Convert the smiles of `raw` into a variance table.

        The expiry of tenor ``d`` is ``effective_date + d days`` at the hour
        the provider's quotes expire, so ``vol^2`` is scaled by the actual
        duration from `recorded_date` to that instant.
        """
        effective_epoch = to_epoch(effective_date)
        recorded_epoch = to_epoch(recorded_date)

        offset = calendar.ny_offset_hours(effective_epoch)
        seconds_after_midnight = (
            effective_epoch + (_EXPIRY_HOUR_NY - offset) * SECONDS_PER_HOUR
        ) % SECONDS_PER_DAY
        anchor = effective_epoch + seconds_after_midnight

        table: dict[int, dict[SmilePoint, float]] = {
            recorded_epoch: {p: 0.0 for p in smile_points}
        }
        for tenor in raw.smile_tenors:
            smile = raw[tenor].smile
            assert smile is not None
            epoch = int(anchor + tenor * SECONDS_PER_DAY)
            actual_duration = (epoch - recorded_epoch) / SECONDS_PER_DAY
            row = table.setdefault(epoch, {})
            for point in smile_points:
                vol = smile.get(point)
                if vol is not None:
                    row[point] = vol**2 * actual_duration

        logger.debug(
            "Built variance table with %d expiries (anchor %s)", len(table), anchor
        )
        return cls(
            table=table,
            smile_points=tuple(smile_points),
            weight=weight if weight is not None else UniformWeight(),
        )

    @property
    def expiries(self) -> tuple[int, ...]:
        """Sorted table epochs, the recorded epoch first."""
        return self._epochs

    def variances_at(self, date: datetime | int) -> dict[SmilePoint, float]:
        """Variance per smile point at `date`.

        Exact table epochs return the stored row. Other instants are linearly
        interpolated between the neighbouring expiries in weighted time::

            w1 = weight(low, t)
            w2 = w1 + weight(t, high)
            v  = v_low + (v_high - v_low) / w2 * w1

        Raises
        ------
        InputError
            If the table has fewer than two expiries or `date` lies outside
            the table's range.
        """
        epoch = to_epoch(date)
        row = self.table.get(epoch)
        if row is not None:
            return dict(row)

        epochs = self._epochs
        if len(epochs) < 2:
            raise InputError("Need 2 or more term structures to interpolate.")
        j = bisect.bisect_left(epochs, epoch)
        if j == 0 or j == len(epochs):
            raise InputError(
                f"Insufficient term structure to get variances at [{epoch}]: "
                f"table covers [{epochs[0]}, {epochs[-1]}]."
            )
        low, high = epochs[j - 1], epochs[j]

        w1 = weight_between(low, epoch, self.weight)
        w2 = w1 + weight_between(epoch, high, self.weight)
        if w2 <= 0.0:
            raise InputError(
                f"Zero total weight between expiries [{low}] and [{high}]."
            )

        out: dict[SmilePoint, float] = {}
        for point in self.smile_points:
            v1 = self.table[low].get(point, math.nan)
            v2 = self.table[high].get(point, math.nan)
            out[point] = v1 + (v2 - v1) / w2 * w1
        return out
