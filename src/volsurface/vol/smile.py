from __future__ import annotations

import bisect
import math
from collections.abc import Mapping, Sequence

import numpy as np

from ..exceptions import InputError
from ..types import Smile, SmilePoint


def interpolate(smile: Smile, sought_point: float) -> float:
    """Quadratic interpolation across a discrete smile.

    A stored point is returned as is. Otherwise a quadratic is fitted through
    the three known points nearest `sought_point` (the bracketing neighbours
    inside the grid, the closest edge points outside it) and evaluated there.
    Smiles with two points fall back to a line and a single point is flat.

    Parameters
    ----------
    smile : Smile
        ``{point: vol}``.
    sought_point : float
        Smile coordinate to evaluate.

    Raises
    ------
    InputError
        If the smile is empty.
    """
    if sought_point in smile:
        return float(smile[sought_point])
    if not smile:
        raise InputError("Cannot interpolate on an empty smile.")

    points = _neighbours(sorted(smile), sought_point)
    if len(points) == 1:
        return float(smile[points[0]])

    x = np.asarray(points, dtype=np.float64)
    y = np.asarray([smile[p] for p in points], dtype=np.float64)
    coeffs = np.polyfit(x, y, deg=len(points) - 1)
    return float(np.polyval(coeffs, float(sought_point)))


def _neighbours(keys: list[SmilePoint], sought: float) -> list[SmilePoint]:
    # up to three sorted points around `sought`
    if len(keys) <= 3:
        return keys
    j = bisect.bisect_left(keys, sought)
    if j == 0:
        return keys[:3]
    if j == len(keys):
        return keys[-3:]

    lo, hi = j - 1, j
    if lo == 0:
        return keys[lo : hi + 2]
    if hi == len(keys) - 1:
        return keys[lo - 1 : hi + 1]
    if sought - keys[lo - 1] <= keys[hi + 1] - sought:
        return keys[lo - 1 : hi + 1]
    return keys[lo : hi + 2]


def interpolate_linear(
    points: Mapping[float, float], sought: float
) -> float:
    """Linear interpolation through the two known points closest to `sought`.

    Used across the term structure (for example spreads by day); requires at
    least two points and extrapolates linearly outside them.
    """
    if sought in points:
        return float(points[sought])
    if len(points) < 2:
        raise InputError("Need 2 or more term structures to interpolate.")

    x0, x1 = sorted(sorted(points, key=lambda p: (abs(p - sought), p))[:2])
    y0, y1 = float(points[x0]), float(points[x1])
    return y0 + (y1 - y0) * (sought - x0) / (x1 - x0)


def is_valid_smile(smile: Smile, *, max_volatility: float = 5.0) -> bool:
    """All vols are finite numbers in ``[0, max_volatility]``."""
    for vol in smile.values():
        if isinstance(vol, bool) or not isinstance(vol, (int, float, np.floating)):
            return False
        if not math.isfinite(vol) or vol < 0.0 or vol > max_volatility:
            return False
    return True


def rr_bf_for_smile(smile: Smile) -> dict[str, float]:
    """Risk reversals and butterflies of a delta smile.

    ``RR_25 = vol[25] - vol[75]`` and ``BF_25 = (vol[25] + vol[75]) / 2 - vol[50]``;
    the 10-delta pair is included when the smile quotes it.
    """
    missing = [p for p in (25, 50, 75) if p not in smile]
    if missing:
        raise InputError(f"Smile is missing points {missing} for RR/BF.")

    atm = float(smile[50])
    out = {
        "ATM": atm,
        "RR_25": float(smile[25]) - float(smile[75]),
        "BF_25": (float(smile[25]) + float(smile[75])) / 2 - atm,
    }
    if 10 in smile and 90 in smile:
        out["RR_10"] = float(smile[10]) - float(smile[90])
        out["BF_10"] = (float(smile[10]) + float(smile[90])) / 2 - atm
    return out


def same_points(a: Sequence[SmilePoint], b: Sequence[SmilePoint]) -> bool:
    sa, sb = sorted(a), sorted(b)
    return len(sa) == len(sb) and all(x == y for x, y in zip(sa, sb, strict=True))
