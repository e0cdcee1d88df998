"""
volsurface

Market-implied volatility surfaces: variance term structure, smile
interpolation, delta conversion and no-arbitrage validation.

The main entry point is :class:`VolSurface`:

    from volsurface import FlatRateCurve, Underlying, VolSurface

    surface = VolSurface.delta(
        recorded_date=now,
        underlying=Underlying("frxEURUSD"),
        r_rates=FlatRateCurve(0.01),
        q_rates=FlatRateCurve(0.0),
        surface={1: {"smile": {25: 0.2, 50: 0.4, 75: 0.7}}, 7: {...}},
    )
    vol = surface.get_volatility(delta=50, from_date=now, to_date=later)
"""

from .config import QueryConfig, ValidationConfig
from .dates import RolloverCalendar
from .exceptions import InputError, VolSurfaceError
from .market import FlatRateCurve, RateCurve, Underlying, YieldCurve
from .types import OptionType, RawSurface, SurfaceType, TenorQuote
from .vol import (
    TradingDayWeight,
    UniformWeight,
    VarianceTermStructure,
    VolSurface,
)

__all__ = [
    # Surface
    "VolSurface",
    "SurfaceType",
    "RawSurface",
    "TenorQuote",
    "VarianceTermStructure",
    "UniformWeight",
    "TradingDayWeight",
    "RolloverCalendar",
    # Market
    "RateCurve",
    "FlatRateCurve",
    "YieldCurve",
    "Underlying",
    "OptionType",
    # Config / errors
    "ValidationConfig",
    "QueryConfig",
    "VolSurfaceError",
    "InputError",
]
