from .curves import FlatRateCurve, RateCurve, YieldCurve
from .underlying import PREMIUM_ADJUSTED_PAIRS, Underlying, is_premium_adjusted

__all__ = [
    "RateCurve",
    "FlatRateCurve",
    "YieldCurve",
    "Underlying",
    "PREMIUM_ADJUSTED_PAIRS",
    "is_premium_adjusted",
]
