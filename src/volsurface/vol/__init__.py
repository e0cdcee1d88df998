from .conversion import DeltaConverter, moneyness_from_strike, strike_from_moneyness
from .smile import interpolate, is_valid_smile, rr_bf_for_smile
from .surface import VolSurface
from .term_structure import VarianceTermStructure
from .validation import CheckResult, ValidationReport, run_validation
from .weights import TradingDayWeight, UniformWeight, WeightFunction

__all__ = [
    "VolSurface",
    "VarianceTermStructure",
    "DeltaConverter",
    "strike_from_moneyness",
    "moneyness_from_strike",
    "interpolate",
    "is_valid_smile",
    "rr_bf_for_smile",
    "CheckResult",
    "ValidationReport",
    "run_validation",
    "WeightFunction",
    "UniformWeight",
    "TradingDayWeight",
]
