from __future__ import annotations

import pytest

from volsurface import FlatRateCurve, Underlying, YieldCurve
from volsurface.market.underlying import is_premium_adjusted


def test_flat_curve_is_constant():
    c = FlatRateCurve(0.02)
    assert c.interest_rate_for(0.0) == 0.02
    assert c.interpolate(3.0) == 0.02
    assert c.find_closest_to(0.25) == 0.02
    with pytest.raises(ValueError):
        c.interest_rate_for(-0.1)


def test_yield_curve_interpolates_in_days():
    c = YieldCurve({30: 0.01, 365: 0.03}, asset="USD")
    assert c.interpolate(0.5) == pytest.approx(0.01 + 0.02 * 152.5 / 335)
    assert c.interest_rate_for(0.5) == c.interpolate(0.5)
    assert c.interpolate(365 / 365) == pytest.approx(0.03)


def test_yield_curve_extrapolates_flat():
    c = YieldCurve({30: 0.01, 365: 0.03})
    assert c.interpolate(0.0) == pytest.approx(0.01)
    assert c.interpolate(5.0) == pytest.approx(0.03)


def test_yield_curve_nearest_tenor():
    c = YieldCurve({30: 0.01, 365: 0.03})
    assert c.find_closest_to(0.5) == 0.01
    assert c.find_closest_to(0.9) == 0.03


def test_yield_curve_rejects_bad_input():
    with pytest.raises(ValueError):
        YieldCurve({})
    with pytest.raises(ValueError):
        YieldCurve({-1: 0.01})
    with pytest.raises(ValueError):
        YieldCurve({30: 0.01}).interpolate(-1.0)


# -------------------------
# Underlying
# -------------------------
def test_premium_adjustment_lookup():
    assert is_premium_adjusted("frxUSDJPY")
    assert not is_premium_adjusted("frxEURUSD")
    assert Underlying("frxUSDJPY").delta_premium_adjusted is True
    assert Underlying("frxEURUSD").delta_premium_adjusted is False
    assert Underlying("frxEURUSD", delta_premium_adjusted=True).delta_premium_adjusted


def test_underlying_classification():
    fx = Underlying("frxEURUSD")
    stock = Underlying("UKBARC", market="europe_OTC", instrument_type="stockindex")
    assert fx.is_forex and not fx.is_stock
    assert stock.is_stock and not stock.is_forex
    with pytest.raises(ValueError):
        Underlying("")
