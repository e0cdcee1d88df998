from __future__ import annotations

import math

from scipy.optimize import brentq
from scipy.stats import norm

from ..exceptions import InputError
from ..types import OptionType


def _validate_scalar_inputs(
    *, spot: float, strike: float, sigma: float, tau: float
) -> None:
    if spot <= 0.0:
        raise ValueError("spot must be positive")
    if strike <= 0.0:
        raise ValueError("strike must be positive")
    if sigma <= 0.0:
        raise ValueError("sigma must be positive")
    if tau <= 0.0:
        raise ValueError("tau must be positive")


def discount_factor(rate: float, tau: float) -> float:
    return math.exp(-rate * tau)


def forward(spot: float, r: float, q: float, tau: float) -> float:
    # F = S * e^{(r-q) tau}
    return spot * math.exp((r - q) * tau)


def d1_d2_from_spot(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> tuple[float, float]:
    _validate_scalar_inputs(spot=spot, strike=strike, sigma=sigma, tau=tau)
    vol_sqrt_t = sigma * math.sqrt(tau)
    num = math.log(spot / strike) + (r - q + 0.5 * sigma * sigma) * tau
    d1 = num / vol_sqrt_t
    d2 = d1 - vol_sqrt_t
    return float(d1), float(d2)


def call_price(
    *, spot: float, strike: float, r: float, q: float, sigma: float, tau: float
) -> float:
    """
    Black–Scholes European call with continuous dividend yield q.
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    df_r = discount_factor(r, tau)
    df_q = discount_factor(q, tau)
    return spot * df_q * norm.cdf(d1) - strike * df_r * norm.cdf(d2)


# -------------------------
# Spot deltas (FX conventions)
# -------------------------
def spot_delta(
    *,
    kind: OptionType,
    spot: float,
    strike: float,
    r: float,
    q: float,
    sigma: float,
    tau: float,
    premium_adjusted: bool = False,
) -> float:
    """
    Spot delta of a vanilla option, as a positive magnitude in [0, 1].

    Plain:            call e^{-q tau} N(d1),        put e^{-q tau} N(-d1)
    Premium-adjusted: call (K/S) e^{-r tau} N(d2),  put (K/S) e^{-r tau} N(-d2)
    """
    d1, d2 = d1_d2_from_spot(spot=spot, strike=strike, r=r, q=q, sigma=sigma, tau=tau)
    sign = 1.0 if kind == OptionType.CALL else -1.0
    if premium_adjusted:
        return strike / spot * discount_factor(r, tau) * float(norm.cdf(sign * d2))
    return discount_factor(q, tau) * float(norm.cdf(sign * d1))


def _strike_from_d2(
    d2: float, *, spot: float, r: float, q: float, sigma: float, tau: float
) -> float:
    vol_sqrt_t = sigma * math.sqrt(tau)
    return forward(spot, r, q, tau) * math.exp(-d2 * vol_sqrt_t - 0.5 * vol_sqrt_t**2)


def strike_for_spot_delta(
    *,
    kind: OptionType,
    delta: float,
    spot: float,
    r: float,
    q: float,
    sigma: float,
    tau: float,
    premium_adjusted: bool = False,
) -> float:
    """
    Invert :func:`spot_delta` for the strike.

    `delta` is the magnitude (0 < delta < 1) for both calls and puts.
    Plain deltas have a closed form; premium-adjusted deltas are solved in d2
    with Brent's method. For calls the premium-adjusted delta is not monotone
    in strike, the root is taken on the strikes above the delta maximum.
    """
    if not 0.0 < delta < 1.0:
        raise InputError(f"delta must be in (0, 1), got {delta}")
    _validate_scalar_inputs(spot=spot, strike=1.0, sigma=sigma, tau=tau)
    vol_sqrt_t = sigma * math.sqrt(tau)
    sign = 1.0 if kind == OptionType.CALL else -1.0

    if not premium_adjusted:
        scaled = delta / discount_factor(q, tau)
        if scaled >= 1.0:
            raise InputError(f"delta {delta} is not attainable for tau={tau}")
        inv = float(norm.ppf(scaled))
        return spot * math.exp(
            -sign * inv * vol_sqrt_t + (r - q + 0.5 * sigma * sigma) * tau
        )

    def pa_delta(d2: float) -> float:
        k = _strike_from_d2(d2, spot=spot, r=r, q=q, sigma=sigma, tau=tau)
        return k / spot * discount_factor(r, tau) * float(norm.cdf(sign * d2))

    lo, hi = -12.0, 12.0
    if kind == OptionType.CALL:
        # d(delta)/d(d2) = 0  <=>  vol_sqrt_t * N(d2) = n(d2)
        hi = brentq(
            lambda d: vol_sqrt_t * norm.cdf(d) - norm.pdf(d), -8.0, 40.0, xtol=1e-14
        )

    f_lo = pa_delta(lo) - delta
    f_hi = pa_delta(hi) - delta
    if f_lo * f_hi > 0:
        raise InputError(
            f"premium-adjusted delta {delta} is not attainable for sigma={sigma}, tau={tau}"
        )
    d2 = brentq(lambda d: pa_delta(d) - delta, lo, hi, xtol=1e-14)
    return _strike_from_d2(d2, spot=spot, r=r, q=q, sigma=sigma, tau=tau)
