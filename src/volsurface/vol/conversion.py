from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeAlias

from ..dates import SECONDS_PER_DAY, to_epoch
from ..exceptions import InputError
from ..market.curves import RateCurve
from ..market.underlying import Underlying
from ..models import bs as bs_model
from ..types import OptionType

AtmVolFn: TypeAlias = Callable[[datetime, datetime], float]


def strike_from_moneyness(moneyness: float, spot: float) -> float:
    """Strike for a moneyness quoted in percent of spot (100 == ATM)."""
    if spot <= 0:
        raise InputError("spot must be > 0")
    return spot * moneyness / 100


def moneyness_from_strike(strike: float, spot: float) -> float:
    if spot <= 0:
        raise InputError("spot must be > 0")
    return 100 * strike / spot


@dataclass(frozen=True, slots=True)
class ConversionArgs:
    t: float
    r_rate: float
    q_rate: float
    atm_vol: float
    premium_adjusted: bool


@dataclass(frozen=True, slots=True)
class DeltaConverter:
    """Strike/moneyness to delta conversion for a surface.

    Parameters
    ----------
    underlying : Underlying
        Supplies the premium-adjustment flag and the q-curve lookup style.
    r_rates, q_rates : RateCurve
        Interest and dividend (or foreign) rate curves.
    atm_vol : AtmVolFn
        ``atm_vol(from, to)``: the surface's own ATM volatility over a window.
    days_per_year : int, default 365
    """

    underlying: Underlying
    r_rates: RateCurve
    q_rates: RateCurve
    atm_vol: AtmVolFn
    days_per_year: int = 365

    def year_fraction(self, from_date: datetime, to_date: datetime) -> float:
        seconds = to_epoch(to_date) - to_epoch(from_date)
        return seconds / (self.days_per_year * SECONDS_PER_DAY)

    def q_rate_for(self, t: float) -> float:
        if self.underlying.is_stock:
            return self.q_rates.find_closest_to(t)
        return self.q_rates.interpolate(t)

    def conversion_args(
        self,
        *,
        from_date: datetime,
        to_date: datetime,
        t: float | None = None,
        r_rate: float | None = None,
        q_rate: float | None = None,
        atm_vol: float | None = None,
        premium_adjusted: bool | None = None,
    ) -> ConversionArgs:
        """Fill in whatever the caller did not supply."""
        if t is None:
            t = self.year_fraction(from_date, to_date)
        if premium_adjusted is None:
            premium_adjusted = bool(self.underlying.delta_premium_adjusted)
        if r_rate is None:
            r_rate = self.r_rates.interest_rate_for(t)
        if q_rate is None:
            q_rate = self.q_rate_for(t)
        if atm_vol is None:
            atm_vol = self.atm_vol(from_date, to_date)
        return ConversionArgs(
            t=t,
            r_rate=r_rate,
            q_rate=q_rate,
            atm_vol=atm_vol,
            premium_adjusted=premium_adjusted,
        )

    def delta_from_strike(
        self, *, strike: float, spot: float, from_date: datetime, to_date: datetime
    ) -> float:
        """Call spot delta (0-100 scale) of `strike`, priced at the ATM vol."""
        if spot is None:
            raise InputError("spot value required to convert strike to delta.")
        args = self.conversion_args(from_date=from_date, to_date=to_date)
        try:
            delta = bs_model.spot_delta(
                kind=OptionType.CALL,
                spot=spot,
                strike=strike,
                r=args.r_rate,
                q=args.q_rate,
                sigma=args.atm_vol,
                tau=args.t,
                premium_adjusted=args.premium_adjusted,
            )
        except ValueError as exc:
            raise InputError(f"Cannot convert strike [{strike}] to delta: {exc}") from exc
        delta *= 100
        if delta <= 0:
            raise InputError("Delta cannot be zero or negative.")
        return delta

    def delta_from_moneyness(
        self,
        *,
        moneyness: float,
        spot: float | None,
        from_date: datetime,
        to_date: datetime,
    ) -> float:
        if spot is None:
            raise InputError("spot value required to convert moneyness to delta.")
        strike = strike_from_moneyness(moneyness, spot)
        return self.delta_from_strike(
            strike=strike, spot=spot, from_date=from_date, to_date=to_date
        )

    def strike_from_delta(
        self,
        *,
        delta: float,
        spot: float,
        from_date: datetime,
        to_date: datetime,
    ) -> float:
        """Strike of a call with `delta` (0-100 scale), at the ATM vol."""
        args = self.conversion_args(from_date=from_date, to_date=to_date)
        try:
            return bs_model.strike_for_spot_delta(
                kind=OptionType.CALL,
                delta=delta / 100,
                spot=spot,
                r=args.r_rate,
                q=args.q_rate,
                sigma=args.atm_vol,
                tau=args.t,
                premium_adjusted=args.premium_adjusted,
            )
        except ValueError as exc:
            raise InputError(f"Cannot convert delta [{delta}] to strike: {exc}") from exc
