"""Validation pipeline for volatility surfaces.

Checks run in a fixed order and the pipeline stops at the first failure:

1. age                  - the surface is recent
2. structure            - tenors and smiles are well formed
3. smile consistency    - every smile quotes the same points
4. identical surface    - the provider is not re-sending stale data
5. volatility jumps     - no large move against the previous surface
6. calendar arbitrage   - ATM total variance is non-decreasing in tenor
7. admissibility        - call prices are monotone across the smile

Each check returns a :class:`CheckResult`; nothing is raised for a bad surface.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from ..config import ValidationConfig
from ..dates import SECONDS_PER_DAY, to_epoch
from ..exceptions import InputError
from ..logging import get_logger
from ..models import bs as bs_model
from ..types import OptionType, SurfaceType
from .smile import is_valid_smile, same_points

if TYPE_CHECKING:
    from .surface import VolSurface

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CheckResult:
    name: str
    ok: bool
    message: str = "OK"


@dataclass(frozen=True, slots=True)
class ValidationReport:
    ok: bool
    results: tuple[CheckResult, ...]  # checks that ran, in order
    message: str

    @property
    def failed(self) -> CheckResult | None:
        return next((r for r in self.results if not r.ok), None)


def _ok(name: str) -> CheckResult:
    return CheckResult(name=name, ok=True)


def _fail(name: str, message: str) -> CheckResult:
    return CheckResult(name=name, ok=False, message=message)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# -------------------------
# 1. Age
# -------------------------
def check_age(
    surface: VolSurface, *, now: datetime, config: ValidationConfig
) -> CheckResult:
    age = to_epoch(now) - to_epoch(surface.recorded_date)
    if age > config.max_age_seconds:
        hours = config.max_age_seconds / 3600
        return _fail(
            "age",
            f"Volatility surface from provider for {surface.symbol} is more than "
            f"{hours:g} hours old.",
        )
    return _ok("age")


# -------------------------
# 2. Structure
# -------------------------
def check_structure(surface: VolSurface, *, config: ValidationConfig) -> CheckResult:
    name = "structure"
    symbol = surface.symbol
    days = surface.term_by_day

    if len(days) < 2:
        return _fail(name, f"Must be at least two maturities on vol surface for {symbol}.")

    max_term = surface.coordinate.max_term_days(config)
    if days[-1] > max_term:
        return _fail(
            name,
            f"Day[{days[-1]}] in volsurface for underlying[{symbol}] greater than "
            f"allowed[{max_term}].",
        )

    if surface.underlying.is_forex and days[0] > config.forex_max_first_term:
        return _fail(
            name,
            f"ON term is missing in volsurface for underlying {symbol}, the minimum "
            f"term is {days[0]}.",
        )

    for day in days:
        if not isinstance(day, int) or day < 0:
            return _fail(
                name,
                f"Invalid day[{day}] in volsurface for underlying[{symbol}]. "
                "Not a positive integer.",
            )

    max_change = config.max_vol_change_by_point
    for day in surface.original_term_for_smile:
        smile = surface.surface[day].smile
        assert smile is not None

        if not is_valid_smile(smile, max_volatility=config.max_volatility):
            return _fail(name, f"Invalid smile volatility on {day} for {symbol}")

        levels = sorted(smile)
        for level in levels:
            if not (_is_number(level) and math.isfinite(level) and level >= 0):
                return _fail(name, f"Invalid vol_point[{level}] for underlying[{symbol}].")

        for level, next_level in zip(levels[:-1], levels[1:], strict=True):
            if abs(level - next_level) > config.max_point_gap:
                return _fail(
                    name,
                    f"Difference between point {level} and {next_level} is too great "
                    f"for days {day}.",
                )
            vol, next_vol = smile[level], smile[next_level]
            if abs(vol - next_vol) > max_change * vol:
                return _fail(
                    name,
                    "Invalid volatility points: too big jump from "
                    f"{level}:{vol} to {next_level}:{next_vol} "
                    f"for maturity[{day}], underlying[{symbol}]",
                )
    return _ok(name)


# -------------------------
# 3. Smile consistency
# -------------------------
def check_smile_consistency(surface: VolSurface) -> CheckResult:
    name = "smile_consistency"
    reference: Sequence[float] | None = None
    for day in surface.original_term_for_smile:
        smile = surface.surface[day].smile
        assert smile is not None
        current = sorted(smile)
        if reference is None:
            reference = current
            continue
        if not same_points(reference, current):
            return _fail(
                name,
                f"Deltas[{','.join(str(p) for p in current)}] for maturity[{day}], "
                f"underlying[{surface.symbol}] are not the same as deltas for rest "
                f"of surface[{','.join(str(p) for p in reference)}].",
            )
    return _ok(name)


# -------------------------
# 4. Identical surface
# -------------------------
def _same_smiles(new: VolSurface, existing: VolSurface) -> bool:
    new_terms = new.original_term_for_smile
    existing_terms = existing.original_term_for_smile
    if len(new_terms) != len(existing_terms):
        return False
    if any(a != b for a, b in zip(new_terms, existing_terms, strict=True)):
        return False

    for term in existing_terms:
        existing_smile = existing.surface[term].smile
        new_smile = new.surface[term].smile
        assert existing_smile is not None and new_smile is not None
        if len(existing_smile) != len(new_smile):
            return False
        for point, vol in existing_smile.items():
            if point not in new_smile or new_smile[point] != vol:
                return False
    return True


def check_identical_surface(
    surface: VolSurface,
    *,
    previous: VolSurface | None,
    now: datetime,
    config: ValidationConfig,
) -> CheckResult:
    name = "identical_surface"
    if previous is None or not _same_smiles(surface, previous):
        return _ok(name)

    existing_epoch = to_epoch(previous.recorded_date)
    if (
        to_epoch(now) - existing_epoch > config.identical_surface_age_seconds
        and not surface.underlying.quanto_only
    ):
        return _fail(
            name,
            f"Surface data has not changed since last update [{existing_epoch}] "
            f"for {surface.symbol}.",
        )
    return _ok(name)


# -------------------------
# 5. Volatility jumps
# -------------------------
def check_volatility_jumps(
    surface: VolSurface,
    *,
    previous: VolSurface | None,
    config: ValidationConfig,
) -> CheckResult:
    name = "volatility_jumps"
    if previous is None:
        return _ok(name)

    terms = surface.original_term_for_smile
    new_expiries = surface.get_smile_expiries()
    existing_expiries = previous.get_smile_expiries()
    key = surface.coordinate.query_key
    existing_key = previous.coordinate.query_key

    for i in range(1, min(len(new_expiries), len(existing_expiries))):
        for point in surface.smile_points:
            try:
                new_vol = surface.get_volatility(
                    **{key: point},
                    from_date=surface.recorded_date,
                    to_date=new_expiries[i],
                )
                existing_vol = previous.get_volatility(
                    **{existing_key: point},
                    from_date=previous.recorded_date,
                    to_date=existing_expiries[i],
                )
            except InputError as exc:
                return _fail(name, f"Cannot compare with previous surface: {exc}")
            diff = abs(new_vol - existing_vol)
            if diff > config.jump_abs_threshold and diff > existing_vol:
                return _fail(
                    name,
                    f"Big difference found on term[{terms[i - 1]}] for point "
                    f"[{point}] with absolute diff [{diff}].",
                )
    return _ok(name)


# -------------------------
# 6. Calendar arbitrage
# -------------------------
def check_calendar_arbitrage(surface: VolSurface) -> CheckResult:
    """ATM total implied variance must be non-decreasing in maturity.

    Checked on the quoted grid: ``vol(T)^2 * T >= vol(T_prev)^2 * T_prev``.
    """
    name = "calendar_arbitrage"
    atm = surface.atm_point
    terms = surface.original_term_for_smile
    for t_prev, t in zip(terms[:-1], terms[1:], strict=True):
        smile = surface.surface[t].smile
        smile_prev = surface.surface[t_prev].smile
        assert smile is not None and smile_prev is not None
        if atm not in smile or atm not in smile_prev:
            return _fail(name, f"ATM point [{atm}] missing for {surface.symbol}.")
        if smile[atm] ** 2 * t < smile_prev[atm] ** 2 * t_prev:
            return _fail(
                name,
                f"Negative variance found on {surface.symbol} for maturity {t_prev} "
                "for ATM",
            )
    return _ok(name)


# -------------------------
# 7. Admissibility
# -------------------------
def _delta_surface_strike(
    level: float,
    *,
    vol: float,
    spot: float,
    r: float,
    q: float,
    t: float,
    premium_adjusted: bool,
) -> float:
    # Points above 50 are priced through the put side.
    if level > 50:
        kind, delta = OptionType.PUT, math.exp(-r * t) - level / 100
    else:
        kind, delta = OptionType.CALL, level / 100
    return bs_model.strike_for_spot_delta(
        kind=kind,
        delta=delta,
        spot=spot,
        r=r,
        q=q,
        sigma=vol,
        tau=t,
        premium_adjusted=premium_adjusted,
    )


def check_admissibility(
    surface: VolSurface, *, now: datetime, config: ValidationConfig
) -> CheckResult:
    """Butterfly sanity check on each quoted smile.

    Delta surfaces: each point is turned into a strike at a nominal spot and a
    vanilla call is priced there; prices must strictly increase with delta.
    Moneyness surfaces: call prices must strictly decrease with moneyness.
    Flat surfaces have nothing to check.
    """
    name = "admissibility"
    if surface.surface_type == SurfaceType.FLAT:
        return _ok(name)

    spot = config.admissibility_spot
    premium_adjusted = bool(surface.underlying.delta_premium_adjusted)
    expiries = surface.get_smile_expiries()
    tenors = surface.original_term_for_smile
    converter = surface.delta_converter
    now_epoch = to_epoch(now)
    is_delta = surface.surface_type == SurfaceType.DELTA
    # strike(level) for the surface's coordinate, and the required price direction
    direction = 1.0 if is_delta else -1.0

    for i in range(1, len(expiries)):
        day = tenors[i - 1]
        expiry = expiries[i]
        if to_epoch(expiry) // SECONDS_PER_DAY - now_epoch // SECONDS_PER_DAY <= 0:
            return _fail(
                name,
                f"Invalid tenor[{day}] with expiry[{expiry.date()}] on surface. "
                f"Current date[{now.date()}]",
            )

        t = (to_epoch(expiry) - now_epoch) / (365 * SECONDS_PER_DAY)
        r = surface.r_rates.interest_rate_for(t)
        q = converter.q_rate_for(t)
        smile = surface.surface[day].smile
        assert smile is not None

        strike_for: Callable[[float, float], float]
        if is_delta:

            def strike_for(level: float, vol: float) -> float:
                return _delta_surface_strike(
                    level,
                    vol=vol,
                    spot=spot,
                    r=r,
                    q=q,
                    t=t,
                    premium_adjusted=premium_adjusted,
                )

        else:

            def strike_for(level: float, vol: float) -> float:
                return spot * level / 100

        prev_level: float | None = None
        prev_price = 0.0
        for level in sorted(smile):
            vol = smile[level]
            try:
                strike = strike_for(level, vol)
                price = bs_model.call_price(
                    spot=spot, strike=strike, r=r, q=q, sigma=vol, tau=t
                )
            except ValueError as exc:
                return _fail(
                    name,
                    f"Admissible check failure for symbol[{surface.symbol}] "
                    f"maturity[{day}]: cannot price point {level}: {exc}",
                )
            if prev_level is not None:
                slope = direction * (price - prev_price) / (level - prev_level)
                if slope <= 0:
                    change = "decreases" if is_delta else "increases"
                    return _fail(
                        name,
                        f"Admissible check 1 failure for symbol[{surface.symbol}] "
                        f"maturity[{day}]. BS call price {change} between "
                        f"{prev_level} and {level}",
                    )
            prev_level, prev_price = level, price
    return _ok(name)


# -------------------------
# Pipeline
# -------------------------
def run_validation(
    surface: VolSurface,
    *,
    now: datetime,
    previous: VolSurface | None = None,
    config: ValidationConfig | None = None,
) -> ValidationReport:
    """Run all checks in order, stopping at the first failure."""
    config = config or ValidationConfig()
    checks: tuple[Callable[[], CheckResult], ...] = (
        lambda: check_age(surface, now=now, config=config),
        lambda: check_structure(surface, config=config),
        lambda: check_smile_consistency(surface),
        lambda: check_identical_surface(
            surface, previous=previous, now=now, config=config
        ),
        lambda: check_volatility_jumps(surface, previous=previous, config=config),
        lambda: check_calendar_arbitrage(surface),
        lambda: check_admissibility(surface, now=now, config=config),
    )

    results: list[CheckResult] = []
    for check in checks:
        result = check()
        results.append(result)
        if not result.ok:
            logger.warning(
                "Validation of %s failed at %s: %s",
                surface.symbol,
                result.name,
                result.message,
            )
            return ValidationReport(
                ok=False, results=tuple(results), message=result.message
            )

    logger.debug("Validation of %s passed %d checks", surface.symbol, len(results))
    return ValidationReport(ok=True, results=tuple(results), message="OK")
