from __future__ import annotations

import math
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from ..config import QueryConfig, ValidationConfig
from ..dates import (
    SECONDS_PER_DAY,
    RolloverCalendar,
    as_utc,
    default_calendar,
    from_epoch,
    to_epoch,
)
from ..exceptions import InputError
from ..logging import get_logger
from ..market.curves import RateCurve
from ..market.underlying import Underlying
from ..types import RawSurface, SmilePoint, SurfaceType, Tenor
from .conversion import DeltaConverter, moneyness_from_strike
from .smile import interpolate, interpolate_linear, is_valid_smile, rr_bf_for_smile
from .term_structure import VarianceTermStructure
from .weights import UniformWeight, WeightFunction

logger = get_logger(__name__)

_QUERY_KEYS = ("delta", "strike", "moneyness")


# -------------------------
# Per-type smile coordinate behaviour
# -------------------------
class SmileCoordinate(Protocol):
    surface_type: SurfaceType
    query_key: str
    atm_spread_point: SmilePoint

    def atm_point(self, smile_points: tuple[SmilePoint, ...]) -> SmilePoint: ...

    def max_term_days(self, config: ValidationConfig) -> int: ...

    def to_point(
        self,
        surface: VolSurface,
        *,
        key: str,
        value: float,
        spot: float | None,
        from_date: datetime,
        to_date: datetime,
    ) -> float: ...

    def vol_from_smile(self, smile: Mapping[SmilePoint, float], point: float) -> float: ...


@dataclass(frozen=True, slots=True)
class DeltaCoordinate:
    surface_type: SurfaceType = SurfaceType.DELTA
    query_key: str = "delta"
    atm_spread_point: SmilePoint = 50

    def atm_point(self, smile_points: tuple[SmilePoint, ...]) -> SmilePoint:
        return 50

    def max_term_days(self, config: ValidationConfig) -> int:
        return config.max_term_days

    def to_point(
        self,
        surface: VolSurface,
        *,
        key: str,
        value: float,
        spot: float | None,
        from_date: datetime,
        to_date: datetime,
    ) -> float:
        if key == "delta":
            if value <= 0:
                raise InputError("Delta cannot be zero or negative.")
            return value
        converter = surface.delta_converter
        if key == "strike":
            return converter.delta_from_strike(
                strike=value, spot=spot, from_date=from_date, to_date=to_date
            )
        return converter.delta_from_moneyness(
            moneyness=value, spot=spot, from_date=from_date, to_date=to_date
        )

    def vol_from_smile(self, smile: Mapping[SmilePoint, float], point: float) -> float:
        return interpolate(smile, point)


@dataclass(frozen=True, slots=True)
class MoneynessCoordinate:
    surface_type: SurfaceType = SurfaceType.MONEYNESS
    query_key: str = "moneyness"
    atm_spread_point: SmilePoint = 100

    def atm_point(self, smile_points: tuple[SmilePoint, ...]) -> SmilePoint:
        if not smile_points or 100 in smile_points:
            return 100
        return min(smile_points, key=lambda p: (abs(p - 100), p))

    def max_term_days(self, config: ValidationConfig) -> int:
        return config.max_term_days_moneyness

    def to_point(
        self,
        surface: VolSurface,
        *,
        key: str,
        value: float,
        spot: float | None,
        from_date: datetime,
        to_date: datetime,
    ) -> float:
        if key == "moneyness":
            return value
        if spot is None:
            raise InputError(f"spot value required to convert {key} to moneyness.")
        if key == "strike":
            return moneyness_from_strike(value, spot)
        if value <= 0:
            raise InputError("Delta cannot be zero or negative.")
        strike = surface.delta_converter.strike_from_delta(
            delta=value, spot=spot, from_date=from_date, to_date=to_date
        )
        return moneyness_from_strike(strike, spot)

    def vol_from_smile(self, smile: Mapping[SmilePoint, float], point: float) -> float:
        return interpolate(smile, point)


@dataclass(frozen=True, slots=True)
class FlatCoordinate:
    surface_type: SurfaceType = SurfaceType.FLAT
    query_key: str = "moneyness"
    atm_spread_point: SmilePoint = 100

    def atm_point(self, smile_points: tuple[SmilePoint, ...]) -> SmilePoint:
        return smile_points[0] if smile_points else 100

    def max_term_days(self, config: ValidationConfig) -> int:
        return config.max_term_days

    def to_point(
        self,
        surface: VolSurface,
        *,
        key: str,
        value: float,
        spot: float | None,
        from_date: datetime,
        to_date: datetime,
    ) -> float:
        return surface.atm_point

    def vol_from_smile(self, smile: Mapping[SmilePoint, float], point: float) -> float:
        # one point, the same vol whatever the strike
        return interpolate(smile, point)


COORDINATES: dict[SurfaceType, SmileCoordinate] = {
    SurfaceType.DELTA: DeltaCoordinate(),
    SurfaceType.MONEYNESS: MoneynessCoordinate(),
    SurfaceType.FLAT: FlatCoordinate(),
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


# -------------------------
# Surface
# -------------------------
@dataclass(frozen=True, slots=True, eq=False)
class VolSurface:
    """Volatility surface built from raw tenor/smile quotes.

    Raw quotes are turned into a table of cumulative variance by absolute
    expiry (see :class:`VarianceTermStructure`). Volatility for a window
    ``[from_date, to_date]`` is the forward volatility implied by the variance
    at both ends, interpolated across the smile quadratically.

    Parameters
    ----------
    surface_type : SurfaceType | str
        ``"delta"``, ``"moneyness"`` or ``"flat"``.
    recorded_date : datetime
        When the surface was recorded. Naive datetimes are read as UTC.
    underlying : Underlying
        Instrument the surface is for.
    r_rates, q_rates : RateCurve
        Interest rate and dividend/foreign rate curves.
    surface : RawSurface | Mapping
        ``{tenor_days: {"smile": {point: vol}, "spread": {point: spread}}}``.
    calendar : RolloverCalendar, optional
        Rollover arithmetic; defaults to the shared calendar.
    weight : WeightFunction, optional
        Day weighting for interpolation in time; uniform by default.
    validation_config, query_config : optional
        Thresholds for :meth:`is_valid` and query defaults.
    previous : VolSurface, optional
        The last stored surface for the same underlying. Enables the stale
        surface and volatility jump checks.
    clock : Callable[[], datetime], optional
        Source of "now" for validation; defaults to the system UTC clock.

    Notes
    -----
    Inputs are immutable. Derived data (effective date, variance table, term
    and point lists) is computed once, on first access, under an instance
    lock. The only state that changes is :attr:`validation_error`.
    """

    surface_type: SurfaceType
    recorded_date: datetime
    underlying: Underlying
    r_rates: RateCurve
    q_rates: RateCurve
    surface: RawSurface
    calendar: RolloverCalendar = field(default_factory=default_calendar)
    weight: WeightFunction = field(default_factory=UniformWeight)
    validation_config: ValidationConfig = field(default_factory=ValidationConfig)
    query_config: QueryConfig = field(default_factory=QueryConfig)
    previous: VolSurface | None = None
    clock: Callable[[], datetime] = _utc_now
    _cache: dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False
    )

    def __post_init__(self) -> None:
        try:
            surface_type = SurfaceType(self.surface_type)
        except ValueError:
            raise InputError(
                f"Invalid surface type {self.surface_type!r}. Must be one of: "
                + ", ".join(t.value for t in SurfaceType)
            ) from None
        if not isinstance(self.recorded_date, datetime):
            raise InputError("recorded_date must be a datetime")
        object.__setattr__(self, "surface_type", surface_type)
        object.__setattr__(self, "recorded_date", as_utc(self.recorded_date))
        object.__setattr__(self, "surface", RawSurface.from_dict(self.surface))
        if not self.surface:
            raise InputError(f"surface data not found for {self.underlying.symbol}")
        self._cache["validation_error"] = ""

    # -- constructors --------------------------------------------------------

    @classmethod
    def delta(cls, **kwargs: Any) -> VolSurface:
        return cls(surface_type=SurfaceType.DELTA, **kwargs)

    @classmethod
    def moneyness(cls, **kwargs: Any) -> VolSurface:
        return cls(surface_type=SurfaceType.MONEYNESS, **kwargs)

    @classmethod
    def flat(cls, **kwargs: Any) -> VolSurface:
        return cls(surface_type=SurfaceType.FLAT, **kwargs)

    # -- lazily derived data -------------------------------------------------

    def _memo(self, key: str, build: Callable[[], Any]) -> Any:
        try:
            return self._cache[key]
        except KeyError:
            pass
        with self._lock:
            if key not in self._cache:
                self._cache[key] = build()
            return self._cache[key]

    @property
    def coordinate(self) -> SmileCoordinate:
        return COORDINATES[self.surface_type]

    @property
    def type(self) -> str:
        return self.surface_type.value

    @property
    def symbol(self) -> str:
        return self.underlying.symbol

    @property
    def effective_date(self) -> datetime:
        """GMT trading day the surface is for (NY 17:00 rollover)."""
        return self._memo(
            "effective_date",
            lambda: self.calendar.effective_date_for(self.recorded_date),
        )

    @property
    def term_by_day(self) -> tuple[Tenor, ...]:
        """All tenors in ascending order."""
        return self._memo("term_by_day", lambda: self.surface.tenors)

    @property
    def original_term_for_smile(self) -> tuple[Tenor, ...]:
        """Tenors that carry a smile, ascending."""
        return self._memo("term_for_smile", lambda: self.surface.smile_tenors)

    @property
    def smile_points(self) -> tuple[SmilePoint, ...]:
        """Sorted points of the first smile on the surface.

        Every smile is expected to carry the same points; the smile
        consistency check reports surfaces where they differ.
        """

        def build() -> tuple[SmilePoint, ...]:
            for tenor in self.original_term_for_smile:
                smile = self.surface[tenor].smile
                assert smile is not None
                return tuple(sorted(smile))
            return ()

        return self._memo("smile_points", build)

    @property
    def spread_points(self) -> tuple[SmilePoint, ...]:
        def build() -> tuple[SmilePoint, ...]:
            for tenor in self.surface.spread_tenors:
                spread = self.surface[tenor].spread
                assert spread is not None
                return tuple(sorted(spread))
            return ()

        return self._memo("spread_points", build)

    @property
    def atm_point(self) -> SmilePoint:
        return self.coordinate.atm_point(self.smile_points)

    @property
    def term_structure(self) -> VarianceTermStructure:
        return self._memo(
            "term_structure",
            lambda: VarianceTermStructure.build(
                self.surface,
                recorded_date=self.recorded_date,
                effective_date=self.effective_date,
                smile_points=self.smile_points,
                calendar=self.calendar,
                weight=self.weight,
            ),
        )

    @property
    def variance_table(self) -> Mapping[int, Mapping[SmilePoint, float]]:
        return self.term_structure.table

    @property
    def delta_converter(self) -> DeltaConverter:
        def atm_vol(from_date: datetime, to_date: datetime) -> float:
            return self.get_volatility(
                **{self.coordinate.query_key: self.atm_point},
                from_date=from_date,
                to_date=to_date,
            )

        return self._memo(
            "delta_converter",
            lambda: DeltaConverter(
                underlying=self.underlying,
                r_rates=self.r_rates,
                q_rates=self.q_rates,
                atm_vol=atm_vol,
                days_per_year=self.query_config.days_per_year,
            ),
        )

    # -- validation state ----------------------------------------------------

    @property
    def validation_error(self) -> str:
        return self._cache["validation_error"]

    def _record_error(self, message: str) -> None:
        with self._lock:
            if self._cache["validation_error"]:
                return
            self._cache["validation_error"] = message
        logger.warning("%s: %s", self.symbol, message)

    def is_valid(self) -> bool:
        """Run the validation pipeline and report whether the surface passed.

        The first failing check's message is kept in :attr:`validation_error`.
        The message is set once per instance: an error recorded earlier, for
        example by a degenerate :meth:`get_volatility` window, is not replaced
        by a later failing check, and the surface stays invalid. Build a new
        surface to re-validate from a clean state.
        """
        from .validation import run_validation

        report = run_validation(
            self,
            now=as_utc(self.clock()),
            previous=self.previous,
            config=self.validation_config,
        )
        if not report.ok:
            self._record_error(report.message)
        return not self.validation_error

    # -- queries -------------------------------------------------------------

    def get_volatility(
        self,
        *,
        delta: float | None = None,
        strike: float | None = None,
        moneyness: float | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        spot: float | None = None,
    ) -> float:
        """Volatility for one smile coordinate over ``[from_date, to_date]``.

        Exactly one of `delta`, `strike` or `moneyness` must be given; `spot`
        is needed whenever the coordinate has to be converted through a
        strike.

        Returns
        -------
        float
            The interpolated volatility. Windows starting before the recorded
            date, or empty windows, return ``query_config.degenerate_vol``
            and record a validation error instead.

        Raises
        ------
        InputError
            On missing/contradictory arguments, inverted dates or a failed
            coordinate conversion.
        """
        given = {
            k: v
            for k, v in zip(_QUERY_KEYS, (delta, strike, moneyness), strict=True)
            if v is not None
        }
        if len(given) != 1:
            raise InputError(
                "Must pass exactly one of delta, strike or moneyness to get_volatility."
            )
        if from_date is None or to_date is None:
            raise InputError("Must pass two dates [from, to] to get volatility.")

        from_epoch_ = to_epoch(from_date)
        to_epoch_ = to_epoch(to_date)
        if from_epoch_ > to_epoch_:
            raise InputError(
                f"Inverted dates[from={as_utc(from_date).isoformat()} "
                f"to={as_utc(to_date).isoformat()}] to get volatility."
            )

        # An expired but unsettled contract would otherwise see negative variance.
        if from_epoch_ < to_epoch(self.recorded_date) or from_epoch_ == to_epoch_:
            self._record_error(
                "Invalid request for get volatility. Surface recorded date ["
                f"{self.recorded_date.isoformat()}] requested period ["
                f"{as_utc(from_date).isoformat()} to {as_utc(to_date).isoformat()}]"
            )
            return self.query_config.degenerate_vol

        ((key, value),) = given.items()
        point = self.coordinate.to_point(
            self,
            key=key,
            value=float(value),
            spot=spot,
            from_date=from_date,
            to_date=to_date,
        )
        smile = self.get_smile(from_date, to_date)
        return self.coordinate.vol_from_smile(smile, point)

    def get_smile(self, from_date: datetime, to_date: datetime) -> dict[SmilePoint, float]:
        """Forward smile between two dates, from the variance table.

        Time is measured in calendar days here, while interpolation inside
        the variance table runs in weighted days.
        """
        number_of_days = (to_epoch(to_date) - to_epoch(from_date)) / SECONDS_PER_DAY
        if number_of_days <= 0:
            raise InputError("get_smile needs from_date strictly before to_date.")

        variances_from = self.term_structure.variances_at(from_date)
        variances_to = self.term_structure.variances_at(to_date)

        smile: dict[SmilePoint, float] = {}
        for point in self.smile_points:
            forward_var = (
                variances_to.get(point, math.nan) - variances_from.get(point, math.nan)
            ) / number_of_days
            smile[point] = math.sqrt(forward_var) if forward_var >= 0 else math.nan

        if not is_valid_smile(smile, max_volatility=self.validation_config.max_volatility):
            self._record_error(
                "Invalid smile volatility on smile calculated from ["
                f"{as_utc(from_date).isoformat()}] to [{as_utc(to_date).isoformat()}] "
                f"for {self.symbol}"
            )
        return smile

    def get_surface_smile(self, day: Tenor) -> dict[SmilePoint, float]:
        """Quoted smile at tenor `day`, or an empty dict."""
        quote = self.surface.get(day)
        if quote is None or quote.smile is None:
            return {}
        return dict(quote.smile)

    def get_spread(self, *, sought_point: str | float, days: float) -> float:
        """Volatility spread at a tenor.

        `sought_point` is ``"atm"``, ``"max"`` or a smile point. Tenors
        without a quoted spread are interpolated linearly in days between the
        two nearest tenors that have one.
        """
        by_day: dict[float, float] = {}
        for tenor in self.surface.spread_tenors:
            spread = self.surface[tenor].spread
            assert spread is not None
            by_day[tenor] = self._spread_value(spread, sought_point, tenor)
        if not by_day:
            raise InputError(f"No volatility spread on surface for {self.symbol}.")
        return interpolate_linear(by_day, days)

    def _spread_value(
        self, spread: Mapping[SmilePoint, float], sought_point: str | float, tenor: Tenor
    ) -> float:
        if sought_point == "max":
            return max(float(v) for v in spread.values())
        if sought_point == "atm":
            point = self.coordinate.atm_spread_point
            if point not in spread:
                if len(spread) != 1:
                    raise InputError(
                        f"No ATM spread [{point}] at tenor [{tenor}] for {self.symbol}."
                    )
                (point,) = spread
            return float(spread[point])
        if isinstance(sought_point, str):
            raise InputError(f"Unrecognized spread type {sought_point!r}.")
        return interpolate(spread, float(sought_point))

    def get_rr_bf_for_smile(self, smile: Mapping[SmilePoint, float]) -> dict[str, float]:
        return rr_bf_for_smile(smile)

    def get_market_rr_bf(self, day: Tenor) -> dict[str, float]:
        return rr_bf_for_smile(self.get_surface_smile(day))

    def get_smile_expiries(self) -> list[datetime]:
        """Expiry instants of the variance table, the recorded date first."""
        return [from_epoch(e) for e in self.term_structure.expiries]
