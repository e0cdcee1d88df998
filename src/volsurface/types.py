from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, TypeAlias

from .exceptions import InputError

Tenor: TypeAlias = int | float
SmilePoint: TypeAlias = int | float
Smile: TypeAlias = Mapping[SmilePoint, float]


class SurfaceType(str, Enum):
    """Smile coordinate a surface is quoted in.

    Attributes
    ----------
    DELTA : str
        Smile points are call deltas on a 0-100 scale ("delta").
    MONEYNESS : str
        Smile points are strikes as a percentage of spot ("moneyness").
    FLAT : str
        A single point per tenor, typically 100 ("flat").
    """

    DELTA = "delta"
    MONEYNESS = "moneyness"
    FLAT = "flat"


class OptionType(str, Enum):
    CALL = "call"
    PUT = "put"


def to_number(value: Any, *, what: str = "key") -> int | float:
    """Normalize a tenor or smile key to ``int`` where integral, else ``float``.

    Digit strings such as ``"7"`` or ``"25.5"`` are accepted.

    Raises
    ------
    InputError
        If `value` is not numeric.
    """
    if isinstance(value, bool):
        raise InputError(f"Invalid {what} [{value!r}]: not a number.")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    if isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            raise InputError(f"Invalid {what} [{value!r}]: not a number.") from None
        return int(num) if math.isfinite(num) and num.is_integer() else num
    raise InputError(f"Invalid {what} [{value!r}]: not a number.")


def _to_volatility(value: Any) -> float:
    # Non-numeric quotes become nan so the structure check can report them.
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _freeze_points(points: Mapping[Any, Any]) -> Mapping[SmilePoint, float]:
    frozen = {
        to_number(k, what="smile point"): _to_volatility(v) for k, v in points.items()
    }
    return MappingProxyType(dict(sorted(frozen.items())))


@dataclass(frozen=True, slots=True)
class TenorQuote:
    """Quotes for one tenor: the volatility smile and the volatility spread.

    Either side may be missing; a tenor with only a spread does not enter the
    variance table.
    """

    smile: Smile | None = None
    spread: Smile | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TenorQuote:
        smile = data.get("smile")
        spread = data.get("spread", data.get("vol_spread"))
        return cls(
            smile=_freeze_points(smile) if smile is not None else None,
            spread=_freeze_points(spread) if spread is not None else None,
        )


@dataclass(frozen=True, slots=True)
class RawSurface(Mapping[Tenor, TenorQuote]):
    """Immutable mapping ``tenor (days) -> TenorQuote``.

    Parameters
    ----------
    quotes : Mapping[Tenor, TenorQuote]
        Quotes keyed by tenor in days. Use :meth:`from_dict` to build from the
        plain nested-dict format::

            {1: {"smile": {25: 0.2, 50: 0.4, 75: 0.7}, "spread": {50: 0.1}},
             7: {...}}
    """

    quotes: Mapping[Tenor, TenorQuote] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "quotes", MappingProxyType(dict(self.quotes)))

    @classmethod
    def from_dict(cls, data: Mapping[Any, Any]) -> RawSurface:
        if isinstance(data, RawSurface):
            return data
        quotes: dict[Tenor, TenorQuote] = {}
        for key, value in data.items():
            tenor = to_number(key, what="tenor")
            if tenor in quotes:
                raise InputError(f"Duplicate tenor [{key!r}] in surface data.")
            quotes[tenor] = (
                value if isinstance(value, TenorQuote) else TenorQuote.from_mapping(value)
            )
        return cls(quotes=quotes)

    def __getitem__(self, tenor: Tenor) -> TenorQuote:
        return self.quotes[tenor]

    def __iter__(self) -> Iterator[Tenor]:
        return iter(self.quotes)

    def __len__(self) -> int:
        return len(self.quotes)

    @property
    def tenors(self) -> tuple[Tenor, ...]:
        return tuple(sorted(self.quotes))

    @property
    def smile_tenors(self) -> tuple[Tenor, ...]:
        return tuple(t for t in self.tenors if self.quotes[t].smile is not None)

    @property
    def spread_tenors(self) -> tuple[Tenor, ...]:
        return tuple(t for t in self.tenors if self.quotes[t].spread is not None)
