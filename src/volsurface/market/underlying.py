from __future__ import annotations

from dataclasses import dataclass

# FX pairs quoted with premium-adjusted deltas: the premium is paid in the base
# (foreign) currency, i.e. USD-based pairs, crosses against JPY/CHF and the
# precious metals.
PREMIUM_ADJUSTED_PAIRS: frozenset[str] = frozenset(
    {
        "frxUSDJPY",
        "frxUSDCAD",
        "frxUSDCHF",
        "frxUSDNOK",
        "frxUSDSEK",
        "frxUSDPLN",
        "frxUSDMXN",
        "frxEURJPY",
        "frxGBPJPY",
        "frxAUDJPY",
        "frxNZDJPY",
        "frxCADJPY",
        "frxCHFJPY",
        "frxEURCHF",
        "frxGBPCHF",
        "frxAUDCHF",
        "frxEURCAD",
        "frxGBPCAD",
        "frxAUDCAD",
        "frxXAUUSD",
        "frxXAGUSD",
    }
)


def is_premium_adjusted(symbol: str) -> bool:
    return symbol in PREMIUM_ADJUSTED_PAIRS


@dataclass(frozen=True, slots=True)
class Underlying:
    """Instrument a surface is quoted for.

    Parameters
    ----------
    symbol : str
        Instrument symbol, e.g. ``"frxEURUSD"``.
    market : str, default "forex"
        Market name. Forex surfaces must carry an overnight term.
    instrument_type : str, default "forex"
        Instrument classification. Types containing ``"stock"`` use the
        nearest-point lookup on the q curve.
    delta_premium_adjusted : bool | None, default None
        Delta convention. ``None`` takes the value from
        :data:`PREMIUM_ADJUSTED_PAIRS`.
    quanto_only : bool, default False
        Quanto-only underlyings are exempt from the stale-surface check.
    """

    symbol: str
    market: str = "forex"
    instrument_type: str = "forex"
    delta_premium_adjusted: bool | None = None
    quanto_only: bool = False

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("symbol must not be empty")
        if self.delta_premium_adjusted is None:
            object.__setattr__(
                self, "delta_premium_adjusted", is_premium_adjusted(self.symbol)
            )

    @property
    def is_forex(self) -> bool:
        return self.market == "forex"

    @property
    def is_stock(self) -> bool:
        return "stock" in self.instrument_type
