from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationConfig:
    max_age_seconds: int = 4 * 3600
    max_term_days: int = 380
    max_term_days_moneyness: int = 760
    forex_max_first_term: int = 7
    max_point_gap: float = 30.0
    max_vol_change: float = 0.4
    extra_vol_diff_allowance: float = 0.0
    max_volatility: float = 5.0
    identical_surface_age_seconds: int = 15000
    jump_abs_threshold: float = 0.03
    admissibility_spot: float = 100.0

    def __post_init__(self) -> None:
        if self.max_age_seconds <= 0:
            raise ValueError("max_age_seconds must be > 0")
        if self.max_term_days <= 0 or self.max_term_days_moneyness <= 0:
            raise ValueError("max term must be > 0")
        if self.forex_max_first_term < 0:
            raise ValueError("forex_max_first_term must be >= 0")
        if self.max_point_gap <= 0:
            raise ValueError("max_point_gap must be > 0")
        if self.max_vol_change <= 0 or self.extra_vol_diff_allowance < 0:
            raise ValueError(
                "max_vol_change must be > 0 and extra_vol_diff_allowance >= 0"
            )
        if self.max_volatility <= 0:
            raise ValueError("max_volatility must be > 0")
        if self.jump_abs_threshold < 0:
            raise ValueError("jump_abs_threshold must be >= 0")
        if self.admissibility_spot <= 0:
            raise ValueError("admissibility_spot must be > 0")

    @property
    def max_vol_change_by_point(self) -> float:
        return self.max_vol_change + self.extra_vol_diff_allowance


@dataclass(frozen=True, slots=True)
class QueryConfig:
    degenerate_vol: float = 0.01  # returned for windows we will not trade on
    days_per_year: int = 365

    def __post_init__(self) -> None:
        if self.degenerate_vol <= 0:
            raise ValueError("degenerate_vol must be > 0")
        if self.days_per_year <= 0:
            raise ValueError("days_per_year must be > 0")
