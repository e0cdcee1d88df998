"""Pytest helpers for the volsurface library."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from volsurface import FlatRateCurve, RolloverCalendar, Underlying, VolSurface

# Monday, New York on daylight time (GMT-4).
RECORDED = datetime(2026, 10, 19, 8, 0, tzinfo=UTC)


def fixed_clock(now: datetime):
    def clock() -> datetime:
        return now

    return clock


@pytest.fixture
def recorded() -> datetime:
    return RECORDED


@pytest.fixture
def raw_delta_surface() -> dict:
    """ON and 1W delta smiles."""
    return {
        1: {
            "smile": {25: 0.2, 50: 0.4, 75: 0.7},
            "spread": {50: 0.1},
        },
        7: {
            "smile": {25: 0.25, 50: 0.45, 75: 0.75},
            "spread": {50: 0.2},
        },
    }


@pytest.fixture
def calm_delta_surface() -> dict:
    """A smooth surface that passes every validation check."""
    return {
        1: {"smile": {25: 0.10, 50: 0.11, 75: 0.12}, "spread": {50: 0.01}},
        7: {"smile": {25: 0.105, 50: 0.115, 75: 0.125}, "spread": {50: 0.01}},
        30: {"smile": {25: 0.11, 50: 0.12, 75: 0.13}, "spread": {50: 0.005}},
    }


@pytest.fixture
def make_surface():
    """Factory fixture for delta surfaces with a clock one hour after recording."""

    def _make(
        surface: dict,
        *,
        surface_type: str = "delta",
        recorded_date: datetime = RECORDED,
        symbol: str = "frxEURUSD",
        r: float = 0.0,
        q: float = 0.0,
        now: datetime | None = None,
        **kwargs,
    ) -> VolSurface:
        kwargs.setdefault("underlying", Underlying(symbol))
        return VolSurface(
            surface_type=surface_type,
            recorded_date=recorded_date,
            r_rates=FlatRateCurve(r),
            q_rates=FlatRateCurve(q),
            surface=surface,
            calendar=RolloverCalendar(),
            clock=fixed_clock(now or recorded_date + timedelta(hours=1)),
            **kwargs,
        )

    return _make
