from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest

from volsurface import Underlying, ValidationConfig
from volsurface.vol.validation import (
    check_admissibility,
    check_calendar_arbitrage,
    check_smile_consistency,
    run_validation,
)

RECORDED = datetime(2026, 10, 19, 8, 0, tzinfo=UTC)
NOW = RECORDED + timedelta(hours=1)

INDEX = Underlying("OTC_SPC", market="indices", instrument_type="stockindex")


def flat_smiles(tenors, vols=(0.10, 0.11, 0.12), points=(25, 50, 75)) -> dict:
    return {t: {"smile": dict(zip(points, vols))} for t in tenors}


def validate(surface, **kwargs):
    kwargs.setdefault("now", NOW)
    kwargs.setdefault("config", surface.validation_config)
    return run_validation(surface, **kwargs)


# -------------------------
# Pipeline
# -------------------------
def test_calm_surface_passes_every_check(make_surface, calm_delta_surface):
    s = make_surface(calm_delta_surface)
    report = validate(s)

    assert report.ok
    assert report.message == "OK"
    assert report.failed is None
    assert [r.name for r in report.results] == [
        "age",
        "structure",
        "smile_consistency",
        "identical_surface",
        "volatility_jumps",
        "calendar_arbitrage",
        "admissibility",
    ]
    assert s.is_valid()
    assert s.validation_error == ""


def test_pipeline_stops_at_first_failure(make_surface, calm_delta_surface, caplog):
    s = make_surface(calm_delta_surface, now=RECORDED + timedelta(hours=5))

    with caplog.at_level(logging.WARNING, logger="volsurface"):
        assert not s.is_valid()

    assert s.validation_error == (
        "Volatility surface from provider for frxEURUSD is more than 4 hours old."
    )
    assert "failed at age" in caplog.text

    report = validate(s, now=RECORDED + timedelta(hours=5))
    assert len(report.results) == 1
    assert report.failed.name == "age"


def test_first_error_is_kept(make_surface, calm_delta_surface):
    s = make_surface(calm_delta_surface)
    s.get_volatility(
        delta=50,
        from_date=RECORDED - timedelta(hours=1),
        to_date=RECORDED + timedelta(days=1),
    )
    first = s.validation_error

    assert not s.is_valid()
    assert s.validation_error == first


def test_later_check_failure_does_not_replace_first_error(
    make_surface, calm_delta_surface
):
    s = make_surface(calm_delta_surface, now=RECORDED + timedelta(hours=5))
    s.get_volatility(delta=50, from_date=RECORDED, to_date=RECORDED)
    first = s.validation_error
    assert first.startswith("Invalid request for get volatility")

    assert not s.is_valid()
    assert s.validation_error == first
    # the pipeline itself still reports the age failure
    assert validate(s, now=RECORDED + timedelta(hours=5)).failed.name == "age"


# -------------------------
# 2. Structure
# -------------------------
@pytest.mark.parametrize(
    "surface, message",
    [
        (flat_smiles([1]), "at least two maturities"),
        (flat_smiles([1, 400]), "greater than allowed[380]"),
        (flat_smiles([14, 30]), "ON term is missing"),
        (flat_smiles([1, 7.5]), "Not a positive integer"),
        (
            {1: {"smile": {25: "bad", 50: 0.1, 75: 0.1}}, 7: flat_smiles([7])[7]},
            "Invalid smile volatility on 1",
        ),
        (
            flat_smiles([1, 7], vols=(0.1, 0.1, 0.1), points=(-10, 10, 30)),
            "Invalid vol_point[-10]",
        ),
        (
            flat_smiles([1, 7], points=(10, 50, 90)),
            "Difference between point 10 and 50 is too great",
        ),
        (
            flat_smiles([1, 7], vols=(0.1, 0.2, 0.21)),
            "too big jump from 25:0.1 to 50:0.2",
        ),
    ],
)
def test_structure_failures(make_surface, surface, message):
    report = validate(make_surface(surface))
    assert report.failed.name == "structure"
    assert message in report.message


def test_extra_allowance_widens_smile_jumps(make_surface):
    surface = flat_smiles([1, 7, 30], vols=(0.1, 0.145, 0.16))
    assert not validate(make_surface(surface)).ok
    relaxed = make_surface(
        surface, validation_config=ValidationConfig(extra_vol_diff_allowance=0.1)
    )
    assert validate(relaxed).ok


def test_non_forex_may_start_later(make_surface):
    s = make_surface(flat_smiles([14, 30]), underlying=INDEX)
    assert validate(s).ok


def test_moneyness_surfaces_allow_longer_terms(make_surface):
    surface = flat_smiles([30, 700], vols=(0.2, 0.19, 0.18), points=(90, 100, 110))
    s = make_surface(surface, surface_type="moneyness", underlying=INDEX)
    assert validate(s).ok


# -------------------------
# 3. Smile consistency
# -------------------------
def test_smile_points_must_match(make_surface):
    s = make_surface(
        {1: flat_smiles([1])[1], 7: flat_smiles([7], points=(10, 50, 90))[7]}
    )
    result = check_smile_consistency(s)
    assert not result.ok
    assert "are not the same as deltas" in result.message


def test_smile_consistency_in_pipeline(make_surface):
    s = make_surface(
        {1: flat_smiles([1])[1], 7: flat_smiles([7], points=(20, 50, 80))[7]}
    )
    report = validate(s)
    assert report.failed.name == "smile_consistency"
    assert len(report.results) == 3


# -------------------------
# 4-5. Comparison with the previous surface
# -------------------------
def test_unchanged_surface_is_stale(make_surface, calm_delta_surface):
    previous = make_surface(
        calm_delta_surface, recorded_date=RECORDED - timedelta(hours=5)
    )
    s = make_surface(calm_delta_surface, previous=previous)

    assert not s.is_valid()
    assert "has not changed since last update" in s.validation_error


def test_recent_identical_surface_is_fine(make_surface, calm_delta_surface):
    previous = make_surface(
        calm_delta_surface, recorded_date=RECORDED - timedelta(hours=1)
    )
    s = make_surface(calm_delta_surface, previous=previous)
    assert s.is_valid()


def test_quanto_only_is_exempt_from_staleness(make_surface, calm_delta_surface):
    previous = make_surface(
        calm_delta_surface, recorded_date=RECORDED - timedelta(hours=5)
    )
    s = make_surface(
        calm_delta_surface,
        previous=previous,
        underlying=Underlying("frxEURUSD", quanto_only=True),
    )
    assert s.is_valid()


def test_big_jump_against_previous(make_surface, calm_delta_surface):
    quiet = {
        1: {"smile": {25: 0.040, 50: 0.045, 75: 0.050}},
        7: {"smile": {25: 0.042, 50: 0.047, 75: 0.052}},
        30: {"smile": {25: 0.044, 50: 0.049, 75: 0.054}},
    }
    previous = make_surface(quiet, recorded_date=RECORDED - timedelta(hours=1))
    s = make_surface(calm_delta_surface, previous=previous)

    report = validate(s, previous=previous)
    assert report.failed.name == "volatility_jumps"
    assert "Big difference found on term[1] for point [25]" in report.message


# -------------------------
# 6. Calendar arbitrage
# -------------------------
def test_decreasing_atm_variance(make_surface):
    s = make_surface(
        {1: flat_smiles([1], vols=(0.3, 0.3, 0.3))[1], 7: flat_smiles([7], vols=(0.1, 0.1, 0.1))[7]}
    )
    result = check_calendar_arbitrage(s)
    assert not result.ok
    assert result.message == "Negative variance found on frxEURUSD for maturity 1 for ATM"
    assert validate(s).failed.name == "calendar_arbitrage"


# -------------------------
# 7. Admissibility
# -------------------------
def test_call_price_must_rise_with_delta(make_surface):
    s = make_surface(
        flat_smiles([1, 7], vols=(0.5, 0.1, 0.1)),
        validation_config=ValidationConfig(extra_vol_diff_allowance=1.0),
    )
    report = validate(s)
    assert report.failed.name == "admissibility"
    assert "BS call price decreases between 25 and 50" in report.message


def test_call_price_must_fall_with_moneyness(make_surface):
    s = make_surface(
        flat_smiles([180, 365], vols=(0.1, 0.1, 0.3), points=(90, 100, 110)),
        surface_type="moneyness",
        underlying=INDEX,
        validation_config=ValidationConfig(extra_vol_diff_allowance=2.0),
    )
    report = validate(s)
    assert report.failed.name == "admissibility"
    assert "BS call price increases between 100 and 110" in report.message


def test_expired_tenor_is_inadmissible(make_surface, calm_delta_surface):
    s = make_surface(calm_delta_surface)
    result = check_admissibility(
        s, now=RECORDED + timedelta(days=3), config=ValidationConfig()
    )
    assert not result.ok
    assert result.message.startswith("Invalid tenor[1]")


def test_flat_surface_skips_admissibility(make_surface):
    s = make_surface(
        {1: {"smile": {100: 0.2}}, 7: {"smile": {100: 0.2}}}, surface_type="flat"
    )
    assert check_admissibility(s, now=NOW, config=ValidationConfig()).ok
    assert s.is_valid()
