from __future__ import annotations


def main() -> None:
    # [START README_QUICKSTART]
    import logging
    from datetime import UTC, datetime, timedelta

    from volsurface import FlatRateCurve, Underlying, VolSurface
    from volsurface.logging import configure_logging

    configure_logging(logging.INFO, handlers=[logging.StreamHandler()])

    now = datetime.now(UTC)
    surface = VolSurface.delta(
        recorded_date=now,
        underlying=Underlying("frxEURUSD"),
        r_rates=FlatRateCurve(0.03),
        q_rates=FlatRateCurve(0.02),
        surface={
            1: {"smile": {25: 0.070, 50: 0.068, 75: 0.071}, "spread": {50: 0.010}},
            7: {"smile": {25: 0.074, 50: 0.072, 75: 0.075}, "spread": {50: 0.008}},
            30: {"smile": {25: 0.078, 50: 0.076, 75: 0.080}, "spread": {50: 0.006}},
        },
    )

    print("valid:", surface.is_valid(), surface.validation_error)

    later = now + timedelta(days=10)
    print("ATM vol:", surface.get_volatility(delta=50, from_date=now, to_date=later))
    print(
        "Vol at 1.10:",
        surface.get_volatility(strike=1.10, spot=1.08, from_date=now, to_date=later),
    )
    print("Smile:", surface.get_smile(now, later))
    print("ATM spread (10d):", surface.get_spread(sought_point="atm", days=10))
    # [END README_QUICKSTART]


if __name__ == "__main__":
    main()
