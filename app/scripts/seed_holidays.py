"""
Seed the holiday calendar with default US holidays.

Usage:
    python -m app.scripts.seed_holidays                  # current year + configured years ahead
    python -m app.scripts.seed_holidays --years 2025 2026
"""

import argparse
from datetime import date

from app import create_app
from app.scheduling.factory import build_services


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default holidays (insert-if-absent).")
    parser.add_argument("--years", type=int, nargs="+", default=None, help="Years to seed")
    args = parser.parse_args()

    app = create_app()
    years = args.years
    if not years:
        this_year = date.today().year
        years = list(range(this_year, this_year + app.config.get("HOLIDAY_SEED_YEARS_AHEAD", 2) + 1))

    with app.app_context():
        inserted = build_services(app.config).holidays.seed_default_holidays(years)

    print(f"Seeded {inserted} holiday(s) for {', '.join(str(y) for y in years)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
