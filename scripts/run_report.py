"""
Shooting Incident Report Script
Loads NYPD shooting incidents, cleans them, and prints the count tables
and the hourly trend fit.

Settings come from configs/ and NYCS_* environment variables, e.g.
NYCS_SOURCE__URL=data/raw/shootings.csv python scripts/run_report.py
"""

import logging
import sys

import pandas as pd

from nyc_shootings.datasets.shootings import DataUnavailableError
from nyc_shootings.report import run_shooting_report
from nyc_shootings.shared import configure_logging, get_config

logger = logging.getLogger(__name__)


def print_table(title: str, table: pd.DataFrame) -> None:
    """Print one table with a heading."""
    print(f"\n=== {title} ===")
    if table.empty:
        print("(no rows)")
    else:
        print(table.to_string(index=False))


def main() -> int:
    config = get_config()
    configure_logging(config)

    try:
        report = run_shooting_report(config=config)
    except DataUnavailableError as e:
        logger.error(f"Could not load shooting data: {e}")
        return 1

    print_table("Incidents by year", report.incidents_by_year)
    print_table("Incidents by borough and year", report.incidents_by_borough_year)
    print_table("Murder share by borough", report.murder_rate_by_borough)
    print_table("Incidents by hour", report.incidents_by_hour)
    print_table("Incidents by jurisdiction", report.incidents_by_jurisdiction)

    trend = report.hourly_trend
    print(
        f"\n=== Hourly trend (hours {trend.hour_min}-{trend.hour_max}) ===\n"
        f"count = {trend.intercept:.2f} + {trend.slope:.2f} * hour  "
        f"(R^2 = {trend.r_squared:.3f}, p = {trend.p_value:.3g})"
    )
    print_table("Observed vs predicted", report.hourly_trend_table)

    if not report.malformed_timestamps.empty:
        print_table("Malformed timestamps", report.malformed_timestamps)

    return 0


if __name__ == "__main__":
    sys.exit(main())
