"""
NYC Shootings

Cleaning, aggregation and hourly trend analysis of the NYPD Shooting
Incident Data (Historic).

Usage:
    from nyc_shootings import run_shooting_report

    report = run_shooting_report()
"""

from nyc_shootings.analysis.trend import (
    InsufficientDataError,
    LinearTrendFit,
    fit_hourly_trend,
    hourly_trend_table,
)
from nyc_shootings.datasets.base import GroupedCount, MissingRequiredFieldError, count_by
from nyc_shootings.datasets.shootings import (
    DataUnavailableError,
    DivisionUndefinedError,
    MalformedTimestampError,
    ShootingAggregator,
    ShootingIngester,
    ShootingPreprocessor,
    coerce_categoricals,
    drop_demographic_and_location_columns,
    find_missing,
    load_shooting_data,
    murder_rate_by_borough,
    parse_datetime,
)
from nyc_shootings.report import ShootingReport, run_shooting_report

__version__ = "0.1.0"

__all__ = [
    "run_shooting_report",
    "ShootingReport",
    "ShootingIngester",
    "ShootingPreprocessor",
    "ShootingAggregator",
    "LinearTrendFit",
    "GroupedCount",
    "load_shooting_data",
    "drop_demographic_and_location_columns",
    "parse_datetime",
    "coerce_categoricals",
    "find_missing",
    "count_by",
    "murder_rate_by_borough",
    "fit_hourly_trend",
    "hourly_trend_table",
    "DataUnavailableError",
    "MalformedTimestampError",
    "MissingRequiredFieldError",
    "DivisionUndefinedError",
    "InsufficientDataError",
]
