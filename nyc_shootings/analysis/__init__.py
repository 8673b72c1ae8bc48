from nyc_shootings.analysis.trend import (
    InsufficientDataError,
    LinearTrendFit,
    fit_hourly_trend,
    hourly_trend_table,
)

__all__ = [
    "LinearTrendFit",
    "InsufficientDataError",
    "fit_hourly_trend",
    "hourly_trend_table",
]
