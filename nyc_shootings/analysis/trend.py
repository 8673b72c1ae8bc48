"""
NYC Shootings - Hourly Trend Model

Ordinary least-squares fit of incident count against hour of day over a
contiguous hour range (by default 9 through 23, from the morning minimum to
midnight).

Usage:
    from nyc_shootings.analysis.trend import fit_hourly_trend

    fit = fit_hourly_trend(by_hour)  # count_by(table, ["occur_hour"])
    print(fit.slope, fit.r_squared)
    fit.predict(18)
    fit.predictions()  # DataFrame of hour, predicted_count
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from nyc_shootings.datasets.base import COUNT_COLUMN

logger = logging.getLogger(__name__)

DEFAULT_START_HOUR = 9
DEFAULT_END_HOUR = 23


@dataclass(frozen=True)
class LinearTrendFit:
    """Fitted simple linear regression of count on hour."""

    slope: float
    intercept: float
    r_value: float
    p_value: float
    stderr: float
    intercept_stderr: float
    hour_min: int
    hour_max: int
    n_points: int

    @property
    def r_squared(self) -> float:
        """Coefficient of determination."""
        return self.r_value**2

    def predict(self, hour: Any) -> Any:
        """
        Predicted count at one hour or an array of hours.

        Predictions are only meaningful inside [hour_min, hour_max]; outside
        it they are still computed, with a warning.
        """
        hours = np.asarray(hour, dtype=float)
        outside = (hours < self.hour_min) | (hours > self.hour_max)
        if np.any(outside):
            logger.warning(
                f"Extrapolating hourly trend outside fitted range "
                f"[{self.hour_min}, {self.hour_max}]",
                extra={"hours": np.atleast_1d(hours)[np.atleast_1d(outside)].tolist()},
            )
        predicted = self.intercept + self.slope * hours
        return float(predicted) if predicted.ndim == 0 else predicted

    def predictions(self, hours: Any = None) -> pd.DataFrame:
        """Predicted counts per hour, over the fitted range by default."""
        if hours is None:
            hours = np.arange(self.hour_min, self.hour_max + 1)
        hours = np.atleast_1d(np.asarray(hours))
        return pd.DataFrame({"hour": hours, "predicted_count": self.predict(hours)})

    def to_dict(self) -> dict[str, Any]:
        """Convert fit to dictionary."""
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "r_value": self.r_value,
            "r_squared": self.r_squared,
            "p_value": self.p_value,
            "stderr": self.stderr,
            "intercept_stderr": self.intercept_stderr,
            "hour_min": self.hour_min,
            "hour_max": self.hour_max,
            "n_points": self.n_points,
        }


def _select_hours(
    hour_counts: pd.DataFrame,
    start_hour: int,
    end_hour: int,
    hour_col: str,
    count_col: str,
) -> pd.DataFrame:
    """Rows of hour_counts inside [start_hour, end_hour], sorted by hour."""
    if start_hour > end_hour:
        raise ValueError(f"start_hour ({start_hour}) must not exceed end_hour ({end_hour})")

    data = hour_counts[[hour_col, count_col]].dropna()
    data = data[(data[hour_col] >= start_hour) & (data[hour_col] <= end_hour)]
    return data.sort_values(hour_col).reset_index(drop=True)


def fit_hourly_trend(
    hour_counts: pd.DataFrame,
    start_hour: int = DEFAULT_START_HOUR,
    end_hour: int = DEFAULT_END_HOUR,
    hour_col: str = "occur_hour",
    count_col: str = COUNT_COLUMN,
) -> LinearTrendFit:
    """
    Fit count ~ hour by ordinary least squares over [start_hour, end_hour].

    Args:
        hour_counts: Table with one row per hour and its count
        start_hour: First hour of the fitted range (inclusive)
        end_hour: Last hour of the fitted range (inclusive)

    Returns:
        LinearTrendFit

    Raises:
        InsufficientDataError: If fewer than two distinct hours fall in the range
    """
    data = _select_hours(hour_counts, start_hour, end_hour, hour_col, count_col)

    distinct_hours = data[hour_col].nunique()
    if distinct_hours < 2:
        raise InsufficientDataError(distinct_hours, start_hour, end_hour)

    x = data[hour_col].to_numpy(dtype=float)
    y = data[count_col].to_numpy(dtype=float)
    regression = scipy_stats.linregress(x, y)

    fit = LinearTrendFit(
        slope=float(regression.slope),
        intercept=float(regression.intercept),
        r_value=float(regression.rvalue),
        p_value=float(regression.pvalue),
        stderr=float(regression.stderr),
        intercept_stderr=float(regression.intercept_stderr),
        hour_min=int(x.min()),
        hour_max=int(x.max()),
        n_points=len(data),
    )

    logger.info(
        f"Fitted hourly trend over hours {fit.hour_min}-{fit.hour_max}: "
        f"slope={fit.slope:.3f}, r_squared={fit.r_squared:.3f}",
        extra=fit.to_dict(),
    )

    return fit


def hourly_trend_table(
    hour_counts: pd.DataFrame,
    fit: LinearTrendFit,
    hour_col: str = "occur_hour",
    count_col: str = COUNT_COLUMN,
) -> pd.DataFrame:
    """Observed count, predicted count and residual for each fitted hour."""
    data = _select_hours(hour_counts, fit.hour_min, fit.hour_max, hour_col, count_col)
    table = pd.DataFrame(
        {
            "hour": data[hour_col].astype("int64"),
            "count": data[count_col].astype("int64"),
        }
    )
    table["predicted_count"] = fit.predict(table["hour"].to_numpy())
    table["residual"] = table["count"] - table["predicted_count"]
    return table


# =============================================================================
# Exception Classes
# =============================================================================


class InsufficientDataError(Exception):
    """Raised when a regression has fewer than two distinct predictor values."""

    def __init__(self, distinct_values: int, start_hour: int, end_hour: int):
        self.distinct_values = distinct_values
        super().__init__(
            f"Need at least 2 distinct hours in [{start_hour}, {end_hour}] to fit a trend, "
            f"found {distinct_values}"
        )
