"""
NYC Shootings - Shooting Incident Aggregator

Builds the grouped count tables of the shooting analysis.

Tables:
    - incidents_by_year
    - incidents_by_borough_year
    - incidents_by_borough_murder
    - murder_rate_by_borough
    - incidents_by_hour
    - incidents_by_jurisdiction

Usage:
    from nyc_shootings.datasets.shootings.aggregate import ShootingAggregator

    aggregator = ShootingAggregator()
    result = aggregator.run(processed_df, execution_date="2024-01-15")
    by_hour = aggregator.get_table("incidents_by_hour")
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from nyc_shootings.datasets.base import COUNT_COLUMN, AggregationDefinition, BaseAggregator
from nyc_shootings.datasets.shootings.preprocess import normalize_murder_flag
from nyc_shootings.shared.config import Settings

logger = logging.getLogger(__name__)


def add_occurrence_fields(
    table: pd.DataFrame,
    date_col: str = "occur_date",
    datetime_col: str = "occur_datetime",
) -> pd.DataFrame:
    """
    Add ``occur_year`` and ``occur_hour`` to a cleaned table.

    Both are nullable integers; rows whose timestamps did not parse get NA.
    """
    result = table.copy()
    result["occur_year"] = result[date_col].dt.year.astype("Int64")
    result["occur_hour"] = result[datetime_col].dt.hour.astype("Int64")
    return result


def murder_rate_by_borough(
    grouped: pd.DataFrame,
    borough_col: str = "borough",
    flag_col: str = "is_murder",
) -> pd.DataFrame:
    """
    Murder share per borough from counts grouped by borough and murder flag.

    Args:
        grouped: Output of count_by(table, [borough_col, flag_col])

    Returns:
        DataFrame with columns borough, total, murder_count, murder_percentage

    Raises:
        DivisionUndefinedError: If a borough's total count is zero
    """
    # Missing or unrecognised flags count as not flagged
    flags = normalize_murder_flag(grouped[flag_col]).fillna(False).astype(bool)

    totals = grouped.groupby(borough_col, observed=True, sort=True)[COUNT_COLUMN].sum()
    murders = (
        grouped[flags]
        .groupby(borough_col, observed=True)[COUNT_COLUMN]
        .sum()
        .reindex(totals.index, fill_value=0)
    )

    empty = totals[totals <= 0]
    if len(empty) > 0:
        raise DivisionUndefinedError(list(empty.index))

    rates = pd.DataFrame(
        {
            "total": totals.astype("int64"),
            "murder_count": murders.astype("int64"),
        }
    )
    rates["murder_percentage"] = rates["murder_count"] * 100 / rates["total"]
    rates = rates.reset_index()
    rates[borough_col] = rates[borough_col].astype(object)
    return rates


def murder_rate_mapping(rates: pd.DataFrame, borough_col: str = "borough") -> dict[Any, dict]:
    """Convert a murder rate table into ``{borough: {total, murder_count, murder_percentage}}``."""
    return {
        row[borough_col]: {
            "total": int(row["total"]),
            "murder_count": int(row["murder_count"]),
            "murder_percentage": float(row["murder_percentage"]),
        }
        for row in rates.to_dict(orient="records")
    }


class ShootingAggregator(BaseAggregator):
    """
    Aggregator for cleaned NYPD shooting incident data.

    Year and hour tables exclude rows whose timestamps did not parse, and the
    jurisdiction table excludes rows without a jurisdiction code; borough
    tables keep every record.
    """

    def __init__(self, config: Settings | None = None):
        """Initialize shooting aggregator."""
        super().__init__(config)

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shootings"

    def get_aggregation_definitions(self) -> list[AggregationDefinition]:
        """Return the count tables to compute."""
        return [
            AggregationDefinition(
                name="incidents_by_year",
                description="Incidents per calendar year",
                keys=["occur_year"],
                missing="exclude",
            ),
            AggregationDefinition(
                name="incidents_by_borough_year",
                description="Incidents per borough and year",
                keys=["borough", "occur_year"],
                missing="exclude",
            ),
            AggregationDefinition(
                name="incidents_by_borough_murder",
                description="Incidents per borough and statistical murder flag",
                keys=["borough", "is_murder"],
            ),
            AggregationDefinition(
                name="incidents_by_hour",
                description="Incidents per hour of day",
                keys=["occur_hour"],
                missing="exclude",
            ),
            AggregationDefinition(
                name="incidents_by_jurisdiction",
                description="Incidents per jurisdiction code",
                keys=["jurisdiction_code"],
                missing="exclude",
            ),
        ]

    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add occurrence year and hour."""
        return add_occurrence_fields(df)

    def build_derived_tables(self, tables: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame]:
        """Compute the murder share per borough."""
        return {"murder_rate_by_borough": murder_rate_by_borough(tables["incidents_by_borough_murder"])}


# =============================================================================
# Exception Classes
# =============================================================================


class DivisionUndefinedError(Exception):
    """Raised when a rate is requested for a group with no records."""

    def __init__(self, groups: list[Any]):
        self.groups = groups
        super().__init__(f"Rate undefined for groups with a total of zero: {groups}")


# =============================================================================
# Convenience Functions
# =============================================================================


def aggregate_shooting_data(
    df: pd.DataFrame,
    execution_date: str,
    config: Settings | None = None,
) -> dict[str, pd.DataFrame]:
    """
    Convenience function that returns every aggregation table by name.

    Raises the aggregation error if the run fails.
    """
    aggregator = ShootingAggregator(config)
    result = aggregator.run(df, execution_date)
    if not result.success:
        raise result.error or RuntimeError(result.error_message)
    return aggregator.get_tables()
