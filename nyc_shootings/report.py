"""
NYC Shootings - Report Pipeline

Runs ingestion, preprocessing, aggregation and the hourly trend fit in
sequence and bundles every output as plain data.

Usage:
    from nyc_shootings.report import run_shooting_report

    report = run_shooting_report()  # Reads config.source.url
    report = run_shooting_report("data/raw/shootings.csv")

    report.incidents_by_year
    report.murder_rate_by_borough
    report.hourly_trend.slope
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from nyc_shootings.analysis.trend import LinearTrendFit, fit_hourly_trend, hourly_trend_table
from nyc_shootings.datasets.base import AggregationResult, IngestionResult, PreprocessingResult
from nyc_shootings.datasets.shootings.aggregate import ShootingAggregator
from nyc_shootings.datasets.shootings.ingest import ShootingIngester
from nyc_shootings.datasets.shootings.preprocess import ShootingPreprocessor
from nyc_shootings.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass
class ShootingReport:
    """Every computed output of one pipeline run."""

    execution_date: str
    incidents_by_year: pd.DataFrame
    incidents_by_borough_year: pd.DataFrame
    incidents_by_borough_murder: pd.DataFrame
    murder_rate_by_borough: pd.DataFrame
    incidents_by_hour: pd.DataFrame
    incidents_by_jurisdiction: pd.DataFrame
    hourly_trend: LinearTrendFit
    hourly_trend_table: pd.DataFrame
    malformed_timestamps: pd.DataFrame
    missing_values: pd.DataFrame
    stage_results: dict[str, Any] = field(default_factory=dict)

    def tables(self) -> dict[str, pd.DataFrame]:
        """All output tables by name."""
        return {
            "incidents_by_year": self.incidents_by_year,
            "incidents_by_borough_year": self.incidents_by_borough_year,
            "incidents_by_borough_murder": self.incidents_by_borough_murder,
            "murder_rate_by_borough": self.murder_rate_by_borough,
            "incidents_by_hour": self.incidents_by_hour,
            "incidents_by_jurisdiction": self.incidents_by_jurisdiction,
            "hourly_trend_table": self.hourly_trend_table,
            "malformed_timestamps": self.malformed_timestamps,
            "missing_values": self.missing_values,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a dictionary of plain records."""
        return {
            "execution_date": self.execution_date,
            "tables": {
                name: _records(table) for name, table in self.tables().items()
            },
            "hourly_trend": self.hourly_trend.to_dict(),
            "stage_results": {
                name: result.to_dict() for name, result in self.stage_results.items()
            },
        }


def _records(table: pd.DataFrame) -> list[dict[str, Any]]:
    """Rows of a table as dictionaries with plain Python scalars."""
    plain = table.astype(object).where(table.notna(), None)
    return plain.to_dict(orient="records")


def _raise_for_result(
    stage: str,
    result: IngestionResult | PreprocessingResult | AggregationResult,
) -> None:
    """Re-raise a failed stage's error."""
    if result.success:
        return
    logger.error(f"Pipeline aborted at {stage}: {result.error_message}")
    if result.error is not None:
        raise result.error
    raise RuntimeError(f"{stage} failed: {result.error_message}")


def run_shooting_report(
    source: str | Path | None = None,
    config: Settings | None = None,
    execution_date: str | None = None,
) -> ShootingReport:
    """
    Run the full pipeline.

    Args:
        source: URL or local path of the CSV (defaults to config.source.url)
        config: Configuration object (uses default if not provided)
        execution_date: Execution date in YYYY-MM-DD format (defaults to today)

    Returns:
        ShootingReport

    Raises:
        DataUnavailableError: If the CSV cannot be read
        MalformedTimestampError: If timestamps do not parse and fail-fast is enabled
        InsufficientDataError: If the trend range has fewer than two distinct hours
    """
    config = config or get_config()
    execution_date = execution_date or datetime.now(UTC).strftime("%Y-%m-%d")

    # 1. Ingest
    ingester = ShootingIngester(source, config)
    ingestion = ingester.run(execution_date)
    _raise_for_result("ingestion", ingestion)
    raw = ingester.get_data()

    # 2. Preprocess
    preprocessor = ShootingPreprocessor(config)
    preprocessing = preprocessor.run(raw, execution_date)
    _raise_for_result("preprocessing", preprocessing)
    cleaned = preprocessor.get_data()

    # 3. Aggregate
    aggregator = ShootingAggregator(config)
    aggregation = aggregator.run(cleaned, execution_date)
    _raise_for_result("aggregation", aggregation)
    tables = aggregator.get_tables()

    # 4. Model
    by_hour = tables["incidents_by_hour"]
    trend = fit_hourly_trend(
        by_hour,
        start_hour=config.analysis.trend_start_hour,
        end_hour=config.analysis.trend_end_hour,
    )

    logger.info(
        f"Report complete: {preprocessing.rows_output} incidents analysed",
        extra={"execution_date": execution_date, "rows": preprocessing.rows_output},
    )

    return ShootingReport(
        execution_date=execution_date,
        incidents_by_year=tables["incidents_by_year"],
        incidents_by_borough_year=tables["incidents_by_borough_year"],
        incidents_by_borough_murder=tables["incidents_by_borough_murder"],
        murder_rate_by_borough=tables["murder_rate_by_borough"],
        incidents_by_hour=by_hour,
        incidents_by_jurisdiction=tables["incidents_by_jurisdiction"],
        hourly_trend=trend,
        hourly_trend_table=hourly_trend_table(by_hour, trend),
        malformed_timestamps=preprocessor.get_malformed_timestamps(),
        missing_values=preprocessor.get_missing_report(),
        stage_results={
            "ingestion": ingestion,
            "preprocessing": preprocessing,
            "aggregation": aggregation,
        },
    )
