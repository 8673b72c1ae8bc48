"""
NYC Shootings - Base Aggregator

Abstract base class for dataset aggregators. Provides a consistent interface
for turning a cleaned table into grouped count tables with:
- Declarative aggregation definitions
- Explicit missing-key policies
- Per-table statistics

Usage:
    class ShootingAggregator(BaseAggregator):
        def get_aggregation_definitions(self) -> list[AggregationDefinition]:
            return [AggregationDefinition("incidents_by_year", "...", ["occur_year"])]
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd

from nyc_shootings.datasets.base.preprocessor import MissingRequiredFieldError
from nyc_shootings.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

MissingPolicy = Literal["include", "exclude", "raise"]

COUNT_COLUMN = "count"


@dataclass(frozen=True)
class GroupedCount:
    """Count of records sharing one grouping key."""

    keys: tuple[Any, ...]
    count: int


@dataclass
class AggregationDefinition:
    """Definition of a grouped count table."""

    name: str
    description: str
    keys: list[str]
    missing: MissingPolicy = "include"


@dataclass
class AggregationResult:
    """Result of an aggregation run."""

    dataset: str
    execution_date: str
    rows_input: int
    tables_computed: int
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    error: Exception | None = field(default=None, repr=False)
    table_stats: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "dataset": self.dataset,
            "execution_date": self.execution_date,
            "rows_input": self.rows_input,
            "tables_computed": self.tables_computed,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "table_stats": self.table_stats,
        }


def count_by(
    table: pd.DataFrame,
    keys: Sequence[str],
    missing: MissingPolicy = "include",
) -> pd.DataFrame:
    """
    Count rows per distinct combination of key values.

    Only combinations present in the data are returned; categorical keys are
    never expanded to their full cross product.

    Args:
        table: Input DataFrame
        keys: Ordered column names to group by
        missing: What to do with rows that have a missing key value:
            "include" keeps them as their own group, so counts sum to len(table);
            "exclude" drops them first;
            "raise" raises MissingRequiredFieldError for the first key with gaps

    Returns:
        DataFrame with one column per key plus "count"
    """
    keys = list(keys)
    if not keys:
        raise ValueError("count_by requires at least one key column")

    absent = [k for k in keys if k not in table.columns]
    if absent:
        raise MissingRequiredFieldError(absent[0])

    key_missing = table[keys].isna()
    if key_missing.to_numpy().any():
        if missing == "raise":
            column = next(k for k in keys if key_missing[k].any())
            raise MissingRequiredFieldError(column, table[key_missing[column]].copy())
        if missing == "exclude":
            excluded = key_missing.any(axis=1)
            logger.info(
                f"Excluding {int(excluded.sum())} records with missing {keys} from count",
                extra={"keys": keys, "excluded": int(excluded.sum())},
            )
            table = table[~excluded]

    counts = (
        table.groupby(keys, observed=True, dropna=(missing != "include"), sort=True)
        .size()
        .reset_index(name=COUNT_COLUMN)
    )
    counts[COUNT_COLUMN] = counts[COUNT_COLUMN].astype("int64")
    return counts


def to_grouped_counts(counts: pd.DataFrame, keys: Sequence[str]) -> list[GroupedCount]:
    """Convert a count table into GroupedCount records, in row order."""
    keys = list(keys)
    return [
        GroupedCount(keys=tuple(None if pd.isna(v) else v for v in row[:-1]), count=int(row[-1]))
        for row in counts[keys + [COUNT_COLUMN]].itertuples(index=False, name=None)
    ]


class BaseAggregator(ABC):
    """
    Abstract base class for aggregation.

    Subclasses must implement:
    - get_dataset_name(): Return the dataset name
    - get_aggregation_definitions(): Return the count tables to compute

    Subclasses may override prepare() to add derived key columns and
    build_derived_tables() to compute tables from other tables.
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the aggregator.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()
        self._tables: dict[str, pd.DataFrame] = {}
        self._table_stats: dict[str, dict[str, Any]] = {}

    @abstractmethod
    def get_dataset_name(self) -> str:
        """Get the dataset name."""
        pass

    @abstractmethod
    def get_aggregation_definitions(self) -> list[AggregationDefinition]:
        """Get the list of count tables to compute."""
        pass

    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add derived columns needed as grouping keys."""
        return df

    def build_derived_tables(self, tables: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame]:
        """Compute additional tables from the count tables."""
        return {}

    def run(
        self,
        df: pd.DataFrame,
        execution_date: str,
    ) -> AggregationResult:
        """
        Run every aggregation definition against the cleaned table.

        Args:
            df: Cleaned DataFrame
            execution_date: Execution date in YYYY-MM-DD format

        Returns:
            AggregationResult with details about the tables computed
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()
        rows_input = len(df)

        logger.info(
            f"Starting aggregation for {dataset_name}",
            extra={
                "dataset": dataset_name,
                "execution_date": execution_date,
                "rows_input": rows_input,
            },
        )

        try:
            self._tables = {}
            self._table_stats = {}

            prepared = self.prepare(df)

            for definition in self.get_aggregation_definitions():
                table = count_by(prepared, definition.keys, missing=definition.missing)
                self._tables[definition.name] = table
                self._record_stats(definition.name, table, rows_input)

            for name, table in self.build_derived_tables(dict(self._tables)).items():
                self._tables[name] = table
                self._table_stats[name] = {"rows": len(table)}

            duration = time.time() - start_time

            result = AggregationResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_input=rows_input,
                tables_computed=len(self._tables),
                duration_seconds=duration,
                success=True,
                table_stats=self._table_stats,
            )

            logger.info(
                f"Aggregation complete for {dataset_name}: {len(self._tables)} tables",
                extra=result.to_dict(),
            )

            self._data = prepared

            return result

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Aggregation failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return AggregationResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_input=rows_input,
                tables_computed=0,
                duration_seconds=duration,
                success=False,
                error_message=str(e),
                error=e,
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the prepared table the counts were computed from."""
        return getattr(self, "_data", None)

    def get_table(self, name: str) -> pd.DataFrame:
        """Get a computed table by name."""
        if name not in self._tables:
            raise KeyError(f"Unknown table '{name}'. Available: {sorted(self._tables)}")
        return self._tables[name]

    def get_tables(self) -> dict[str, pd.DataFrame]:
        """Get all computed tables."""
        return dict(self._tables)

    def _record_stats(self, name: str, table: pd.DataFrame, rows_input: int) -> None:
        """Record row and total counts for a table."""
        total = int(table[COUNT_COLUMN].sum())
        self._table_stats[name] = {
            "rows": len(table),
            "total_count": total,
            "excluded": rows_input - total,
        }
        if total != rows_input:
            logger.debug(f"Table '{name}' covers {total} of {rows_input} records")
