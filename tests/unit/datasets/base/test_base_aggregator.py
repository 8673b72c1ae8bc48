"""
Tests for grouped counting and the base aggregator.
"""

import numpy as np
import pandas as pd
import pytest

from nyc_shootings.datasets.base import (
    COUNT_COLUMN,
    AggregationDefinition,
    BaseAggregator,
    GroupedCount,
    MissingRequiredFieldError,
    count_by,
    to_grouped_counts,
)


@pytest.fixture
def incidents():
    """Small incident table with one missing jurisdiction."""
    return pd.DataFrame(
        {
            "borough": ["BRONX", "BRONX", "QUEENS", "BROOKLYN", "BRONX"],
            "is_murder": [True, False, False, True, False],
            "jurisdiction_code": pd.array([0, 2, np.nan, 0, 0], dtype="Int64"),
        }
    )


class TestCountBy:
    """Tests for count_by."""

    def test_counts_sum_to_rows(self, incidents):
        """Every record lands in exactly one group."""
        for keys in (["borough"], ["is_murder"], ["borough", "is_murder"], ["jurisdiction_code"]):
            counts = count_by(incidents, keys)
            assert counts[COUNT_COLUMN].sum() == len(incidents), keys

    def test_identical_keys_collapse(self):
        """Two records with the same key form one group of two."""
        counts = count_by(pd.DataFrame({"borough": ["BRONX", "BRONX"]}), ["borough"])

        assert len(counts) == 1
        assert counts[COUNT_COLUMN].iloc[0] == 2

    def test_distinct_keys_separate(self):
        """Two records with different keys form two groups of one."""
        counts = count_by(pd.DataFrame({"borough": ["BRONX", "QUEENS"]}), ["borough"])

        assert counts[COUNT_COLUMN].tolist() == [1, 1]

    def test_output_columns(self, incidents):
        """One column per key in order, then the count."""
        counts = count_by(incidents, ["borough", "is_murder"])

        assert list(counts.columns) == ["borough", "is_murder", COUNT_COLUMN]
        assert counts[COUNT_COLUMN].dtype == "int64"

    def test_counts_values(self, incidents):
        """Counts per borough and murder flag."""
        counts = count_by(incidents, ["borough", "is_murder"])
        lookup = {(b, m): c for b, m, c in counts.itertuples(index=False)}

        assert lookup == {
            ("BRONX", False): 2,
            ("BRONX", True): 1,
            ("BROOKLYN", True): 1,
            ("QUEENS", False): 1,
        }

    def test_categorical_keys_not_expanded(self, incidents):
        """Unobserved category combinations are not emitted."""
        table = incidents.astype({"borough": "category", "is_murder": "category"})

        counts = count_by(table, ["borough", "is_murder"])

        assert len(counts) == 4
        assert (counts[COUNT_COLUMN] > 0).all()

    def test_missing_included_by_default(self, incidents):
        """Missing key values form their own group."""
        counts = count_by(incidents, ["jurisdiction_code"])

        assert counts[COUNT_COLUMN].sum() == 5
        assert counts["jurisdiction_code"].isna().sum() == 1

    def test_missing_excluded(self, incidents):
        """Excluded rows do not appear in any group."""
        counts = count_by(incidents, ["jurisdiction_code"], missing="exclude")

        assert counts[COUNT_COLUMN].sum() == 4
        assert counts["jurisdiction_code"].notna().all()

    def test_missing_raises(self, incidents):
        """The raise policy reports the offending rows."""
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            count_by(incidents, ["borough", "jurisdiction_code"], missing="raise")

        assert exc_info.value.column == "jurisdiction_code"
        assert len(exc_info.value.rows) == 1

    def test_raise_without_missing(self, incidents):
        """The raise policy is silent when nothing is missing."""
        counts = count_by(incidents, ["borough"], missing="raise")

        assert counts[COUNT_COLUMN].sum() == 5

    def test_unknown_key(self, incidents):
        """Grouping on an absent column is rejected."""
        with pytest.raises(MissingRequiredFieldError, match="occur_year"):
            count_by(incidents, ["occur_year"])

    def test_no_keys(self, incidents):
        """At least one key is required."""
        with pytest.raises(ValueError):
            count_by(incidents, [])

    def test_input_not_modified(self, incidents):
        """The input table is unchanged."""
        before = incidents.copy()
        count_by(incidents, ["jurisdiction_code"], missing="exclude")
        pd.testing.assert_frame_equal(incidents, before)


class TestToGroupedCounts:
    """Tests for to_grouped_counts."""

    def test_records(self, incidents):
        """Rows become GroupedCount records with tuple keys."""
        counts = count_by(incidents, ["borough"])

        records = to_grouped_counts(counts, ["borough"])

        assert records[0] == GroupedCount(keys=("BRONX",), count=3)
        assert sum(r.count for r in records) == 5

    def test_missing_key_is_none(self, incidents):
        """Missing key values become None."""
        counts = count_by(incidents, ["jurisdiction_code"])

        records = to_grouped_counts(counts, ["jurisdiction_code"])

        assert GroupedCount(keys=(None,), count=1) in records


class BoroughAggregator(BaseAggregator):
    """Minimal aggregator for exercising the base class."""

    def get_dataset_name(self) -> str:
        return "test"

    def get_aggregation_definitions(self) -> list[AggregationDefinition]:
        return [
            AggregationDefinition("by_borough", "Per borough", ["borough"]),
            AggregationDefinition(
                "by_jurisdiction", "Per jurisdiction", ["jurisdiction_code"], missing="exclude"
            ),
        ]


class TestBaseAggregator:
    """Tests for BaseAggregator.run."""

    def test_run(self, incidents, test_config):
        """Each definition produces a table with stats."""
        aggregator = BoroughAggregator(test_config)

        result = aggregator.run(incidents, execution_date="2024-01-15")

        assert result.success is True
        assert result.tables_computed == 2
        assert result.table_stats["by_borough"] == {"rows": 3, "total_count": 5, "excluded": 0}
        assert result.table_stats["by_jurisdiction"]["excluded"] == 1

    def test_get_table(self, incidents, test_config):
        """Tables are available by name after a run."""
        aggregator = BoroughAggregator(test_config)
        aggregator.run(incidents, execution_date="2024-01-15")

        assert len(aggregator.get_table("by_borough")) == 3
        assert set(aggregator.get_tables()) == {"by_borough", "by_jurisdiction"}

    def test_unknown_table(self, incidents, test_config):
        """Unknown table names raise KeyError."""
        aggregator = BoroughAggregator(test_config)
        aggregator.run(incidents, execution_date="2024-01-15")

        with pytest.raises(KeyError):
            aggregator.get_table("by_precinct")

    def test_run_failure(self, incidents, test_config):
        """A missing key column fails the run without raising."""
        aggregator = BoroughAggregator(test_config)

        result = aggregator.run(incidents.drop(columns=["borough"]), execution_date="2024-01-15")

        assert result.success is False
        assert isinstance(result.error, MissingRequiredFieldError)
        assert result.tables_computed == 0
