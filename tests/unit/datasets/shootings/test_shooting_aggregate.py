"""
Tests for shooting incident aggregation.
"""

import pandas as pd
import pytest

from nyc_shootings.datasets.base import COUNT_COLUMN, MissingRequiredFieldError, count_by
from nyc_shootings.datasets.shootings.aggregate import (
    DivisionUndefinedError,
    ShootingAggregator,
    add_occurrence_fields,
    aggregate_shooting_data,
    murder_rate_by_borough,
    murder_rate_mapping,
)
from nyc_shootings.datasets.shootings.preprocess import ShootingPreprocessor, find_missing


@pytest.fixture
def cleaned_data(sample_raw_data, test_config):
    """Sample incidents after cleaning."""
    preprocessor = ShootingPreprocessor(test_config)
    result = preprocessor.run(sample_raw_data, execution_date="2024-01-15")
    assert result.success
    return preprocessor.get_data()


class TestAddOccurrenceFields:
    """Tests for add_occurrence_fields."""

    def test_year_and_hour(self, cleaned_data):
        """Year and hour come from the parsed timestamps."""
        result = add_occurrence_fields(cleaned_data)

        assert result["occur_year"].tolist() == [2020, 2020, 2021, 2021, 2022, 2022]
        assert result["occur_hour"].tolist() == [9, 14, 23, 0, 18, 21]

    def test_hours_in_range(self, cleaned_data):
        """Hours are within a day."""
        hours = add_occurrence_fields(cleaned_data)["occur_hour"]

        assert hours.between(0, 23).all()

    def test_unparsed_timestamp_is_missing(self, cleaned_data):
        """Rows without a timestamp get missing year and hour."""
        cleaned_data.loc[0, "occur_datetime"] = pd.NaT
        cleaned_data.loc[0, "occur_date"] = pd.NaT

        result = add_occurrence_fields(cleaned_data)

        assert pd.isna(result["occur_hour"].iloc[0])
        assert pd.isna(result["occur_year"].iloc[0])


class TestMurderRateByBorough:
    """Tests for murder_rate_by_borough."""

    def test_bronx_example(self):
        """Two murders out of ten incidents is twenty percent."""
        grouped = pd.DataFrame(
            {"borough": ["BRONX", "BRONX"], "is_murder": [True, False], COUNT_COLUMN: [2, 8]}
        )

        rates = murder_rate_by_borough(grouped)

        assert rates.to_dict(orient="records") == [
            {"borough": "BRONX", "total": 10, "murder_count": 2, "murder_percentage": 20.0}
        ]

    def test_no_murders(self):
        """A borough with no murders has a zero percentage."""
        grouped = pd.DataFrame({"borough": ["QUEENS"], "is_murder": [False], COUNT_COLUMN: [5]})

        rates = murder_rate_by_borough(grouped)

        assert rates["murder_count"].iloc[0] == 0
        assert rates["murder_percentage"].iloc[0] == 0.0

    def test_text_flags(self):
        """Flags stored as text are understood."""
        grouped = pd.DataFrame(
            {
                "borough": ["BRONX", "BRONX", "QUEENS"],
                "is_murder": ["true", "false", "false"],
                COUNT_COLUMN: [1, 3, 4],
            }
        )

        mapping = murder_rate_mapping(murder_rate_by_borough(grouped))

        assert mapping["BRONX"]["murder_percentage"] == pytest.approx(25.0)
        assert mapping["QUEENS"]["murder_count"] == 0

    def test_flag_spellings(self):
        """YES/NO and T/F flags are counted the same way the cleaner reads them."""
        grouped = pd.DataFrame(
            {
                "borough": ["BRONX", "BRONX", "QUEENS", "QUEENS"],
                "is_murder": ["YES", "NO", "T", "F"],
                COUNT_COLUMN: [1, 1, 1, 1],
            }
        )

        rates = murder_rate_by_borough(grouped)

        assert rates["murder_count"].tolist() == [1, 1]
        assert rates["murder_percentage"].tolist() == [50.0, 50.0]

    def test_missing_and_unrecognised_flags(self):
        """Missing or unreadable flags count toward the total only."""
        grouped = pd.DataFrame(
            {
                "borough": ["BRONX", "BRONX", "BRONX"],
                "is_murder": ["Y", None, "maybe"],
                COUNT_COLUMN: [1, 2, 1],
            }
        )

        mapping = murder_rate_mapping(murder_rate_by_borough(grouped))

        assert mapping["BRONX"] == {"total": 4, "murder_count": 1, "murder_percentage": 25.0}

    def test_zero_total(self):
        """A borough with a total of zero has no defined rate."""
        grouped = pd.DataFrame({"borough": ["BRONX"], "is_murder": [False], COUNT_COLUMN: [0]})

        with pytest.raises(DivisionUndefinedError) as exc_info:
            murder_rate_by_borough(grouped)

        assert exc_info.value.groups == ["BRONX"]

    def test_bounds(self, cleaned_data):
        """Percentages lie in [0, 100] and murders never exceed the total."""
        rates = murder_rate_by_borough(count_by(cleaned_data, ["borough", "is_murder"]))

        assert rates["murder_percentage"].between(0, 100).all()
        assert (rates["murder_count"] <= rates["total"]).all()

    def test_sample_rates(self, cleaned_data):
        """Rates per borough on the sample incidents."""
        mapping = murder_rate_mapping(
            murder_rate_by_borough(count_by(cleaned_data, ["borough", "is_murder"]))
        )

        assert mapping["BRONX"] == {"total": 1, "murder_count": 1, "murder_percentage": 100.0}
        assert mapping["BROOKLYN"] == {"total": 2, "murder_count": 0, "murder_percentage": 0.0}
        assert set(mapping) == {"BRONX", "BROOKLYN", "MANHATTAN", "QUEENS", "STATEN ISLAND"}


class TestMissingJurisdiction:
    """A missing jurisdiction code is found and excluded, never imputed."""

    def test_found_and_excluded(self, cleaned_data):
        """The record appears in find_missing and not in the exclusive count."""
        missing = find_missing(cleaned_data, "jurisdiction_code")
        counts = count_by(cleaned_data, ["jurisdiction_code"], missing="exclude")

        assert len(missing) == 1
        assert counts[COUNT_COLUMN].sum() == len(cleaned_data) - 1
        assert counts["jurisdiction_code"].notna().all()


class TestShootingAggregator:
    """Tests for ShootingAggregator."""

    @pytest.fixture
    def aggregator(self, test_config):
        """Aggregator with dev config."""
        return ShootingAggregator(test_config)

    def test_run_success(self, aggregator, cleaned_data):
        """All tables are computed."""
        result = aggregator.run(cleaned_data, execution_date="2024-01-15")

        assert result.success is True
        assert set(aggregator.get_tables()) == {
            "incidents_by_year",
            "incidents_by_borough_year",
            "incidents_by_borough_murder",
            "murder_rate_by_borough",
            "incidents_by_hour",
            "incidents_by_jurisdiction",
        }

    def test_incidents_by_year(self, aggregator, cleaned_data):
        """Two incidents per year in the sample."""
        aggregator.run(cleaned_data, execution_date="2024-01-15")

        by_year = aggregator.get_table("incidents_by_year")

        assert by_year["occur_year"].tolist() == [2020, 2021, 2022]
        assert by_year[COUNT_COLUMN].tolist() == [2, 2, 2]

    def test_incidents_by_hour(self, aggregator, cleaned_data):
        """One incident per observed hour, sorted by hour."""
        aggregator.run(cleaned_data, execution_date="2024-01-15")

        by_hour = aggregator.get_table("incidents_by_hour")

        assert by_hour["occur_hour"].tolist() == [0, 9, 14, 18, 21, 23]
        assert by_hour[COUNT_COLUMN].sum() == 6

    def test_jurisdiction_excludes_missing(self, aggregator, cleaned_data):
        """The jurisdiction table leaves out the record without a code."""
        result = aggregator.run(cleaned_data, execution_date="2024-01-15")

        assert result.table_stats["incidents_by_jurisdiction"]["excluded"] == 1
        assert result.table_stats["incidents_by_borough_murder"]["excluded"] == 0

    def test_malformed_timestamps_excluded_from_hours(self, aggregator, cleaned_data):
        """Rows without a timestamp do not count toward any hour."""
        cleaned_data.loc[0, "occur_datetime"] = pd.NaT

        result = aggregator.run(cleaned_data, execution_date="2024-01-15")

        assert result.table_stats["incidents_by_hour"]["total_count"] == 5
        assert result.table_stats["incidents_by_year"]["total_count"] == 6

    def test_input_not_modified(self, aggregator, cleaned_data):
        """The cleaned table does not gain derived columns."""
        aggregator.run(cleaned_data, execution_date="2024-01-15")

        assert "occur_hour" not in cleaned_data.columns
        assert "occur_hour" in aggregator.get_data().columns


class TestAggregateShootingData:
    """Tests for the convenience function."""

    def test_returns_tables(self, cleaned_data, test_config):
        """Tables are returned by name."""
        tables = aggregate_shooting_data(cleaned_data, "2024-01-15", test_config)

        assert "murder_rate_by_borough" in tables

    def test_raises_on_failure(self, cleaned_data, test_config):
        """Failures are raised."""
        with pytest.raises(MissingRequiredFieldError):
            aggregate_shooting_data(cleaned_data.drop(columns=["borough"]), "2024-01-15", test_config)
