"""
NYC Shootings - Shooting Incident Dataset

NYPD shooting incident data, from raw CSV to grouped counts.

Components:
    - ShootingIngester: Reads the CSV from NYC Open Data or a local path
    - ShootingPreprocessor: Cleans and retypes the incident table
    - ShootingAggregator: Builds the grouped count tables

Data Source:
    NYPD Shooting Incident Data (Historic)
    https://data.cityofnewyork.us/Public-Safety/NYPD-Shooting-Incident-Data-Historic-/833y-fsy8

Usage:
    from nyc_shootings.datasets.shootings import (
        ShootingAggregator,
        ShootingIngester,
        ShootingPreprocessor,
    )

    # Ingest
    ingester = ShootingIngester()
    result = ingester.run(execution_date="2024-01-15")
    raw_df = ingester.get_data()

    # Preprocess
    preprocessor = ShootingPreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    processed_df = preprocessor.get_data()

    # Aggregate
    aggregator = ShootingAggregator()
    result = aggregator.run(processed_df, execution_date="2024-01-15")
    by_hour = aggregator.get_table("incidents_by_hour")
"""

from nyc_shootings.datasets.shootings.aggregate import (
    DivisionUndefinedError,
    ShootingAggregator,
    add_occurrence_fields,
    aggregate_shooting_data,
    murder_rate_by_borough,
    murder_rate_mapping,
)
from nyc_shootings.datasets.shootings.ingest import (
    DataUnavailableError,
    ShootingIngester,
    load_shooting_data,
)
from nyc_shootings.datasets.shootings.preprocess import (
    MalformedTimestampError,
    ShootingPreprocessor,
    category_labels,
    coerce_categoricals,
    drop_demographic_and_location_columns,
    extend_categories,
    find_malformed_timestamps,
    find_missing,
    missing_value_summary,
    normalize_murder_flag,
    parse_datetime,
    parse_datetime_with_report,
    preprocess_shooting_data,
)

__all__ = [
    "ShootingIngester",
    "ShootingPreprocessor",
    "ShootingAggregator",
    "DataUnavailableError",
    "MalformedTimestampError",
    "DivisionUndefinedError",
    "load_shooting_data",
    "drop_demographic_and_location_columns",
    "parse_datetime",
    "parse_datetime_with_report",
    "find_malformed_timestamps",
    "coerce_categoricals",
    "category_labels",
    "extend_categories",
    "find_missing",
    "missing_value_summary",
    "normalize_murder_flag",
    "preprocess_shooting_data",
    "add_occurrence_fields",
    "murder_rate_by_borough",
    "murder_rate_mapping",
    "aggregate_shooting_data",
]
