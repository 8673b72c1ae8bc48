"""
NYC Shootings - Shooting Incident Preprocessor

Cleans and retypes NYPD shooting incident data.

Transformations:
    - Demographic and geocoordinate columns dropped
    - Column renaming to standardized names
    - Murder flag normalized to a nullable boolean
    - Rows with a blank required field excluded
    - Occurrence date/time parsing, malformed values reported
    - Categorical coercion of label-like columns

Every cleaning function takes a DataFrame and returns a new one; none of them
modify their input.

Usage:
    from nyc_shootings.datasets.shootings.preprocess import ShootingPreprocessor

    preprocessor = ShootingPreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    processed_df = preprocessor.get_data()
    malformed = preprocessor.get_malformed_timestamps()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import numpy as np
import pandas as pd

from nyc_shootings.datasets.base import BasePreprocessor, MissingRequiredFieldError
from nyc_shootings.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

# =============================================================================
# Dataset Configuration (loaded from shootings.yaml)
# =============================================================================
DATASET_CONFIG = get_dataset_config("shootings")

PARSING_CONFIG = DATASET_CONFIG.get("parsing", {})
DATE_FORMAT = PARSING_CONFIG.get("date_format", "%m/%d/%Y")
TIME_FORMAT = PARSING_CONFIG.get("time_format", "%H:%M:%S")
FRACTIONAL_TIME_FORMAT = PARSING_CONFIG.get("fractional_time_format", "%H:%M:%S.%f")

COLUMNS_CONFIG = DATASET_CONFIG.get("columns", {})
DEMOGRAPHIC_AND_LOCATION_COLUMNS = COLUMNS_CONFIG.get(
    "dropped",
    [
        "PERP_AGE_GROUP",
        "PERP_SEX",
        "PERP_RACE",
        "VIC_AGE_GROUP",
        "VIC_SEX",
        "VIC_RACE",
        "X_COORD_CD",
        "Y_COORD_CD",
        "Latitude",
        "Longitude",
        "Lon_Lat",
    ],
)

MURDER_FLAG_TRUE = {"TRUE", "T", "Y", "YES", "1"}
MURDER_FLAG_FALSE = {"FALSE", "F", "N", "NO", "0"}


# =============================================================================
# Cleaning Functions
# =============================================================================


def drop_demographic_and_location_columns(table: pd.DataFrame) -> pd.DataFrame:
    """
    Remove victim/suspect demographic and geocoordinate columns.

    Names are matched case-insensitively. Row count and the order of the
    remaining columns are unchanged, and applying it twice is the same as
    applying it once.
    """
    dropped = {name.upper() for name in DEMOGRAPHIC_AND_LOCATION_COLUMNS}
    keep = [c for c in table.columns if str(c).upper() not in dropped]
    return table[keep].copy()


def _as_text(values: pd.Series, fmt: str) -> pd.Series:
    """Text form of a date/time column; already-parsed values are re-formatted."""
    if pd.api.types.is_datetime64_any_dtype(values):
        return values.dt.strftime(fmt).astype("string")
    return values.astype("string").str.strip()


def _parse_occurrence(
    table: pd.DataFrame,
    date_col: str,
    time_col: str,
) -> tuple[pd.Series, pd.Series, pd.Series, pd.Series]:
    """Return (date_text, time_text, dates, timestamps) for a table."""
    date_text = _as_text(table[date_col], DATE_FORMAT)
    time_text = _as_text(table[time_col], TIME_FORMAT)

    dates = pd.to_datetime(date_text, format=DATE_FORMAT, errors="coerce")

    combined = date_text.str.cat(time_text, sep=" ")
    stamps = pd.to_datetime(combined, format=f"{DATE_FORMAT} {TIME_FORMAT}", errors="coerce")

    # Fractional seconds are optional
    retry = stamps.isna() & combined.notna()
    if retry.any():
        fractional = pd.to_datetime(
            combined[retry],
            format=f"{DATE_FORMAT} {FRACTIONAL_TIME_FORMAT}",
            errors="coerce",
        )
        stamps = stamps.where(~retry, fractional)

    return date_text, time_text, dates, stamps


def _require_columns(table: pd.DataFrame, *columns: str) -> None:
    for col in columns:
        if col not in table.columns:
            raise MissingRequiredFieldError(col)


def _malformed_rows(
    table: pd.DataFrame,
    date_col: str,
    time_col: str,
    parsed: tuple[pd.Series, pd.Series, pd.Series, pd.Series],
) -> pd.DataFrame:
    """Rows of table whose parsed values are NaT although their text is present."""
    date_text, time_text, dates, stamps = parsed

    bad_date = date_text.notna() & dates.isna()
    bad_stamp = date_text.notna() & time_text.notna() & stamps.isna() & ~bad_date
    malformed = bad_date | bad_stamp

    errors = np.select(
        [bad_date[malformed], bad_stamp[malformed]],
        [f"{date_col} does not match {DATE_FORMAT}", f"{time_col} does not match {TIME_FORMAT}"],
        default="",
    )
    return table[malformed].assign(error=errors)


def _with_parsed(
    table: pd.DataFrame,
    date_col: str,
    time_col: str,
    datetime_col: str,
    parsed: tuple[pd.Series, pd.Series, pd.Series, pd.Series],
) -> pd.DataFrame:
    """Copy of table with the parsed date and the combined timestamp."""
    _, _, dates, stamps = parsed

    result = table.copy()
    result[date_col] = dates
    if datetime_col in result.columns:
        result[datetime_col] = stamps
    else:
        result.insert(result.columns.get_loc(time_col) + 1, datetime_col, stamps)
    return result


def parse_datetime(
    table: pd.DataFrame,
    date_col: str = "occur_date",
    time_col: str = "occur_time",
    datetime_col: str = "occur_datetime",
) -> pd.DataFrame:
    """
    Parse occurrence date and date-time.

    ``date_col`` is parsed as month/day/4-digit-year; ``date_col`` and
    ``time_col`` together are parsed as a 24-hour date-time with optional
    fractional seconds and stored in ``datetime_col``, placed right after
    ``time_col``. Rows that do not match keep NaT in the parsed columns and
    are not dropped; use find_malformed_timestamps() to list them.
    """
    _require_columns(table, date_col, time_col)
    parsed = _parse_occurrence(table, date_col, time_col)
    return _with_parsed(table, date_col, time_col, datetime_col, parsed)


def find_malformed_timestamps(
    table: pd.DataFrame,
    date_col: str = "occur_date",
    time_col: str = "occur_time",
) -> pd.DataFrame:
    """
    List rows whose occurrence date or time is present but does not parse.

    Blank cells are missing values, not malformed ones; see find_missing().

    Returns:
        The offending rows with an added ``error`` column
    """
    _require_columns(table, date_col, time_col)
    parsed = _parse_occurrence(table, date_col, time_col)
    return _malformed_rows(table, date_col, time_col, parsed)


def parse_datetime_with_report(
    table: pd.DataFrame,
    date_col: str = "occur_date",
    time_col: str = "occur_time",
    datetime_col: str = "occur_datetime",
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Parse occurrence timestamps once and list the malformed rows.

    Returns:
        Tuple of (parse_datetime() output, find_malformed_timestamps() output)
    """
    _require_columns(table, date_col, time_col)
    parsed = _parse_occurrence(table, date_col, time_col)
    return (
        _with_parsed(table, date_col, time_col, datetime_col, parsed),
        _malformed_rows(table, date_col, time_col, parsed),
    )


def coerce_categoricals(table: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """
    Reinterpret columns as categoricals whose labels come from the data.

    Missing cells stay missing (NA), a category of their own that is never
    merged with literal placeholders such as "UNKNOWN" or "(null)".
    """
    result = table.copy()
    for col in columns:
        if col not in result.columns:
            raise MissingRequiredFieldError(col)
        result[col] = result[col].astype("category")
    return result


def category_labels(values: pd.Series) -> dict[Any, int]:
    """
    Map each label of a categorical column to its integer code.

    Missing values appear as ``None -> -1``, so the mapping has one entry per
    distinct value including missing.
    """
    if not isinstance(values.dtype, pd.CategoricalDtype):
        values = values.astype("category")
    labels: dict[Any, int] = {label: code for code, label in enumerate(values.cat.categories)}
    if values.isna().any():
        labels[None] = -1
    return labels


def extend_categories(table: pd.DataFrame, column: str, labels: Iterable[Any]) -> pd.DataFrame:
    """Allow previously unseen labels in a categorical column."""
    if column not in table.columns:
        raise MissingRequiredFieldError(column)
    current = table[column]
    if not isinstance(current.dtype, pd.CategoricalDtype):
        current = current.astype("category")
    new_labels = [label for label in dict.fromkeys(labels) if label not in current.cat.categories]

    result = table.copy()
    result[column] = current.cat.add_categories(new_labels) if new_labels else current
    return result


def find_missing(table: pd.DataFrame, column: str) -> pd.DataFrame:
    """Return the rows with a missing value in ``column``, for inspection."""
    if column not in table.columns:
        raise MissingRequiredFieldError(column)
    return table[table[column].isna()].copy()


def missing_value_summary(table: pd.DataFrame) -> pd.DataFrame:
    """Missing-value count and ratio for every column."""
    counts = table.isna().sum()
    ratios = counts / len(table) if len(table) else counts.astype(float)
    return pd.DataFrame(
        {
            "column": counts.index,
            "missing_count": counts.to_numpy(dtype="int64"),
            "missing_ratio": ratios.to_numpy(dtype="float64"),
        }
    )


def normalize_murder_flag(values: pd.Series) -> pd.Series:
    """
    Convert a murder flag column to a nullable boolean.

    Accepts true/false, Y/N, yes/no and 1/0 in any case. Blank and
    unrecognised values become NA.
    """
    if pd.api.types.is_bool_dtype(values) or pd.api.types.is_numeric_dtype(values):
        return values.astype("boolean")

    text = values.astype("string").str.strip().str.upper()
    flags = pd.Series(pd.NA, index=values.index, dtype="boolean")
    flags[text.isin(MURDER_FLAG_TRUE).fillna(False).astype(bool)] = True
    flags[text.isin(MURDER_FLAG_FALSE).fillna(False).astype(bool)] = False
    return flags


class ShootingPreprocessor(BasePreprocessor):
    """
    Preprocessor for NYPD shooting incident data.

    Produces the working incident table: raw demographic/geo columns removed,
    snake_case names, parsed occurrence timestamps and categorical labels.
    """

    COLUMN_MAPPINGS = COLUMNS_CONFIG.get(
        "renamed",
        {
            "INCIDENT_KEY": "incident_key",
            "OCCUR_DATE": "occur_date",
            "OCCUR_TIME": "occur_time",
            "BORO": "borough",
            "PRECINCT": "precinct",
            "JURISDICTION_CODE": "jurisdiction_code",
            "LOCATION_DESC": "location_description",
            "LOC_OF_OCCUR_DESC": "location_of_occurrence",
            "LOC_CLASSFCTN_DESC": "location_classification",
            "STATISTICAL_MURDER_FLAG": "is_murder",
        },
    )

    DTYPE_MAPPINGS = {
        "precinct": "int",
        "jurisdiction_code": "int",
    }

    CATEGORICAL_COLUMNS = COLUMNS_CONFIG.get(
        "categorical",
        [
            "incident_key",
            "borough",
            "precinct",
            "jurisdiction_code",
            "location_description",
            "location_of_occurrence",
            "location_classification",
            "is_murder",
        ],
    )

    # Fields every retained record must have
    NON_MISSING_COLUMNS = COLUMNS_CONFIG.get(
        "required",
        ["borough", "occur_date", "occur_time", "is_murder"],
    )

    REQUIRED_COLUMNS = [
        "incident_key",
        "occur_date",
        "occur_time",
        "occur_datetime",
        "borough",
        "is_murder",
    ]

    def __init__(self, config: Settings | None = None):
        """Initialize shooting preprocessor."""
        super().__init__(config)
        self._malformed = pd.DataFrame()
        self._missing_report = pd.DataFrame()

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shootings"

    def get_required_columns(self) -> list[str]:
        """Return required output columns."""
        return self.REQUIRED_COLUMNS

    def get_column_mappings(self) -> dict[str, str]:
        """Return column name mappings."""
        return self.COLUMN_MAPPINGS

    def get_dtype_mappings(self) -> dict[str, str]:
        """Return data type mappings."""
        return self.DTYPE_MAPPINGS

    def drop_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop demographic and geocoordinate columns before anything else."""
        before = len(df.columns)
        df = drop_demographic_and_location_columns(df)
        self.log_transformation(f"drop_demographic_and_location_columns: {before - len(df.columns)}")
        return df

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply shooting-specific transformations.

        Args:
            df: DataFrame with renamed columns

        Returns:
            Cleaned DataFrame
        """
        self._malformed = pd.DataFrame()
        self._missing_report = pd.DataFrame()

        df = self._process_murder_flag(df)
        df = self._handle_missing_required(df)
        df = self._process_datetime(df)
        df = self._coerce_categories(df)

        self._missing_report = missing_value_summary(df)

        return df

    def get_malformed_timestamps(self) -> pd.DataFrame:
        """Rows kept with unparseable timestamps during the last run."""
        return self._malformed

    def get_missing_report(self) -> pd.DataFrame:
        """Per-column missing-value summary of the last cleaned table."""
        return self._missing_report

    def _process_murder_flag(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize the murder flag to a nullable boolean."""
        if "is_murder" in df.columns:
            raw = df["is_murder"]
            df["is_murder"] = normalize_murder_flag(raw)

            unrecognised = int((raw.notna() & df["is_murder"].isna()).sum())
            if unrecognised > 0:
                logger.warning(f"Found {unrecognised} records with unrecognised murder flag")
                self.log_issue("unrecognised_murder_flag", unrecognised)

            self.log_transformation("convert_is_murder_to_boolean")
        return df

    def _handle_missing_required(self, df: pd.DataFrame) -> pd.DataFrame:
        """Exclude or report rows lacking a required field."""
        present = [c for c in self.NON_MISSING_COLUMNS if c in df.columns]

        if self.config.cleaning.drop_missing_required:
            return self.drop_missing(df, present)

        for col in present:
            count = int(df[col].isna().sum())
            if count > 0:
                logger.warning(f"Keeping {count} records with missing {col}")
                self.log_issue(f"missing_{col}", count)
        return df

    def _process_datetime(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse occurrence timestamps and report rows that do not parse."""
        parsed, malformed = parse_datetime_with_report(df)
        if len(malformed) > 0:
            logger.warning(
                f"Found {len(malformed)} records with malformed occurrence timestamps",
                extra={"malformed": len(malformed)},
            )
            self.log_issue("malformed_timestamp", len(malformed))
            self._malformed = malformed

            if self.config.cleaning.fail_on_malformed_timestamps:
                raise MalformedTimestampError(malformed)

        self.log_transformation("parse_datetime")
        return parsed

    def _coerce_categories(self, df: pd.DataFrame) -> pd.DataFrame:
        """Coerce the label-like columns that are present."""
        columns = [c for c in self.CATEGORICAL_COLUMNS if c in df.columns]
        df = coerce_categoricals(df, columns)
        self.log_transformation(f"coerce_categoricals: {columns}")
        return df


# =============================================================================
# Exception Classes
# =============================================================================


class MalformedTimestampError(Exception):
    """Raised when occurrence timestamps do not parse and fail-fast is enabled."""

    def __init__(self, rows: pd.DataFrame):
        self.rows = rows
        super().__init__(f"{len(rows)} record(s) with malformed occurrence timestamps")


# =============================================================================
# Convenience Functions
# =============================================================================


def preprocess_shooting_data(
    df: pd.DataFrame,
    execution_date: str,
    config: Settings | None = None,
) -> dict[str, Any]:
    """
    Convenience function for preprocessing shooting data.

    Returns the result dictionary.
    """
    preprocessor = ShootingPreprocessor(config)
    result = preprocessor.run(df, execution_date)
    return result.to_dict()
