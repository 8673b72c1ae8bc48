"""
NYC Shootings - Shooting Incident Ingester

Reads the NYPD Shooting Incident Data (Historic) CSV from NYC Open Data or
from a local copy.

Data Source:
    NYPD Shooting Incident Data (Historic)
    https://data.cityofnewyork.us/Public-Safety/NYPD-Shooting-Incident-Data-Historic-/833y-fsy8

Configuration:
    Source URL and timeout from the ``source`` settings section;
    column names from configs/datasets/shootings.yaml

Usage:
    from nyc_shootings.datasets.shootings.ingest import ShootingIngester

    ingester = ShootingIngester()
    result = ingester.run(execution_date="2024-01-15")
    df = ingester.get_data()
"""

from __future__ import annotations

import logging
from io import StringIO
from pathlib import Path

import pandas as pd
import requests

from nyc_shootings.datasets.base import BaseIngester
from nyc_shootings.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

# =============================================================================
# Dataset Configuration (loaded from shootings.yaml)
# =============================================================================
DATASET_CONFIG = get_dataset_config("shootings")

INGESTION_CONFIG = DATASET_CONFIG.get("ingestion", {})
PRIMARY_KEY = INGESTION_CONFIG.get("primary_key", "INCIDENT_KEY")
REQUIRED_COLUMNS = INGESTION_CONFIG.get(
    "required_columns",
    ["INCIDENT_KEY", "OCCUR_DATE", "OCCUR_TIME", "BORO", "STATISTICAL_MURDER_FLAG"],
)


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


class ShootingIngester(BaseIngester):
    """
    Ingester for NYPD shooting incident data.

    Reads the whole CSV in one request; there is no incremental mode and
    nothing is cached between calls. The returned frame has exactly the
    source's columns and rows.
    """

    def __init__(self, source: str | Path | None = None, config: Settings | None = None):
        """
        Initialize the shooting ingester.

        Args:
            source: URL or local path of the CSV (defaults to config.source.url)
            config: Configuration object (uses default if not provided)
        """
        super().__init__(config)
        self.source = str(source) if source is not None else self.config.source.url

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "shootings"

    def get_primary_key(self) -> str:
        """Return the primary key field (from config)."""
        return PRIMARY_KEY

    def get_required_columns(self) -> list[str]:
        """Return raw columns the cleaning stage depends on."""
        return list(REQUIRED_COLUMNS)

    def get_source(self) -> str:
        """Get the URL or path the CSV is read from."""
        return self.source

    def fetch_data(self) -> pd.DataFrame:
        """
        Read the shooting incident CSV.

        Returns:
            DataFrame with the raw incident records

        Raises:
            DataUnavailableError: If the source cannot be read, is not valid CSV,
                or lacks the primary key or required columns
        """
        if _is_url(self.source):
            text = self._download(self.source)
            df = self._parse_csv(StringIO(text))
        else:
            path = Path(self.source)
            if not path.is_file():
                raise DataUnavailableError(self.source, "file not found")
            df = self._parse_csv(path)

        missing = [c for c in self.get_required_columns() if c not in df.columns]
        if missing:
            # Error pages and unrelated files still parse as CSV
            raise DataUnavailableError(
                self.source, f"not the incident CSV, missing columns {missing}"
            )

        logger.info(
            f"Fetched {len(df)} shooting incident records",
            extra={"rows": len(df), "columns": list(df.columns), "source": self.source},
        )

        return df

    def _download(self, url: str) -> str:
        """Download the CSV body as text."""
        logger.info(f"Downloading from: {url}")

        try:
            response = requests.get(
                url,
                headers={"User-Agent": self.config.source.user_agent, "Accept": "text/csv"},
                timeout=self.config.source.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise DataUnavailableError(url, str(e)) from e

        logger.info(f"Response received. Status: {response.status_code}")
        return response.text

    def _parse_csv(self, buffer: StringIO | Path) -> pd.DataFrame:
        """
        Parse CSV content, mapping parser failures to DataUnavailableError.

        Rows with more fields than the header are malformed. Rows with fewer
        fields are padded with missing values, the same as blank trailing
        cells; the cleaner then drops or reports them as missing required
        fields.
        """
        try:
            return pd.read_csv(buffer, low_memory=False)
        except pd.errors.EmptyDataError as e:
            raise DataUnavailableError(self.source, "source is empty") from e
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise DataUnavailableError(self.source, f"malformed CSV: {e}") from e
        except OSError as e:
            raise DataUnavailableError(self.source, str(e)) from e


# =============================================================================
# Exception Classes
# =============================================================================


class DataUnavailableError(Exception):
    """Raised when the incident CSV cannot be fetched or parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Data unavailable from {source}: {reason}")


# =============================================================================
# Convenience Functions
# =============================================================================


def load_shooting_data(
    source: str | Path | None = None,
    config: Settings | None = None,
) -> pd.DataFrame:
    """
    Convenience function to read the raw incident table.

    Raises:
        DataUnavailableError: If the source cannot be read
    """
    return ShootingIngester(source, config).fetch_data()
