"""
NYC Shootings - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Sample raw incident data
"""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import pytest

# Set test environment
os.environ["NYCS_ENVIRONMENT"] = "dev"

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from nyc_shootings.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def sample_raw_data() -> pd.DataFrame:
    """Six incidents in the published 19-column layout."""
    return pd.DataFrame(
        {
            "INCIDENT_KEY": [228798151, 137471050, 147998800, 146837977, 58921844, 219559682],
            "OCCUR_DATE": [
                "01/05/2020",
                "03/15/2020",
                "07/04/2021",
                "12/31/2021",
                "06/01/2022",
                "08/20/2022",
            ],
            "OCCUR_TIME": ["09:30:00", "14:05:00", "23:59:59", "00:15:00", "18:45:00", "21:10:00"],
            "BORO": ["BRONX", "BROOKLYN", "BROOKLYN", "QUEENS", "MANHATTAN", "STATEN ISLAND"],
            "PRECINCT": [40, 75, 73, 113, 32, 120],
            "JURISDICTION_CODE": [0.0, 0.0, 2.0, np.nan, 0.0, 1.0],
            "LOCATION_DESC": [
                "MULTI DWELL - PUBLIC HOUS",
                np.nan,
                "(null)",
                np.nan,
                "GROCERY/BODEGA",
                np.nan,
            ],
            "STATISTICAL_MURDER_FLAG": ["true", "false", "false", "true", "false", "false"],
            "PERP_AGE_GROUP": ["18-24", np.nan, "25-44", "UNKNOWN", np.nan, "<18"],
            "PERP_SEX": ["M", np.nan, "M", "U", np.nan, "M"],
            "PERP_RACE": ["BLACK", np.nan, "BLACK", "UNKNOWN", np.nan, "WHITE HISPANIC"],
            "VIC_AGE_GROUP": ["25-44", "18-24", "25-44", "45-64", "18-24", "<18"],
            "VIC_SEX": ["M", "M", "F", "M", "M", "M"],
            "VIC_RACE": ["BLACK", "BLACK", "BLACK HISPANIC", "WHITE", "BLACK", "WHITE HISPANIC"],
            "X_COORD_CD": [1009512, 1001021, 1006357, 1046731, 999226, 943458],
            "Y_COORD_CD": [234279, 181860, 187001, 193589, 231019, 172234],
            "Latitude": [40.8098, 40.6660, 40.6800, 40.6980, 40.8014, 40.6437],
            "Longitude": [-73.9195, -73.9502, -73.9310, -73.7860, -73.9567, -74.1571],
            "Lon_Lat": [
                "POINT (-73.9195 40.8098)",
                "POINT (-73.9502 40.6660)",
                "POINT (-73.9310 40.6800)",
                "POINT (-73.7860 40.6980)",
                "POINT (-73.9567 40.8014)",
                "POINT (-74.1571 40.6437)",
            ],
        }
    )


@pytest.fixture
def sample_csv(tmp_path: Path, sample_raw_data: pd.DataFrame) -> Path:
    """The sample incidents written to a CSV file."""
    path = tmp_path / "shootings.csv"
    sample_raw_data.to_csv(path, index=False)
    return path


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables and cached config after each test."""
    from nyc_shootings.shared.config import get_config

    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
    get_config.cache_clear()
