"""
NYC Shootings - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variable overrides
- Type validation via Pydantic

Usage:
    from nyc_shootings.shared.config import get_config

    config = get_config()  # Uses NYCS_ENVIRONMENT env var
    config = get_config("dev")  # Explicit environment

    # Access config values
    url = config.source.url
    start = config.analysis.trend_start_hour
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SOURCE_URL = (
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"
)

VALID_ENVIRONMENTS = {"dev", "prod"}

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "nyc-shootings"
    version: str = "0.1.0"
    description: str = "NYPD shooting incident cleaning, aggregation and trend analysis"


class SourceConfig(BaseModel):
    """Where the incident CSV is read from."""

    url: str = DEFAULT_SOURCE_URL
    timeout_seconds: int = 120
    user_agent: str = "nyc-shootings/0.1"


class CleaningConfig(BaseModel):
    """Data cleaning policy."""

    fail_on_malformed_timestamps: bool = False
    drop_missing_required: bool = True


class AnalysisConfig(BaseModel):
    """Hourly trend model configuration."""

    trend_start_hour: int = Field(default=9, ge=0, le=23)
    trend_end_hour: int = Field(default=23, ge=0, le=23)

    @model_validator(mode="after")
    def validate_hour_range(self) -> AnalysisConfig:
        """Ensure the trend range is not inverted."""
        if self.trend_start_hour > self.trend_end_hour:
            raise ValueError(
                f"trend_start_hour ({self.trend_start_hour}) must not exceed "
                f"trend_end_hour ({self.trend_end_hour})"
            )
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"
    include_timestamp: bool = True


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for NYC Shootings.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables

    Environment variables take precedence over YAML values.
    """

    model_config = SettingsConfigDict(
        env_prefix="NYCS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    cleaning: CleaningConfig = Field(default_factory=CleaningConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        if v not in VALID_ENVIRONMENTS:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {VALID_ENVIRONMENTS}")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment variables override the YAML values passed as init kwargs
        return env_settings, init_settings, dotenv_settings, file_secret_settings


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path | None:
    """Get the configuration directory path, or None if there is none."""
    # Repository root (editable installs and source checkouts)
    config_dir = Path(__file__).parent.parent.parent / "configs"
    if config_dir.exists():
        return config_dir

    # Current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    return None


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    config_dir = _get_config_dir()
    if config_dir is None:
        return {"environment": environment}

    env_dir = config_dir / "environments"

    # Load base config
    base_config = _load_yaml_file(env_dir / "base.yaml")

    # Load environment-specific config
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses NYCS_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.
    """
    if environment is None:
        environment = os.getenv("NYCS_ENVIRONMENT", "dev")
    if environment not in VALID_ENVIRONMENTS:
        raise ValueError(f"Invalid environment: {environment}. Must be one of: {VALID_ENVIRONMENTS}")

    yaml_config = _load_config_for_environment(environment)

    # An explicit environment argument wins over NYCS_ENVIRONMENT
    return Settings(**yaml_config).model_copy(update={"environment": environment})


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    get_dataset_config.cache_clear()
    return get_config(environment)


@lru_cache(maxsize=8)
def get_dataset_config(dataset: str) -> dict[str, Any]:
    """
    Get the dataset-specific configuration from configs/datasets/<dataset>.yaml.

    Returns an empty dict when the file does not exist, so callers fall back
    to their own defaults.
    """
    config_dir = _get_config_dir()
    if config_dir is None:
        return {}
    return _load_yaml_file(config_dir / "datasets" / f"{dataset}.yaml")


def is_production() -> bool:
    """Check if running in production environment."""
    return get_config().environment == "prod"
