"""
NYC Shootings - Base Classes for Datasets

Abstract base classes that dataset implementations inherit from.
These provide a consistent interface for:
- Data ingestion (BaseIngester)
- Data preprocessing (BasePreprocessor)
- Grouped counting (BaseAggregator)

Usage:
    from nyc_shootings.datasets.base import BaseIngester, BasePreprocessor, BaseAggregator

    class ShootingIngester(BaseIngester):
        def fetch_data(self) -> pd.DataFrame:
            ...
"""

from nyc_shootings.datasets.base.aggregator import (
    COUNT_COLUMN,
    AggregationDefinition,
    AggregationResult,
    BaseAggregator,
    GroupedCount,
    count_by,
    to_grouped_counts,
)
from nyc_shootings.datasets.base.ingester import BaseIngester, IngestionResult
from nyc_shootings.datasets.base.preprocessor import (
    BasePreprocessor,
    MissingRequiredFieldError,
    PreprocessingResult,
)

__all__ = [
    "BaseIngester",
    "IngestionResult",
    "BasePreprocessor",
    "PreprocessingResult",
    "MissingRequiredFieldError",
    "BaseAggregator",
    "AggregationDefinition",
    "AggregationResult",
    "GroupedCount",
    "COUNT_COLUMN",
    "count_by",
    "to_grouped_counts",
]
