"""Per-unit burn-signal analysis: segmentation and temporal helpers."""

from burnsignal.analysis.segmentation import (
    aggregate_windows,
    assemble_features,
    detect_drop,
    extract_features,
    sort_series,
    validate_series,
)
from burnsignal.analysis.temporal import fractional_year, fractional_years, period_dnbr

__all__ = [
    "aggregate_windows",
    "assemble_features",
    "detect_drop",
    "extract_features",
    "fractional_year",
    "fractional_years",
    "period_dnbr",
    "sort_series",
    "validate_series",
]
