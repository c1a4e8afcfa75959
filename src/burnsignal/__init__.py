"""burnsignal — burn-signal features from irregular spectral index series.

Example:
    >>> import burnsignal as bs
    >>>
    >>> # One spatial unit
    >>> record = bs.extract_features(
    ...     [0.50, 0.52, 0.48, 0.51, 0.10, 0.12, 0.15, 0.13, 0.14],
    ...     times=range(9),
    ... )
    >>> record.drop_time
    4.0
    >>>
    >>> # Many units, fanned out over worker processes
    >>> series_pairs = [
    ...     ([0.5, 0.5, 0.1, 0.1, 0.1], [0, 1, 2, 3, 4]),
    ...     ([0.4, 0.2], [0, 1]),
    ... ]
    >>> table = bs.extract_batch(series_pairs, workers=4)
    >>> df = table.to_dataframe()
"""

from burnsignal.__about__ import __version__
from burnsignal._pipeline import extract_batch
from burnsignal._types import MISSING, Missing, RaggedBatch, is_missing
from burnsignal.analysis.segmentation import extract_features
from burnsignal.analysis.temporal import fractional_year, period_dnbr
from burnsignal.config import Config, configure, load_config
from burnsignal.cube import batch_from_cube, features_to_cube
from burnsignal.exceptions import (
    BatchShapeError,
    BurnSignalError,
    ConfigurationError,
    InvalidSeriesError,
)
from burnsignal.results import FEATURE_FIELDS, FeatureRecord, FeatureTable

__all__ = [
    # Version
    "__version__",
    # Feature extraction
    "extract_batch",
    "extract_features",
    "period_dnbr",
    "fractional_year",
    # Gridded input
    "batch_from_cube",
    "features_to_cube",
    # Types and results
    "FEATURE_FIELDS",
    "FeatureRecord",
    "FeatureTable",
    "MISSING",
    "Missing",
    "RaggedBatch",
    "is_missing",
    # Configuration
    "Config",
    "configure",
    "load_config",
    # Exceptions
    "BatchShapeError",
    "BurnSignalError",
    "ConfigurationError",
    "InvalidSeriesError",
]
