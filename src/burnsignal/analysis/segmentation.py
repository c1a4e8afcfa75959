"""Per-unit burn-signal segmentation of an index time series.

Pure computation module: numpy arrays in, feature records out. Stages
run in order validate → sort → detect drop → window medians → assemble,
and each unit is handled independently of every other.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Union

import numpy as np

from burnsignal._types import (
    MISSING,
    DropRecord,
    FloatArray,
    MaybeFloat,
    SortedSeries,
    WindowStats,
    is_missing,
)
from burnsignal.config import Config, get_default_config
from burnsignal.exceptions import InvalidSeriesError
from burnsignal.results import FeatureRecord

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], FloatArray]


def _as_series_arrays(values: ArrayLike, times: ArrayLike) -> tuple[FloatArray, FloatArray]:
    v = np.asarray(values, dtype=np.float64)
    t = np.asarray(times, dtype=np.float64)
    if v.ndim != 1 or t.ndim != 1:
        raise InvalidSeriesError(
            what="Series must be one-dimensional",
            cause=f"values shape {v.shape}, times shape {t.shape}",
            fix="Pass flat sequences of index values and timestamps",
        )
    if v.shape[0] != t.shape[0]:
        raise InvalidSeriesError(
            what="Series values and times differ in length",
            cause=f"{v.shape[0]} values vs {t.shape[0]} timestamps",
            fix="Pair every index value with exactly one timestamp",
        )
    return v, t


def validate_series(
    values: ArrayLike,
    times: ArrayLike,
    min_count: int = 5,
) -> bool:
    """Return whether the series holds at least *min_count* observations.

    No assumption is made about ordering or timestamp uniqueness.

    Raises:
        InvalidSeriesError: If values and times differ in length.

    Example:
        >>> validate_series([0.1, 0.2, 0.3], [1, 2, 3])
        False
    """
    v, _ = _as_series_arrays(values, times)
    return v.shape[0] >= min_count


def sort_series(values: ArrayLike, times: ArrayLike) -> SortedSeries:
    """Co-sort values and times by ascending timestamp.

    Equal timestamps keep their original relative order (stable sort).
    """
    v, t = _as_series_arrays(values, times)
    order = np.argsort(t, kind="stable")
    return SortedSeries(values=v[order], times=t[order])


def detect_drop(series: SortedSeries) -> DropRecord | None:
    """Find the largest decrease between consecutive observations.

    ``diff[i] = values[i + 1] - values[i]``; the drop is the minimum of
    ``diff``. When several positions tie, the first (lowest index) wins,
    as ``argmax`` of the negated differences resolves ties. A series with
    no decline still yields a record, with ``drop_value >= 0``.

    Parameters:
        series: Time-sorted series.

    Returns:
        ``DropRecord``, or ``None`` for fewer than two observations.

    Example:
        >>> s = sort_series([1.0, 0.5, 0.75, 0.25, 1.0], [0, 1, 2, 3, 4])
        >>> detect_drop(s).drop_index
        0
    """
    n = len(series)
    if n < 2:
        return None

    diffs = series.values[1:] - series.values[:-1]
    drop_index = int(np.argmax(-diffs))
    return DropRecord(
        drop_index=drop_index,
        drop_value=float(diffs[drop_index]),
        drop_time=float(series.times[drop_index + 1]),
    )


def _window_median(values: FloatArray, start: int, end: int) -> MaybeFloat:
    if end <= start:
        return MISSING
    return float(np.median(values[start:end]))


def aggregate_windows(
    series: SortedSeries,
    drop: DropRecord,
    window: int = 4,
) -> WindowStats:
    """Compute pre- and post-drop medians over clamped windows.

    The pre window is ``[max(0, drop_index - window), drop_index)`` and
    the post window is ``[drop_index + 1, min(n, drop_index + 1 + window))``.
    Both bounds are clamped explicitly; a window may hold fewer than
    *window* observations near the series edges. An empty window gives a
    ``MISSING`` median and a ``MISSING`` dnbr, except on a series whose
    values are all equal, where both medians are that value and dnbr is 0.

    Parameters:
        series: Time-sorted series the drop was detected on.
        drop: Output of ``detect_drop`` for *series*.
        window: Maximum observations on each side.

    Returns:
        ``WindowStats`` with bounds, medians, and dnbr.
    """
    n = len(series)
    idx = drop.drop_index

    pre_start = max(0, idx - window)
    pre_end = max(pre_start, min(idx, n))
    post_start = min(idx + 1, n)
    post_end = max(post_start, min(n, post_start + window))

    pre_median = _window_median(series.values, pre_start, pre_end)
    post_median = _window_median(series.values, post_start, post_end)

    # A flat series is a "no signal" result, not a missing one: every
    # window median equals the constant level, even an empty one.
    if n > 0 and bool(np.all(series.values == series.values[0])):
        level = float(series.values[0])
        pre_median = level
        post_median = level

    if is_missing(pre_median) or is_missing(post_median):
        dnbr: MaybeFloat = MISSING
        logger.debug(
            "Empty window around drop %d (n=%d): pre=[%d, %d) post=[%d, %d)",
            idx,
            n,
            pre_start,
            pre_end,
            post_start,
            post_end,
        )
    else:
        dnbr = pre_median - post_median

    return WindowStats(
        pre_start=pre_start,
        pre_end=pre_end,
        post_start=post_start,
        post_end=post_end,
        pre_median=pre_median,
        post_median=post_median,
        dnbr=dnbr,
    )


def assemble_features(
    valid: bool,
    drop: DropRecord | None,
    stats: WindowStats | None,
    observation_count: int = 0,
) -> FeatureRecord:
    """Package stage outputs into one ``FeatureRecord``.

    Never raises: an invalid series or undefined drop gives an all-missing
    record, and each window field is missing only if its own stage was.
    """
    if not valid or drop is None:
        return FeatureRecord.missing(observation_count)
    if stats is None:
        return FeatureRecord(
            max_drop=drop.drop_value,
            drop_time=drop.drop_time,
            drop_index=drop.drop_index,
            observation_count=observation_count,
        )
    return FeatureRecord(
        max_drop=drop.drop_value,
        drop_time=drop.drop_time,
        pre_median=stats.pre_median,
        post_median=stats.post_median,
        dnbr=stats.dnbr,
        drop_index=drop.drop_index,
        observation_count=observation_count,
    )


def extract_features(
    values: ArrayLike,
    times: ArrayLike,
    config: Config | None = None,
    *,
    min_count: int | None = None,
    window: int | None = None,
) -> FeatureRecord:
    """Run the full segmentation for one unit's series.

    Parameters:
        values: Index readings (e.g. NBR), any order.
        times: Timestamps aligned with *values* (e.g. fractional years).
        config: Settings; defaults to the module-level configuration.
        min_count: Overrides ``config.min_count``.
        window: Overrides ``config.window``.

    Returns:
        ``FeatureRecord``; all-missing when the series is too short.

    Raises:
        InvalidSeriesError: If values and times differ in length or any
            observation is non-finite.

    Example:
        >>> rec = extract_features(
        ...     [0.50, 0.52, 0.48, 0.51, 0.10, 0.12, 0.15, 0.13, 0.14],
        ...     range(9),
        ... )
        >>> rec.drop_index, rec.drop_time
        (3, 4.0)
    """
    cfg = config if config is not None else get_default_config()
    min_count = cfg.min_count if min_count is None else min_count
    window = cfg.window if window is None else window

    v, t = _as_series_arrays(values, times)
    n = int(v.shape[0])

    bad = int(np.count_nonzero(~np.isfinite(v)) + np.count_nonzero(~np.isfinite(t)))
    if bad:
        raise InvalidSeriesError(
            what="Series contains non-finite observations",
            cause=f"{bad} NaN or infinite entries among {n} observations",
            fix="Drop masked observations before feature extraction",
        )

    if not validate_series(v, t, min_count):
        logger.debug("Series has %d observations, %d required", n, min_count)
        return FeatureRecord.missing(n)

    series = sort_series(v, t)
    drop = detect_drop(series)
    stats = aggregate_windows(series, drop, window) if drop is not None else None
    return assemble_features(True, drop, stats, observation_count=n)
