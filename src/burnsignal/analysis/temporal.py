"""Timestamp conversion and fixed-period dNBR.

Acquisition dates are turned into fractional years so a unit's series
can be ordered and differenced on a single real-valued time axis.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Union

import numpy as np
import pandas as pd

from burnsignal._types import MISSING, FloatArray, MaybeFloat

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, np.datetime64, pd.Timestamp]
Period = tuple[float, float]


def fractional_year(value: DateLike) -> float:
    """Convert a date to ``year + day_of_year / days_in_year``.

    The day of year is 0-based, so 1 January maps to the whole year and
    the fraction never reaches 1. Leap years divide by 366. Time of day
    is ignored.

    Args:
        value: ISO string, ``date``, ``datetime``, ``numpy.datetime64``
            or ``pandas.Timestamp``.

    Returns:
        Fractional year.

    Example:
        >>> fractional_year("2015-01-01")
        2015.0
        >>> round(fractional_year("2016-07-02"), 4)
        2016.5
    """
    ts = pd.Timestamp(value)
    if ts is pd.NaT:
        msg = f"Cannot convert {value!r} to a fractional year"
        raise ValueError(msg)
    days_in_year = 366 if ts.is_leap_year else 365
    return ts.year + (ts.dayofyear - 1) / days_in_year


def fractional_years(values: Iterable[Any]) -> FloatArray:
    """Vectorised ``fractional_year`` for a sequence of dates."""
    index = pd.DatetimeIndex(pd.to_datetime(list(values)))
    if index.hasnans:
        msg = "Cannot convert missing dates to fractional years"
        raise ValueError(msg)
    days_in_year = np.where(index.is_leap_year, 366.0, 365.0)
    years = index.year.to_numpy(dtype=np.float64)
    day_offset = index.dayofyear.to_numpy(dtype=np.float64) - 1.0
    return years + day_offset / days_in_year


def _check_period(name: str, period: Period) -> None:
    start, end = period
    if not start < end:
        msg = f"{name} must satisfy start < end, got {period!r}"
        raise ValueError(msg)


def period_dnbr(
    values: Iterable[float],
    times: Iterable[float],
    pre_period: Period,
    post_period: Period,
) -> MaybeFloat:
    """Median index in a fixed pre period minus the median in a post period.

    Complements the drop-anchored ``dnbr`` when the fire date is known in
    advance. Periods are half-open ``[start, end)`` on the same time axis
    as *times*.

    Args:
        values: Index readings.
        times: Timestamps aligned with *values*.
        pre_period: ``(start, end)`` before the fire.
        post_period: ``(start, end)`` after the fire.

    Returns:
        ``pre_median - post_median``, or ``MISSING`` if either period holds
        no observation.

    Raises:
        ValueError: If a period is empty or reversed, or values and times
            differ in length.
    """
    _check_period("pre_period", pre_period)
    _check_period("post_period", post_period)

    v = np.asarray(list(values), dtype=np.float64)
    t = np.asarray(list(times), dtype=np.float64)
    if v.shape != t.shape:
        msg = f"values and times differ in shape: {v.shape} vs {t.shape}"
        raise ValueError(msg)

    pre = v[(t >= pre_period[0]) & (t < pre_period[1])]
    post = v[(t >= post_period[0]) & (t < post_period[1])]
    if pre.size == 0 or post.size == 0:
        logger.debug(
            "Period dNBR undefined: %d pre and %d post observations",
            pre.size,
            post.size,
        )
        return MISSING
    return float(np.median(pre)) - float(np.median(post))
