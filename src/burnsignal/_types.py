"""Internal shared types for cross-boundary data contracts.

These types define the data shapes passed between the segmentation
stages, the batch pipeline, and the cube adapter. ``MISSING`` and
``is_missing`` are re-exported from ``burnsignal.__init__``; the rest
stays internal.
"""

from __future__ import annotations

import enum
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Union

import numpy as np
import numpy.typing as npt

from burnsignal.exceptions import BatchShapeError


class Missing(enum.Enum):
    """Explicit "no value" marker for feature fields.

    A single-member enum so it can never compare equal to a number,
    ``None`` or NaN, and survives pickling across worker processes as
    the same object.
    """

    MISSING = "missing"

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = Missing.MISSING

MaybeFloat = Union[float, Missing]
"""A feature value: a finite float or ``MISSING``."""

MaybeInt = Union[int, Missing]

UnitId = Hashable
"""Identifier of one spatial unit (row number, cell label tuple, ...)."""

FloatArray = npt.NDArray[np.float64]


def is_missing(value: Any) -> bool:
    """Return ``True`` if *value* is the ``MISSING`` sentinel.

    Example:
        >>> is_missing(MISSING), is_missing(0.0), is_missing(float("nan"))
        (True, False, False)
    """
    return value is MISSING


@dataclass(frozen=True)
class SortedSeries:
    """One unit's observations ordered by ascending timestamp.

    Args:
        values: Index values, aligned with ``times``.
        times: Non-decreasing timestamps.
    """

    values: FloatArray
    times: FloatArray

    def __len__(self) -> int:
        return int(self.values.shape[0])


@dataclass(frozen=True)
class DropRecord:
    """Largest single-step decrease in a sorted series.

    Args:
        drop_index: Position in the first-difference array (0-based).
        drop_value: The most negative first difference.
        drop_time: Timestamp of the observation right after the drop.
    """

    drop_index: int
    drop_value: float
    drop_time: float


@dataclass(frozen=True)
class WindowStats:
    """Pre/post window bounds and medians around a detected drop.

    Bounds are half-open ``[start, end)`` indices into the sorted series.
    A window with ``start == end`` is empty and its median is ``MISSING``.
    """

    pre_start: int
    pre_end: int
    post_start: int
    post_end: int
    pre_median: MaybeFloat
    post_median: MaybeFloat
    dnbr: MaybeFloat


@dataclass(frozen=True)
class RaggedBatch:
    """Variable-length series for many units stored as flat arrays.

    Unit ``i`` owns ``values[offsets[i]:offsets[i + 1]]`` and the same
    slice of ``times``. Series are never padded.

    Args:
        values: Concatenated index values of all units.
        times: Concatenated timestamps, same length as ``values``.
        offsets: Integer boundaries, length ``unit_count + 1``.
        unit_ids: Optional identifiers, one per unit. Defaults to
            ``range(unit_count)``.

    Example:
        >>> batch = RaggedBatch.from_series([([0.5, 0.1], [1.0, 2.0]), ([], [])])
        >>> batch.unit_count
        2
        >>> batch.offsets.tolist()
        [0, 2, 2]
    """

    values: FloatArray
    times: FloatArray
    offsets: npt.NDArray[np.int64]
    unit_ids: tuple[UnitId, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", np.asarray(self.values, dtype=np.float64))
        object.__setattr__(self, "times", np.asarray(self.times, dtype=np.float64))
        object.__setattr__(self, "offsets", np.asarray(self.offsets))
        if self.unit_ids is not None:
            object.__setattr__(self, "unit_ids", tuple(self.unit_ids))

    @classmethod
    def from_series(
        cls,
        series: Iterable[tuple[Sequence[float] | FloatArray, Sequence[float] | FloatArray]],
        unit_ids: Iterable[UnitId] | None = None,
    ) -> RaggedBatch:
        """Pack ``(values, times)`` pairs into a ragged batch.

        Raises:
            BatchShapeError: If an item is not a (values, times) pair, is
                not one-dimensional, or its values and times differ in length.
        """
        value_parts: list[FloatArray] = []
        time_parts: list[FloatArray] = []
        offsets = [0]
        for position, item in enumerate(series):
            if not isinstance(item, (tuple, list)) or len(item) != 2:
                raise BatchShapeError(
                    what=f"Batch item {position} is not a (values, times) pair",
                    cause=f"Got {type(item).__name__}",
                    fix="Pass each unit as a two-element (values, times) tuple",
                )
            values, times = item
            v = np.asarray(values, dtype=np.float64)
            t = np.asarray(times, dtype=np.float64)
            if v.ndim != 1 or t.ndim != 1:
                raise BatchShapeError(
                    what=f"Series {position} is not one-dimensional",
                    cause=f"values shape {v.shape}, times shape {t.shape}",
                    fix="Pass each unit as two flat sequences",
                )
            if v.shape[0] != t.shape[0]:
                raise BatchShapeError(
                    what=f"Series {position} has mismatched values and times",
                    cause=f"{v.shape[0]} values vs {t.shape[0]} timestamps",
                    fix="Pair every index value with exactly one timestamp",
                )
            value_parts.append(v)
            time_parts.append(t)
            offsets.append(offsets[-1] + v.shape[0])

        batch = cls(
            values=np.concatenate(value_parts) if value_parts else np.empty(0),
            times=np.concatenate(time_parts) if time_parts else np.empty(0),
            offsets=np.asarray(offsets, dtype=np.int64),
            unit_ids=tuple(unit_ids) if unit_ids is not None else None,
        )
        batch.validate()
        return batch

    @property
    def unit_count(self) -> int:
        return max(int(np.asarray(self.offsets).shape[0]) - 1, 0)

    @property
    def ids(self) -> tuple[UnitId, ...]:
        """Unit identifiers, defaulting to row positions."""
        if self.unit_ids is not None:
            return self.unit_ids
        return tuple(range(self.unit_count))

    def validate(self) -> None:
        """Check the structural consistency of the batch.

        Raises:
            BatchShapeError: On any shape or offset inconsistency.
        """
        values = np.asarray(self.values)
        times = np.asarray(self.times)
        offsets = np.asarray(self.offsets)

        if values.ndim != 1 or times.ndim != 1:
            raise BatchShapeError(
                what="Ragged batch arrays must be one-dimensional",
                cause=f"values ndim={values.ndim}, times ndim={times.ndim}",
                fix="Flatten values and times before building the batch",
            )
        if values.shape[0] != times.shape[0]:
            raise BatchShapeError(
                what="Ragged batch values and times differ in length",
                cause=f"{values.shape[0]} values vs {times.shape[0]} timestamps",
                fix="Pair every index value with exactly one timestamp",
            )
        if offsets.ndim != 1 or offsets.shape[0] == 0:
            raise BatchShapeError(
                what="Ragged batch offsets must be a non-empty 1-D array",
                cause=f"offsets shape {offsets.shape}",
                fix="Use offsets of length unit_count + 1 starting at 0",
            )
        if not np.issubdtype(offsets.dtype, np.integer):
            raise BatchShapeError(
                what="Ragged batch offsets must be integers",
                cause=f"offsets dtype {offsets.dtype}",
                fix="Cast offsets to an integer dtype",
            )
        if offsets[0] != 0 or offsets[-1] != values.shape[0]:
            raise BatchShapeError(
                what="Ragged batch offsets do not span the observations",
                cause=(
                    f"offsets run {int(offsets[0])}..{int(offsets[-1])}, "
                    f"batch holds {values.shape[0]} observations"
                ),
                fix="Start offsets at 0 and end them at len(values)",
            )
        if np.any(np.diff(offsets) < 0):
            raise BatchShapeError(
                what="Ragged batch offsets are decreasing",
                cause="A unit would have negative length",
                fix="Offsets must be non-decreasing",
            )
        if self.unit_ids is not None and len(self.unit_ids) != self.unit_count:
            raise BatchShapeError(
                what="Ragged batch unit_ids do not match the unit count",
                cause=f"{len(self.unit_ids)} ids for {self.unit_count} units",
                fix="Provide exactly one identifier per unit",
            )

    def series(self, index: int) -> tuple[FloatArray, FloatArray]:
        """Return views of unit *index*'s values and times."""
        start = int(self.offsets[index])
        end = int(self.offsets[index + 1])
        return self.values[start:end], self.times[start:end]
