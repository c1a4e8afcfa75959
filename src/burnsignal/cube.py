"""Adapter between gridded index cubes and ragged per-cell batches.

A cube is an ``xarray.DataArray`` with a time dimension and any number
of spatial dimensions. NaN marks a masked observation (cloud, shadow,
snow), so every cell keeps its own variable-length series.
"""

from __future__ import annotations

import logging

import numpy as np
import xarray as xr

from burnsignal._types import RaggedBatch, is_missing
from burnsignal.analysis.temporal import fractional_years
from burnsignal.exceptions import BatchShapeError
from burnsignal.results import FEATURE_FIELDS, FeatureTable

logger = logging.getLogger(__name__)


def _time_axis(cube: xr.DataArray, time_dim: str) -> np.ndarray:
    coord = cube[time_dim].values
    if np.issubdtype(coord.dtype, np.datetime64):
        return fractional_years(coord)
    if coord.dtype == object:
        # cftime or python dates
        return fractional_years(coord.tolist())
    return coord.astype(np.float64)


def _spatial_dims(cube: xr.DataArray, time_dim: str) -> list[str]:
    if time_dim not in cube.dims:
        raise BatchShapeError(
            what=f"Cube has no '{time_dim}' dimension",
            cause=f"Cube dimensions are {tuple(cube.dims)}",
            fix="Pass time_dim= naming the acquisition dimension",
        )
    return [str(d) for d in cube.dims if d != time_dim]


def batch_from_cube(cube: xr.DataArray, time_dim: str = "time") -> RaggedBatch:
    """Turn every spatial cell of *cube* into one ragged series.

    Datetime time coordinates are converted to fractional years; numeric
    ones are used unchanged. Non-finite values are dropped per cell.

    Args:
        cube: Index values with dims ``(time_dim, *spatial)``.
        time_dim: Name of the time dimension.

    Returns:
        ``RaggedBatch`` whose unit ids are tuples of the cell's spatial
        coordinate labels, in C order over the spatial dims.

    Raises:
        BatchShapeError: If *cube* lacks ``time_dim``.

    Example:
        >>> import numpy as np, xarray as xr
        >>> cube = xr.DataArray(
        ...     np.ones((3, 1, 2)), dims=("time", "y", "x"),
        ...     coords={"time": [1.0, 2.0, 3.0], "y": [10], "x": [0, 1]},
        ... )
        >>> batch_from_cube(cube).ids
        ((10, 0), (10, 1))
    """
    spatial = _spatial_dims(cube, time_dim)
    times = _time_axis(cube, time_dim)

    stacked = cube.transpose(time_dim, *spatial).values.reshape(times.shape[0], -1)
    finite = np.isfinite(stacked)

    columns = [stacked[finite[:, j], j] for j in range(stacked.shape[1])]
    column_times = [times[finite[:, j]] for j in range(stacked.shape[1])]

    labels = [
        cube[d].values.tolist() if d in cube.coords else list(range(cube.sizes[d]))
        for d in spatial
    ]
    grids = np.meshgrid(*[np.arange(len(lab)) for lab in labels], indexing="ij")
    unit_ids = [
        tuple(labels[k][int(g.flat[j])] for k, g in enumerate(grids))
        for j in range(stacked.shape[1])
    ]

    logger.debug(
        "Cube %s -> %d cells, %d of %d observations finite",
        dict(cube.sizes),
        len(unit_ids),
        int(finite.sum()),
        finite.size,
    )
    return RaggedBatch.from_series(zip(columns, column_times), unit_ids=unit_ids)


def features_to_cube(
    table: FeatureTable,
    cube: xr.DataArray,
    time_dim: str = "time",
) -> xr.Dataset:
    """Lay a feature table back onto *cube*'s spatial grid.

    Each feature becomes a float variable, NaN where missing, alongside a
    boolean ``<feature>_missing`` variable so that a missing value stays
    distinguishable from a computed value.

    Args:
        table: Output of ``extract_batch`` on ``batch_from_cube(cube)``.
        cube: The cube the batch was built from.
        time_dim: Name of the time dimension to drop.

    Returns:
        ``xarray.Dataset`` over the spatial dims of *cube*.

    Raises:
        BatchShapeError: If the table size does not match the grid.
    """
    spatial = _spatial_dims(cube, time_dim)
    shape = tuple(cube.sizes[d] for d in spatial)
    cells = int(np.prod(shape, dtype=np.int64)) if shape else 1
    if len(table) != cells:
        raise BatchShapeError(
            what="Feature table does not match the cube grid",
            cause=f"{len(table)} records for {cells} cells",
            fix="Build the table from batch_from_cube() on the same cube",
        )

    coords = {d: cube[d].values for d in spatial if d in cube.coords}
    data_vars: dict[str, tuple[list[str], np.ndarray]] = {}
    for name in FEATURE_FIELDS:
        raw = [getattr(record, name) for record in table.records]
        missing = np.array([is_missing(v) for v in raw], dtype=bool).reshape(shape)
        values = np.array(
            [np.nan if is_missing(v) else v for v in raw], dtype=np.float64
        ).reshape(shape)
        data_vars[name] = (spatial, values)
        data_vars[f"{name}_missing"] = (spatial, missing)

    return xr.Dataset(data_vars, coords=coords)
