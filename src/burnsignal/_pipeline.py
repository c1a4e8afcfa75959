"""Batch orchestration for per-unit feature extraction.

Units are independent, so the batch is cut into chunks that are either
processed inline or mapped over a process pool. Structural problems
with the batch are fatal; a single unit breaking the input contract
only costs that unit its features.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from concurrent.futures import ProcessPoolExecutor
from typing import Union

from burnsignal._types import FloatArray, RaggedBatch, UnitId
from burnsignal.analysis.segmentation import extract_features
from burnsignal.config import Config, get_default_config
from burnsignal.exceptions import BatchShapeError, BurnSignalError
from burnsignal.results import FeatureRecord, FeatureTable

logger = logging.getLogger(__name__)

SeriesPair = tuple[Sequence[float], Sequence[float]]
BatchInput = Union[RaggedBatch, Sequence[SeriesPair], Mapping[UnitId, SeriesPair]]

# One chunk: (unit_ids, [(values, times), ...]) for consecutive units.
_Chunk = tuple[tuple[UnitId, ...], list[tuple[FloatArray, FloatArray]]]


def _to_ragged(batch: BatchInput) -> RaggedBatch:
    """Normalise any supported batch input to a validated ``RaggedBatch``."""
    if isinstance(batch, RaggedBatch):
        batch.validate()
        return batch
    if isinstance(batch, Mapping):
        return RaggedBatch.from_series(batch.values(), unit_ids=batch.keys())
    if isinstance(batch, (str, bytes)) or not isinstance(batch, Sequence):
        raise BatchShapeError(
            what="Unsupported batch input",
            cause=f"Got {type(batch).__name__}",
            fix=(
                "Pass a RaggedBatch, a sequence of (values, times) pairs, "
                "or a mapping of unit id to (values, times)"
            ),
        )
    return RaggedBatch.from_series(batch)


def _iter_chunks(batch: RaggedBatch, chunk_size: int) -> Iterator[_Chunk]:
    ids = batch.ids
    for start in range(0, batch.unit_count, chunk_size):
        stop = min(start + chunk_size, batch.unit_count)
        yield ids[start:stop], [batch.series(i) for i in range(start, stop)]


def _extract_chunk(
    chunk: _Chunk,
    config: Config,
) -> list[tuple[FeatureRecord, bool]]:
    """Extract features for every unit in *chunk*.

    Returns ``(record, failed)`` pairs in chunk order. Runs in worker
    processes, so it must stay a module-level function.
    """
    unit_ids, series = chunk
    out: list[tuple[FeatureRecord, bool]] = []
    for unit_id, (values, times) in zip(unit_ids, series):
        try:
            out.append((extract_features(values, times, config), False))
        except BurnSignalError as exc:
            logger.warning("Unit %r skipped: %s", unit_id, exc.what)
            out.append((FeatureRecord.missing(len(values)), True))
    return out


def extract_batch(
    batch: BatchInput,
    config: Config | None = None,
    *,
    workers: int | None = None,
) -> FeatureTable:
    """Extract burn-signal features for every unit in a batch.

    Output rows are aligned with the input units. Units that fail input
    checks get an all-missing record and are listed in
    ``FeatureTable.failed_ids``; the rest of the batch is unaffected.

    Args:
        batch: ``RaggedBatch``, sequence of ``(values, times)`` pairs, or
            mapping of unit id to ``(values, times)``.
        config: Settings; defaults to the module-level configuration.
        workers: Overrides ``config.workers``. Values above 1 use a
            process pool.

    Returns:
        ``FeatureTable`` with one record per unit.

    Raises:
        BatchShapeError: If the batch structure is malformed.

    Example:
        >>> table = extract_batch([([0.5, 0.5, 0.1, 0.1, 0.1], [0, 1, 2, 3, 4])])
        >>> table[0].max_drop
        -0.4
    """
    cfg = config if config is not None else get_default_config()
    n_workers = cfg.workers if workers is None else workers
    if n_workers < 1:
        msg = f"workers must be at least 1, got {n_workers}"
        raise ValueError(msg)

    ragged = _to_ragged(batch)
    chunks = list(_iter_chunks(ragged, cfg.chunk_size))

    results: list[tuple[FeatureRecord, bool]] = []
    if n_workers == 1 or len(chunks) <= 1:
        for chunk in chunks:
            results.extend(_extract_chunk(chunk, cfg))
    else:
        logger.debug(
            "Mapping %d chunks over %d worker processes", len(chunks), n_workers
        )
        with ProcessPoolExecutor(max_workers=n_workers) as pool:
            for chunk_result in pool.map(_extract_chunk, chunks, [cfg] * len(chunks)):
                results.extend(chunk_result)

    unit_ids = ragged.ids
    records = [record for record, _ in results]
    failed_ids = [uid for uid, (_, failed) in zip(unit_ids, results) if failed]
    table = FeatureTable(unit_ids, records, failed_ids=failed_ids)

    logger.info(
        "Extracted features for %d units: %d with features, %d all missing, %d failed",
        len(table),
        table.valid_count,
        table.missing_count,
        len(failed_ids),
    )
    return table
