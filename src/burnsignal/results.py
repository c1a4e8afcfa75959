"""Result object model for burn-signal features."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from burnsignal._types import MISSING, MaybeFloat, MaybeInt, UnitId, is_missing

if TYPE_CHECKING:
    import pandas as pd

FEATURE_FIELDS: tuple[str, ...] = (
    "max_drop",
    "drop_time",
    "pre_median",
    "post_median",
    "dnbr",
)
"""Scalar features consumed by the downstream burned/unburned classifier."""


@dataclass(frozen=True)
class FeatureRecord:
    """Burn-signal features of one spatial unit.

    Each feature is a float or ``MISSING``. ``MISSING`` means the value
    could not be computed (series too short, empty window), which is
    different from a computed zero.

    Attributes:
        max_drop: Most negative first difference of the sorted series.
        drop_time: Timestamp of the first observation after the drop.
        pre_median: Median of the window before the drop.
        post_median: Median of the window after the drop.
        dnbr: ``pre_median - post_median``.
        drop_index: Position of the drop in the first-difference array.
        observation_count: Number of observations the unit had.

    Example:
        >>> record = FeatureRecord.missing(observation_count=3)
        >>> record.max_drop
        MISSING
        >>> record.is_complete
        False
    """

    max_drop: MaybeFloat = MISSING
    drop_time: MaybeFloat = MISSING
    pre_median: MaybeFloat = MISSING
    post_median: MaybeFloat = MISSING
    dnbr: MaybeFloat = MISSING
    drop_index: MaybeInt = MISSING
    observation_count: int = 0

    @classmethod
    def missing(cls, observation_count: int = 0) -> FeatureRecord:
        """Return a record whose every feature is ``MISSING``."""
        return cls(observation_count=observation_count)

    @property
    def is_complete(self) -> bool:
        """``True`` when no feature field is ``MISSING``."""
        return not any(is_missing(getattr(self, name)) for name in FEATURE_FIELDS)

    @property
    def is_empty(self) -> bool:
        """``True`` when every feature field is ``MISSING``."""
        return all(is_missing(getattr(self, name)) for name in FEATURE_FIELDS)

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a plain dict, ``MISSING`` preserved."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __repr__(self) -> str:
        parts = []
        for name in FEATURE_FIELDS:
            value = getattr(self, name)
            parts.append(f"{name}={'MISSING' if is_missing(value) else f'{value:.4f}'}")
        parts.append(f"n={self.observation_count}")
        return f"FeatureRecord({', '.join(parts)})"


class FeatureTable:
    """Feature records for a batch, aligned with the input unit ids.

    Example:
        >>> table = FeatureTable([0, 1], [FeatureRecord.missing(), FeatureRecord.missing()])
        >>> len(table), table.valid_count
        (2, 0)
    """

    def __init__(
        self,
        unit_ids: Sequence[UnitId],
        records: Sequence[FeatureRecord],
        failed_ids: Sequence[UnitId] = (),
    ) -> None:
        if len(unit_ids) != len(records):
            msg = f"{len(unit_ids)} unit ids for {len(records)} records"
            raise ValueError(msg)
        self._unit_ids = tuple(unit_ids)
        self._records = tuple(records)
        self._index: dict[UnitId, int] | None = None
        self.failed_ids = tuple(failed_ids)

    @property
    def unit_ids(self) -> tuple[UnitId, ...]:
        return self._unit_ids

    @property
    def records(self) -> tuple[FeatureRecord, ...]:
        return self._records

    @property
    def valid_count(self) -> int:
        """Units with at least one computed feature."""
        return sum(1 for r in self._records if not r.is_empty)

    @property
    def missing_count(self) -> int:
        """Units whose every feature is ``MISSING``."""
        return len(self._records) - self.valid_count

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[tuple[UnitId, FeatureRecord]]:
        return iter(zip(self._unit_ids, self._records))

    def __getitem__(self, unit_id: UnitId) -> FeatureRecord:
        if self._index is None:
            self._index = {uid: i for i, uid in enumerate(self._unit_ids)}
        return self._records[self._index[unit_id]]

    def __repr__(self) -> str:
        lines = [
            f"{type(self).__name__}(",
            f"  units: {len(self)}",
            f"  with features: {self.valid_count}",
            f"  all missing: {self.missing_count}",
        ]
        if self.failed_ids:
            lines.append(f"  ⚠ {len(self.failed_ids)} units failed input checks")
        lines.append(")")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """Export the table to a pandas DataFrame indexed by unit id.

        Feature columns use the nullable ``Float64`` dtype: ``MISSING``
        becomes ``pd.NA`` and is never confused with NaN or zero.
        ``drop_index`` uses nullable ``Int64``.

        Returns:
            DataFrame with one row per unit.
        """
        import pandas as pd

        columns: dict[str, Any] = {}
        for name in FEATURE_FIELDS:
            columns[name] = pd.array(
                [
                    pd.NA if is_missing(getattr(r, name)) else getattr(r, name)
                    for r in self._records
                ],
                dtype="Float64",
            )
        columns["drop_index"] = pd.array(
            [pd.NA if is_missing(r.drop_index) else r.drop_index for r in self._records],
            dtype="Int64",
        )
        columns["observation_count"] = [r.observation_count for r in self._records]

        index = pd.Index(list(self._unit_ids), name="unit_id", tupleize_cols=False)
        return pd.DataFrame(columns, index=index)
