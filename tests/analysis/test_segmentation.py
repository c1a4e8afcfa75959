"""Tests for per-unit burn-signal segmentation."""

import numpy as np
import numpy.testing as npt
import pytest

from burnsignal._types import MISSING, DropRecord, SortedSeries, is_missing
from burnsignal.analysis.segmentation import (
    aggregate_windows,
    assemble_features,
    detect_drop,
    extract_features,
    sort_series,
    validate_series,
)
from burnsignal.config import Config, configure
from burnsignal.exceptions import InvalidSeriesError
from burnsignal.results import FEATURE_FIELDS


def _sorted(values: list[float]) -> SortedSeries:
    return sort_series(values, np.arange(len(values), dtype=np.float64))


class TestValidateSeries:
    """Tests for validate_series()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(("n", "expected"), [(0, False), (4, False), (5, True), (12, True)])
    def test_default_min_count(self, n: int, expected: bool) -> None:
        assert validate_series(np.ones(n), np.arange(n)) is expected

    @pytest.mark.unit
    def test_custom_min_count(self) -> None:
        assert validate_series([0.1, 0.2, 0.3], [1, 2, 3], min_count=3)
        assert not validate_series([0.1, 0.2, 0.3], [1, 2, 3], min_count=4)

    @pytest.mark.unit
    def test_ignores_order_and_duplicate_times(self) -> None:
        assert validate_series([0.1] * 5, [3, 3, 1, 2, 1])

    @pytest.mark.unit
    def test_length_mismatch_raises(self) -> None:
        with pytest.raises(InvalidSeriesError, match="differ in length"):
            validate_series([0.1, 0.2], [1.0])


class TestSortSeries:
    """Tests for sort_series()."""

    @pytest.mark.unit
    def test_values_follow_times(self) -> None:
        s = sort_series([0.3, 0.1, 0.2], [2020.5, 2020.1, 2020.3])
        npt.assert_array_equal(s.times, [2020.1, 2020.3, 2020.5])
        npt.assert_array_equal(s.values, [0.1, 0.2, 0.3])

    @pytest.mark.unit
    def test_equal_timestamps_keep_input_order(self) -> None:
        s = sort_series([0.9, 0.5, 0.1, 0.7], [2.0, 1.0, 2.0, 1.0])
        npt.assert_array_equal(s.times, [1.0, 1.0, 2.0, 2.0])
        npt.assert_array_equal(s.values, [0.5, 0.7, 0.9, 0.1])

    @pytest.mark.unit
    def test_input_not_mutated(self) -> None:
        values = np.array([0.3, 0.1, 0.2])
        times = np.array([3.0, 1.0, 2.0])
        sort_series(values, times)
        npt.assert_array_equal(values, [0.3, 0.1, 0.2])
        npt.assert_array_equal(times, [3.0, 1.0, 2.0])

    @pytest.mark.unit
    def test_empty_series(self) -> None:
        s = sort_series([], [])
        assert len(s) == 0


class TestDetectDrop:
    """Tests for detect_drop()."""

    @pytest.mark.unit
    def test_single_clear_drop(self, single_drop_series) -> None:
        drop = detect_drop(sort_series(*single_drop_series))
        assert drop is not None
        assert drop.drop_index == 3
        assert drop.drop_value == pytest.approx(-0.41)
        assert drop.drop_time == 4.0

    @pytest.mark.unit
    def test_strictly_decreasing_series(self) -> None:
        # diffs: -0.125, -0.375, -0.0625, -0.1875
        drop = detect_drop(_sorted([1.0, 0.875, 0.5, 0.4375, 0.25]))
        assert drop == DropRecord(drop_index=1, drop_value=-0.375, drop_time=2.0)

    @pytest.mark.unit
    def test_tie_resolves_to_first_occurrence(self) -> None:
        # diffs: -0.5, 0.25, -0.5, 0.75
        drop = detect_drop(_sorted([1.0, 0.5, 0.75, 0.25, 1.0]))
        assert drop is not None
        assert drop.drop_index == 0
        assert drop.drop_value == -0.5

    @pytest.mark.unit
    def test_no_decline_is_a_valid_result(self) -> None:
        # diffs: 0.25, 0.125, 0.5, 0.0625
        drop = detect_drop(_sorted([0.0, 0.25, 0.375, 0.875, 0.9375]))
        assert drop is not None
        assert drop.drop_value == 0.0625
        assert drop.drop_index == 3

    @pytest.mark.unit
    def test_drop_time_is_first_post_drop_sample(self) -> None:
        s = sort_series([0.6, 0.6, 0.1], [2015.2, 2015.9, 2015.4])
        drop = detect_drop(s)
        assert drop is not None
        # sorted values: 0.6 @2015.2, 0.1 @2015.4, 0.6 @2015.9
        assert drop.drop_index == 0
        assert drop.drop_time == 2015.4

    @pytest.mark.unit
    @pytest.mark.parametrize("values", [[], [0.4]])
    def test_fewer_than_two_observations_is_undefined(self, values) -> None:
        assert detect_drop(_sorted(values)) is None

    @pytest.mark.unit
    def test_drop_index_within_bounds(self) -> None:
        rng = np.random.default_rng(7)
        for n in range(2, 40):
            drop = detect_drop(_sorted(rng.random(n).tolist()))
            assert drop is not None
            assert 0 <= drop.drop_index <= n - 2


class TestAggregateWindows:
    """Tests for aggregate_windows()."""

    @pytest.mark.unit
    def test_single_drop_windows(self, single_drop_series) -> None:
        series = sort_series(*single_drop_series)
        stats = aggregate_windows(series, detect_drop(series), window=4)

        assert (stats.pre_start, stats.pre_end) == (0, 3)
        assert (stats.post_start, stats.post_end) == (4, 8)
        assert stats.pre_median == pytest.approx(0.50)
        # post window [0.10, 0.12, 0.15, 0.13]
        assert stats.post_median == pytest.approx(0.125)
        assert stats.dnbr == pytest.approx(0.375)

    @pytest.mark.unit
    def test_drop_at_series_start_has_empty_pre_window(self) -> None:
        series = _sorted([0.6, 0.1, 0.12, 0.11, 0.13])
        drop = detect_drop(series)
        assert drop is not None and drop.drop_index == 0

        stats = aggregate_windows(series, drop)

        assert stats.pre_start == stats.pre_end == 0
        assert stats.pre_median is MISSING
        assert stats.post_median == pytest.approx(0.115)
        assert stats.dnbr is MISSING

    @pytest.mark.unit
    def test_drop_at_series_end_clamps_post_window(self) -> None:
        series = _sorted([0.5, 0.5, 0.625, 0.5, 0.0])
        drop = detect_drop(series)
        assert drop is not None and drop.drop_index == 3

        stats = aggregate_windows(series, drop, window=4)

        assert (stats.pre_start, stats.pre_end) == (0, 3)
        assert (stats.post_start, stats.post_end) == (4, 5)
        assert stats.pre_median == 0.5
        assert stats.post_median == 0.0
        assert stats.dnbr == 0.5

    @pytest.mark.unit
    def test_window_smaller_than_available(self) -> None:
        series = _sorted([0.5, 0.25, 0.75, 1.0, 0.5, 0.0, 0.25, 0.5, 1.0])
        drop = detect_drop(series)
        assert drop is not None and drop.drop_index == 3

        stats = aggregate_windows(series, drop, window=2)

        assert (stats.pre_start, stats.pre_end) == (1, 3)
        assert (stats.post_start, stats.post_end) == (4, 6)
        assert stats.pre_median == 0.5  # [0.25, 0.75]
        assert stats.post_median == 0.25  # [0.5, 0.0]

    @pytest.mark.unit
    def test_zero_window_gives_missing_medians(self) -> None:
        series = _sorted([0.5, 0.75, 0.25, 0.5, 0.625])
        stats = aggregate_windows(series, detect_drop(series), window=0)
        assert stats.pre_median is MISSING
        assert stats.post_median is MISSING
        assert stats.dnbr is MISSING

    @pytest.mark.unit
    def test_flat_series_has_zero_dnbr(self) -> None:
        series = _sorted([0.3] * 6)
        stats = aggregate_windows(series, detect_drop(series))
        assert stats.pre_median == 0.3
        assert stats.post_median == 0.3
        assert stats.dnbr == 0.0

    @pytest.mark.unit
    def test_windows_never_leave_series(self) -> None:
        rng = np.random.default_rng(11)
        for n in range(2, 30):
            for window in (1, 2, 4, 10):
                series = _sorted(rng.normal(size=n).tolist())
                stats = aggregate_windows(series, detect_drop(series), window)
                assert 0 <= stats.pre_start <= stats.pre_end <= n
                assert 0 <= stats.post_start <= stats.post_end <= n
                assert stats.pre_end - stats.pre_start <= window
                assert stats.post_end - stats.post_start <= window

    @pytest.mark.unit
    def test_dnbr_matches_median_difference(self) -> None:
        rng = np.random.default_rng(3)
        for _ in range(50):
            series = _sorted(rng.uniform(-1, 1, size=int(rng.integers(5, 25))).tolist())
            stats = aggregate_windows(series, detect_drop(series))
            if is_missing(stats.dnbr):
                continue
            assert stats.dnbr == pytest.approx(
                stats.pre_median - stats.post_median, rel=1e-9
            )


class TestAssembleFeatures:
    """Tests for assemble_features()."""

    @pytest.mark.unit
    def test_invalid_gives_all_missing(self) -> None:
        drop = DropRecord(drop_index=0, drop_value=-0.2, drop_time=1.0)
        record = assemble_features(False, drop, None, observation_count=3)
        assert record.is_empty
        assert record.observation_count == 3

    @pytest.mark.unit
    def test_undefined_drop_gives_all_missing(self) -> None:
        assert assemble_features(True, None, None).is_empty

    @pytest.mark.unit
    def test_empty_window_only_affects_window_fields(self) -> None:
        series = _sorted([0.6, 0.1, 0.12, 0.11, 0.13])
        drop = detect_drop(series)
        record = assemble_features(True, drop, aggregate_windows(series, drop), 5)

        assert record.max_drop == pytest.approx(-0.5)
        assert record.drop_time == 1.0
        assert record.drop_index == 0
        assert record.pre_median is MISSING
        assert record.post_median == pytest.approx(0.115)
        assert record.dnbr is MISSING


class TestExtractFeatures:
    """End-to-end tests for extract_features()."""

    @pytest.mark.unit
    def test_single_drop(self, single_drop_series) -> None:
        record = extract_features(*single_drop_series)

        assert record.drop_index == 3
        assert record.max_drop == pytest.approx(-0.41)
        assert record.drop_time == 4.0
        assert record.pre_median == pytest.approx(0.50)
        assert record.post_median == pytest.approx(0.125)
        assert record.dnbr == pytest.approx(0.375)
        assert record.observation_count == 9
        assert record.is_complete

    @pytest.mark.unit
    def test_unsorted_input_gives_same_record(self, single_drop_series) -> None:
        values, times = single_drop_series
        order = np.random.default_rng(5).permutation(values.size)
        assert extract_features(values[order], times[order]) == extract_features(
            values, times
        )

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "values",
        [[], [0.5], [0.9, 0.1, 0.8], [0.5, 0.4, 0.3, 0.2]],
    )
    def test_short_series_is_all_missing(self, values) -> None:
        record = extract_features(values, list(range(len(values))))
        for name in FEATURE_FIELDS:
            assert getattr(record, name) is MISSING
        assert record.drop_index is MISSING
        assert record.observation_count == len(values)

    @pytest.mark.unit
    def test_tie_first_occurrence(self) -> None:
        record = extract_features([1.0, 0.5, 0.75, 0.25, 1.0], [0, 1, 2, 3, 4])
        assert record.drop_index == 0
        assert record.drop_time == 1.0

    @pytest.mark.unit
    def test_drop_at_start(self) -> None:
        record = extract_features([0.6, 0.1, 0.12, 0.11, 0.13], [0, 1, 2, 3, 4])
        assert record.pre_median is MISSING
        assert record.post_median == pytest.approx(0.115)
        assert record.dnbr is MISSING
        assert record.max_drop == pytest.approx(-0.5)

    @pytest.mark.unit
    def test_flat_series(self) -> None:
        record = extract_features([0.25] * 7, range(7))
        assert record.max_drop == 0.0
        assert record.dnbr == 0.0
        assert record.is_complete

    @pytest.mark.unit
    def test_idempotent(self, single_drop_series) -> None:
        first = extract_features(*single_drop_series)
        second = extract_features(*single_drop_series)
        assert first == second

    @pytest.mark.unit
    def test_min_count_override(self) -> None:
        record = extract_features([0.9, 0.1, 0.8], [0, 1, 2], min_count=3)
        assert not record.is_empty
        assert record.drop_index == 0

    @pytest.mark.unit
    def test_window_from_config(self, single_drop_series) -> None:
        record = extract_features(*single_drop_series, Config(window=1))
        assert record.pre_median == pytest.approx(0.48)
        assert record.post_median == pytest.approx(0.10)

    @pytest.mark.unit
    def test_uses_module_default_config(self) -> None:
        configure(min_count=10)
        record = extract_features([0.5, 0.4, 0.3, 0.2, 0.1], range(5))
        assert record.is_empty

    @pytest.mark.unit
    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_value_raises(self, bad: float) -> None:
        with pytest.raises(InvalidSeriesError, match="non-finite"):
            extract_features([0.5, bad, 0.4, 0.3, 0.2], range(5))

    @pytest.mark.unit
    def test_non_finite_time_raises(self) -> None:
        with pytest.raises(InvalidSeriesError):
            extract_features([0.5, 0.4, 0.3, 0.2, 0.1], [0, 1, np.nan, 3, 4])

    @pytest.mark.unit
    def test_two_dimensional_input_raises(self) -> None:
        with pytest.raises(InvalidSeriesError, match="one-dimensional"):
            extract_features(np.ones((5, 2)), np.ones((5, 2)))
