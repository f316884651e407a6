"""Tests for streaming run-based region extraction."""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from distortlab.error_handling import ValidationError
from distortlab.region_extraction import (
    Region,
    Run,
    StreamingRegionExtractor,
    build_regions_from_mask,
    iter_runs,
    run_length_encode,
    total_area,
)


class TestRunLengthEncode:
    """Test row run-length encoding."""

    @pytest.mark.fast
    def test_runs(self):
        row = np.array([0, 255, 255, 0, 0, 255, 0, 255, 255, 255], dtype=np.uint8)
        runs = run_length_encode(row, 3)
        assert runs == [Run(3, 1, 3), Run(3, 5, 6), Run(3, 7, 10)]
        assert [run.width for run in runs] == [2, 1, 3]

    @pytest.mark.fast
    def test_empty_and_full_rows(self):
        assert run_length_encode(np.zeros(6, dtype=np.uint8), 0) == []
        assert run_length_encode(np.ones(6, dtype=np.uint8), 2) == [Run(2, 0, 6)]

    @pytest.mark.fast
    def test_iter_runs_row_major(self):
        mask = np.array([[1, 0, 1], [0, 0, 0], [1, 1, 0]], dtype=np.uint8)
        assert list(iter_runs(mask)) == [
            Run(0, 0, 1),
            Run(0, 2, 3),
            Run(2, 0, 2),
        ]


class TestRegion:
    """Test the region record."""

    @pytest.mark.fast
    def test_from_run_and_extend(self):
        region = Region.from_run(Run(2, 3, 7))
        assert (region.min_col, region.max_col) == (3, 6)
        assert (region.min_row, region.max_row) == (2, 2)
        assert region.pixel_area == 4

        assert region.can_extend(Run(3, 6, 9))
        assert not region.can_extend(Run(3, 7, 9))  # touches only diagonally
        assert not region.can_extend(Run(4, 3, 7))  # row gap
        assert not region.can_extend(Run(2, 3, 7))  # same row

        grown = region.extended(Run(3, 1, 9))
        assert (grown.min_col, grown.max_col) == (1, 8)
        assert grown.max_row == 3
        assert grown.pixel_area == 12
        assert grown.width == 8
        assert grown.height == 2
        assert grown.bbox_area == 16
        assert grown.fill_ratio == pytest.approx(0.75)
        # The original record is unchanged
        assert (region.min_col, region.max_row, region.pixel_area) == (3, 2, 4)

    @pytest.mark.fast
    def test_region_is_immutable(self):
        region = Region.from_run(Run(0, 0, 4))
        with pytest.raises(FrozenInstanceError):
            region.pixel_area = 99


class TestStreamingRegionExtractor:
    """Test region growth, splitting and finalization."""

    @pytest.mark.fast
    def test_vertical_strip(self):
        mask = np.zeros((4, 4), dtype=np.uint8)
        mask[:, 0:2] = 255

        regions = build_regions_from_mask(mask)

        assert len(regions) == 1
        region = regions[0]
        assert (region.min_col, region.max_col, region.min_row, region.max_row) == (
            0,
            1,
            0,
            3,
        )
        assert region.pixel_area == 8

    @pytest.mark.fast
    def test_row_gap_splits_regions(self):
        mask = np.zeros((5, 6), dtype=np.uint8)
        mask[[0, 1, 3, 4], 1:5] = 255

        regions = build_regions_from_mask(mask)

        assert len(regions) == 2
        rows = sorted((r.min_row, r.max_row) for r in regions)
        assert rows == [(0, 1), (3, 4)]
        assert all(r.pixel_area == 8 for r in regions)

    @pytest.mark.fast
    def test_area_is_sum_of_run_widths(self):
        mask = np.zeros((3, 10), dtype=np.uint8)
        mask[0, 2:4] = 255
        mask[1, 0:9] = 255
        mask[2, 5:6] = 255

        regions = build_regions_from_mask(mask)

        assert len(regions) == 1
        region = regions[0]
        assert region.pixel_area == 12
        assert region.bbox_area == 27
        assert (region.min_col, region.max_col) == (0, 8)

    @pytest.mark.fast
    def test_area_conservation_on_random_mask(self):
        rng = np.random.default_rng(42)
        mask = (rng.random((40, 50)) > 0.6).astype(np.uint8) * 255

        regions = build_regions_from_mask(mask)

        assert total_area(regions) == int(np.count_nonzero(mask))
        for region in regions:
            assert region.pixel_area <= region.bbox_area
            window = mask[
                region.min_row : region.max_row + 1,
                region.min_col : region.max_col + 1,
            ]
            assert np.count_nonzero(window) >= region.pixel_area

    @pytest.mark.fast
    def test_first_match_one_run_per_region(self):
        """Two runs below one region: the first extends it, the second starts anew."""
        mask = np.zeros((2, 10), dtype=np.uint8)
        mask[0, 0:10] = 255
        mask[1, 0:3] = 255
        mask[1, 6:9] = 255

        regions = build_regions_from_mask(mask)

        assert len(regions) == 2
        extended = next(r for r in regions if r.min_row == 0)
        assert extended.pixel_area == 13
        assert extended.max_row == 1
        assert (extended.min_col, extended.max_col) == (0, 9)
        started = next(r for r in regions if r.min_row == 1)
        assert (started.min_col, started.max_col, started.pixel_area) == (6, 8, 3)

    @pytest.mark.fast
    def test_first_match_one_region_per_run(self):
        """A wide run below two regions extends only the earlier one."""
        mask = np.zeros((2, 10), dtype=np.uint8)
        mask[0, 0:3] = 255
        mask[0, 6:9] = 255
        mask[1, 0:10] = 255

        regions = build_regions_from_mask(mask)

        assert len(regions) == 2
        areas = sorted(r.pixel_area for r in regions)
        assert areas == [3, 13]
        merged = next(r for r in regions if r.pixel_area == 13)
        assert merged.min_col == 0

    @pytest.mark.fast
    def test_incremental_feed_matches_batch(self):
        rng = np.random.default_rng(3)
        mask = (rng.random((20, 30)) > 0.5).astype(np.uint8)

        extractor = StreamingRegionExtractor()
        for row_values in mask:
            extractor.feed_row(row_values)
            assert extractor.active_count <= row_values.size
        streamed = extractor.finish()

        assert streamed == build_regions_from_mask(mask)
        assert extractor.active_count == 0

    @pytest.mark.fast
    def test_extract_resets_state(self):
        mask = np.full((3, 3), 255, dtype=np.uint8)
        extractor = StreamingRegionExtractor()

        first = extractor.extract(mask)
        second = extractor.extract(mask)

        assert first == second
        assert len(second) == 1

    @pytest.mark.fast
    def test_empty_mask(self):
        assert build_regions_from_mask(np.zeros((5, 5), dtype=np.uint8)) == []

    @pytest.mark.fast
    def test_invalid_mask(self):
        with pytest.raises(ValidationError):
            build_regions_from_mask(np.zeros((2, 2, 2), dtype=np.uint8))
        with pytest.raises(ValidationError):
            build_regions_from_mask(np.zeros((0, 3), dtype=np.uint8))

    @pytest.mark.fast
    def test_finished_regions_are_not_changed_by_later_rows(self):
        extractor = StreamingRegionExtractor()
        extractor.feed_row(np.array([1, 1, 0, 0], dtype=np.uint8))
        snapshot = extractor.finish()

        extractor.feed_row(np.array([1, 1, 1, 1], dtype=np.uint8))

        assert snapshot == [Region(0, 1, 0, 0, 2)]
        with pytest.raises(FrozenInstanceError):
            snapshot[0].max_row = 1

    @pytest.mark.fast
    def test_feed_row_labels_rows_in_order(self):
        extractor = StreamingRegionExtractor()
        for row_values in np.eye(3, dtype=np.uint8):
            extractor.feed_row(row_values)

        regions = extractor.finish()

        assert [r.min_row for r in regions] == [0, 1, 2]
        assert not hasattr(extractor, "feed_runs")
