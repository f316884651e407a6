"""Tests for Lab conversion and image I/O helpers."""

import json
import logging

import numpy as np
import pytest

from distortlab.color import bgr8_to_lab32, luminance
from distortlab.error_handling import ProcessingError, ValidationError
from distortlab.io import (
    DETAIL_COLOR,
    FLAT_COLOR,
    MID_COLOR,
    apply_block_mask,
    atomic_write,
    read_image,
    setup_logging,
    visualize_regions,
    write_image,
)
from distortlab.region_masks import MASK_ON, RegionMasks


class TestColorConversion:
    """Test BGR to Lab conversion."""

    @pytest.mark.fast
    def test_black_white_gray(self):
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[0, 1] = 255
        bgr[1, 0] = 128

        lab = bgr8_to_lab32(bgr)

        assert lab.shape == (2, 2, 3)
        assert lab.dtype == np.float32
        assert lab[0, 0, 0] == pytest.approx(0.0, abs=1e-3)
        assert lab[0, 1, 0] == pytest.approx(100.0, abs=1e-2)
        assert 50.0 < lab[1, 0, 0] < 56.0
        assert np.allclose(lab[..., 1:], 0.0, atol=1e-2)

    @pytest.mark.fast
    def test_channel_order_is_bgr(self):
        blue = np.zeros((1, 1, 3), dtype=np.uint8)
        blue[0, 0, 0] = 255
        lab = bgr8_to_lab32(blue)
        # Pure blue has a strongly negative b* component
        assert lab[0, 0, 2] < -80.0

    @pytest.mark.fast
    def test_grayscale_input(self):
        gray = np.full((3, 4), 200, dtype=np.uint8)
        lab = bgr8_to_lab32(gray)
        assert lab.shape == (3, 4, 3)

    @pytest.mark.fast
    def test_invalid_inputs(self):
        with pytest.raises(ValidationError):
            bgr8_to_lab32(np.zeros((2, 2, 3), dtype=np.float32))
        with pytest.raises(ValidationError):
            bgr8_to_lab32(np.zeros((2, 2, 4), dtype=np.uint8))
        with pytest.raises(ValidationError):
            bgr8_to_lab32(np.zeros((0, 0, 3), dtype=np.uint8))

    @pytest.mark.fast
    def test_luminance(self):
        lab = np.arange(12, dtype=np.float32).reshape(2, 2, 3)
        np.testing.assert_array_equal(luminance(lab), lab[..., 0])
        field = np.ones((2, 2), dtype=np.float32)
        assert luminance(field) is field
        with pytest.raises(ValidationError):
            luminance(np.zeros(4))


class TestImageIO:
    """Test reading, writing and mask overlay."""

    @pytest.mark.fast
    def test_write_and_read_roundtrip(self, tmp_path):
        image = np.zeros((4, 5, 3), dtype=np.uint8)
        image[1, 2] = (10, 20, 30)
        path = write_image(tmp_path / "nested" / "img.png", image)

        assert path.exists()
        np.testing.assert_array_equal(read_image(path), image)

    @pytest.mark.fast
    def test_read_missing_or_corrupt(self, tmp_path):
        with pytest.raises(ProcessingError):
            read_image(tmp_path / "missing.png")

        corrupt = tmp_path / "corrupt.png"
        corrupt.write_bytes(b"not an image")
        with pytest.raises(ProcessingError):
            read_image(corrupt)

    @pytest.mark.fast
    def test_write_without_encoder_raises_processing_error(self, tmp_path):
        image = np.zeros((4, 4, 3), dtype=np.uint8)
        with pytest.raises(ProcessingError, match="write image"):
            write_image(tmp_path / "out.j2c", image)

    @pytest.mark.fast
    def test_read_by_content_not_extension(self, tmp_path):
        image = np.full((3, 3, 3), 7, dtype=np.uint8)
        png = write_image(tmp_path / "a.png", image)
        renamed = png.rename(tmp_path / "a.j2c")

        np.testing.assert_array_equal(read_image(renamed), image)

    @pytest.mark.fast
    def test_apply_block_mask(self):
        image = np.full((3, 3, 3), 99, dtype=np.uint8)
        mask = np.zeros((3, 3), dtype=np.uint8)
        mask[1, 1] = 255

        out = apply_block_mask(image, mask)

        assert out[1, 1].tolist() == [0, 0, 0]
        assert np.count_nonzero(out == 99) == 8 * 3
        assert image[1, 1].tolist() == [99, 99, 99]

    @pytest.mark.fast
    def test_apply_block_mask_validation(self):
        image = np.zeros((3, 3, 3), dtype=np.uint8)
        with pytest.raises(ValidationError):
            apply_block_mask(image, np.zeros((2, 3), dtype=np.uint8))
        with pytest.raises(ValidationError):
            apply_block_mask(image, np.zeros((3, 3), dtype=np.float32))
        with pytest.raises(ValidationError):
            apply_block_mask(np.zeros((3, 3), dtype=np.uint8), np.zeros((3, 3), dtype=np.uint8))

    @pytest.mark.fast
    def test_atomic_write(self, tmp_path):
        target = tmp_path / "out" / "report.json"
        with atomic_write(target) as f:
            json.dump({"a": 1}, f)

        assert json.loads(target.read_text()) == {"a": 1}
        assert list(target.parent.iterdir()) == [target]

    @pytest.mark.fast
    def test_atomic_write_failure_leaves_nothing(self, tmp_path):
        target = tmp_path / "report.json"
        with pytest.raises(RuntimeError):
            with atomic_write(target) as f:
                f.write("partial")
                raise RuntimeError("stop")

        assert not target.exists()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.fast
    def test_setup_logging_creates_log_file(self, tmp_path):
        logger = setup_logging(tmp_path / "logs", "DEBUG")
        try:
            assert logger.name == "distortlab"
            assert len(list((tmp_path / "logs").glob("distortlab_*.log"))) == 1
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                if isinstance(handler, logging.FileHandler):
                    root.removeHandler(handler)
                    handler.close()


class TestVisualizeRegions:
    """Test the region colour overlay."""

    @staticmethod
    def _masks(labels: np.ndarray) -> RegionMasks:
        return RegionMasks(
            flat=np.where(labels == 0, MASK_ON, 0).astype(np.uint8),
            mid=np.where(labels == 1, MASK_ON, 0).astype(np.uint8),
            detail=np.where(labels == 2, MASK_ON, 0).astype(np.uint8),
            grad_mag=np.zeros(labels.shape, dtype=np.float32),
        )

    @pytest.mark.fast
    def test_colour_mapping(self):
        image = np.full((2, 2, 3), 50, dtype=np.uint8)
        labels = np.array([[0, 1], [2, 3]])

        out = visualize_regions(image, self._masks(labels))

        assert out[0, 0].tolist() == [255, 0, 0]
        assert out[0, 1].tolist() == [0, 255, 255]
        assert out[1, 0].tolist() == [0, 0, 255]
        # Unclassified pixels keep the input colour
        assert out[1, 1].tolist() == [50, 50, 50]
        assert image[0, 0].tolist() == [50, 50, 50]
        assert tuple(out[0, 0]) == FLAT_COLOR
        assert tuple(out[0, 1]) == MID_COLOR
        assert tuple(out[1, 0]) == DETAIL_COLOR

    @pytest.mark.fast
    def test_flat_wins_over_overlapping_masks(self):
        image = np.zeros((1, 1, 3), dtype=np.uint8)
        on = np.full((1, 1), MASK_ON, dtype=np.uint8)
        masks = RegionMasks(flat=on, mid=on, detail=on, grad_mag=np.zeros((1, 1)))

        out = visualize_regions(image, masks)

        assert out[0, 0].tolist() == [255, 0, 0]

    @pytest.mark.fast
    def test_validation(self):
        masks = self._masks(np.zeros((2, 2), dtype=np.int32))
        with pytest.raises(ValidationError):
            visualize_regions(np.zeros((3, 3, 3), dtype=np.uint8), masks)
        with pytest.raises(ValidationError):
            visualize_regions(np.zeros((2, 2), dtype=np.uint8), masks)
