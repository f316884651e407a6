"""Shared synthetic images for the DistortLab test-suite."""

from pathlib import Path

import cv2
import numpy as np
import pytest


def make_checkerboard(size: int, low: float, high: float) -> np.ndarray:
    """Pixel-level checkerboard luminance field (float32)."""
    yy, xx = np.mgrid[0:size, 0:size]
    return np.where((xx + yy) % 2 == 0, low, high).astype(np.float32)


def make_blocked_pair(
    size: int = 16, block: tuple[int, int] = (4, 12), value: float = 70.0
) -> tuple[np.ndarray, np.ndarray]:
    """Checkerboard reference and a copy with one square replaced by a flat block."""
    ref = make_checkerboard(size, 40.0, 60.0)
    dist = ref.copy()
    start, stop = block
    dist[start:stop, start:stop] = value
    return ref, dist


def write_gray_bgr(path: Path, gray: np.ndarray) -> Path:
    """Write a uint8 gray field as a 3-channel BGR PNG."""
    path.parent.mkdir(parents=True, exist_ok=True)
    bgr = cv2.cvtColor(gray.astype(np.uint8), cv2.COLOR_GRAY2BGR)
    assert cv2.imwrite(str(path), bgr)
    return path


@pytest.fixture
def blocked_pair():
    """16x16 checkerboard 40/60 with rows/cols 4..11 flattened to 70."""
    return make_blocked_pair()


@pytest.fixture
def image_pair_files(tmp_path):
    """32x32 gray checkerboard PNGs; the distorted one has a flat 16x16 block."""
    ref = make_checkerboard(32, 100, 150)
    dist = ref.copy()
    dist[8:24, 8:24] = 200

    ref_path = write_gray_bgr(tmp_path / "refs" / "I01.png", ref)
    dist_path = write_gray_bgr(tmp_path / "dist" / "i01_jpeg_1.png", dist)
    return ref_path, dist_path
