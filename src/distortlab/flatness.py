"""Row-wise detection of flattened areas in a distorted image.

Compression blocking replaces textured content with nearly uniform blocks.
Along each image row this shows up as a run of distorted samples whose
max-min range over a short trailing window is tiny, while the reference either
differs noticeably at that pixel or was not flat over the same window.
"""

import logging

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .config import DEFAULT_FLATNESS_CONFIG, FlatnessConfig
from .error_handling import ValidationError

logger = logging.getLogger(__name__)

MAX_CHANNELS = 3


def _as_channels(array: np.ndarray, leading_dims: int, name: str) -> np.ndarray:
    """Return *array* as float32 with an explicit trailing channel axis."""
    array = np.asarray(array)
    if array.ndim == leading_dims:
        array = array[..., np.newaxis]
    elif array.ndim != leading_dims + 1:
        raise ValidationError(
            f"{name} must have {leading_dims} or {leading_dims + 1} dimensions, "
            f"got shape {array.shape}"
        )

    channels = array.shape[-1]
    if channels < 1 or channels > MAX_CHANNELS:
        raise ValidationError(
            f"{name} must have 1-{MAX_CHANNELS} channels, got {channels}"
        )
    if array.size == 0:
        raise ValidationError(f"{name} must not be empty")
    return array.astype(np.float32, copy=False)


class RowFlatnessDetector:
    """Sliding-window flatness analysis producing a candidate blocking mask."""

    def __init__(
        self,
        window_size: int | None = None,
        flat_dx_threshold: float | None = None,
        diff_threshold: float | None = None,
        ref_threshold: float | None = None,
        config: FlatnessConfig | None = None,
    ):
        """Initialize flatness detector.

        Args:
            window_size: Trailing window length in pixels
            flat_dx_threshold: Max-min range of the distorted window treated as flat
            diff_threshold: |dist - ref| at which a pixel counts as changed
            ref_threshold: Reference window range above which it was textured
            config: Flatness configuration supplying defaults
        """
        config = config or DEFAULT_FLATNESS_CONFIG
        self.window_size = config.WINDOW_SIZE if window_size is None else window_size
        self.flat_dx_threshold = (
            config.FLAT_DX_THRESHOLD if flat_dx_threshold is None else flat_dx_threshold
        )
        self.diff_threshold = (
            config.DIFF_THRESHOLD if diff_threshold is None else diff_threshold
        )
        self.ref_threshold = (
            config.REF_THRESHOLD if ref_threshold is None else ref_threshold
        )

        if self.window_size < 1:
            raise ValueError(f"window_size must be at least 1, got {self.window_size}")

    def _candidates(self, ref: np.ndarray, dist: np.ndarray) -> np.ndarray:
        """Per-channel candidate flags for (rows, cols, channels) inputs.

        Returns:
            Boolean array (rows, cols, channels)
        """
        rows, cols, channels = dist.shape
        w = self.window_size
        candidates = np.zeros((rows, cols, channels), dtype=bool)
        if cols < w:
            return candidates

        # Windows ending at column x cover x-w+1..x; only full windows count
        dist_win = sliding_window_view(dist, w, axis=1)
        ref_win = sliding_window_view(ref, w, axis=1)
        dx = dist_win.max(axis=-1) - dist_win.min(axis=-1)
        dx_ref = ref_win.max(axis=-1) - ref_win.min(axis=-1)

        difference = np.abs(dist[:, w - 1 :] - ref[:, w - 1 :])

        candidates[:, w - 1 :] = (dx <= self.flat_dx_threshold) & (
            (difference >= self.diff_threshold) | (dx_ref > self.ref_threshold)
        )
        return candidates

    def _backfill(self, candidates: np.ndarray) -> np.ndarray:
        """Extend every candidate run start over the rest of its window.

        A run starting at column x (with x-1 not a candidate) also marks the
        w-1 columns before it, which belong to the same flat window. The
        lookback is bounded by the window length.
        """
        w = self.window_size
        if w <= 1:
            return candidates

        previous = np.zeros_like(candidates)
        previous[:, 1:] = candidates[:, :-1]
        starts = candidates & ~previous
        starts[:, 0] = False

        filled = candidates.copy()
        for k in range(1, w):
            if k >= candidates.shape[1]:
                break
            filled[:, :-k] |= starts[:, k:]
        return filled

    def _detect(self, ref: np.ndarray, dist: np.ndarray) -> np.ndarray:
        if ref.shape != dist.shape:
            raise ValidationError(
                f"reference/distorted shape mismatch {ref.shape} vs {dist.shape}",
                context={"ref": ref.shape, "dist": dist.shape},
            )
        flags = self._backfill(self._candidates(ref, dist))
        # Any channel flags the pixel
        combined = np.any(flags, axis=-1)
        return combined.astype(np.uint8) * 255

    def analyze_row(self, ref_row: np.ndarray, dist_row: np.ndarray) -> np.ndarray:
        """Candidate mask for a single row.

        Args:
            ref_row: Reference samples, shape (cols,) or (cols, channels)
            dist_row: Distorted samples, same shape

        Returns:
            uint8 array (cols,) with values 0 or 255
        """
        ref = _as_channels(ref_row, 1, "ref_row")[np.newaxis]
        dist = _as_channels(dist_row, 1, "dist_row")[np.newaxis]
        return self._detect(ref, dist)[0]

    def detect(self, ref: np.ndarray, dist: np.ndarray) -> np.ndarray:
        """Candidate mask for a whole image; rows are processed independently.

        Args:
            ref: Reference image, shape (rows, cols) or (rows, cols, channels)
            dist: Distorted image, same shape

        Returns:
            uint8 mask (rows, cols) with values 0 or 255
        """
        ref_arr = _as_channels(ref, 2, "ref")
        dist_arr = _as_channels(dist, 2, "dist")
        mask = self._detect(ref_arr, dist_arr)
        logger.debug(
            f"Flatness candidates: {int(np.count_nonzero(mask))} of {mask.size} pixels"
        )
        return mask
