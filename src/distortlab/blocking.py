"""Compression blocking artifact detection for reference/distorted image pairs.

This module implements the blocking detection pipeline:
- Row-wise flatness analysis marks pixels where the distorted image became
  locally flat although the reference was textured or differs noticeably
- Streaming region extraction groups candidate pixels into vertical stacks of runs
- Region classification keeps regions whose statistics match a textured area
  that was replaced by a nearly uniform block
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from .config import DEFAULT_BLOCKING_CONFIG, BlockingConfig, FlatnessConfig
from .error_handling import ValidationError, require_2d, require_same_shape
from .flatness import RowFlatnessDetector
from .region_extraction import Region, StreamingRegionExtractor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionStats:
    """Statistics of one region over its masked pixels."""

    count: int
    fill_ratio: float
    mean_diff: float
    std_ref: float
    std_dist: float


class RegionClassifier:
    """Decides which extracted regions are compression blocking artifacts."""

    def __init__(
        self,
        min_area: int | None = None,
        min_side: int | None = None,
        min_fill_ratio: float | None = None,
        diff_threshold: float | None = None,
        ref_detail_threshold: float | None = None,
        flat_threshold: float | None = None,
        config: BlockingConfig | None = None,
    ):
        """Initialize region classifier.

        Thresholds given explicitly are absolute luminance values; otherwise
        they are derived from the configuration's fractions of its scale.

        Args:
            min_area: Minimum region pixel area
            min_side: Minimum bounding-box width and height
            min_fill_ratio: Minimum pixel_area / bounding-box area
            diff_threshold: Minimum mean |dist - ref|
            ref_detail_threshold: Minimum reference standard deviation
            flat_threshold: Maximum distorted standard deviation
            config: Blocking configuration supplying defaults
        """
        config = config or DEFAULT_BLOCKING_CONFIG
        self.min_area = config.MIN_AREA if min_area is None else min_area
        self.min_side = config.MIN_SIDE if min_side is None else min_side
        self.min_fill_ratio = (
            config.MIN_FILL_RATIO if min_fill_ratio is None else min_fill_ratio
        )
        self.diff_threshold = (
            config.diff_threshold if diff_threshold is None else diff_threshold
        )
        self.ref_detail_threshold = (
            config.ref_detail_threshold
            if ref_detail_threshold is None
            else ref_detail_threshold
        )
        self.flat_threshold = (
            config.flat_threshold if flat_threshold is None else flat_threshold
        )

    def passes_size_filter(self, region: Region) -> bool:
        return (
            region.pixel_area >= self.min_area
            and min(region.width, region.height) >= self.min_side
        )

    def region_stats(
        self,
        region: Region,
        candidate_mask: np.ndarray,
        ref_l: np.ndarray,
        dist_l: np.ndarray,
    ) -> RegionStats | None:
        """Statistics over the masked pixels inside the region's bounding box.

        Returns:
            RegionStats, or None when no masked pixel lies inside the box
        """
        rows = slice(region.min_row, region.max_row + 1)
        cols = slice(region.min_col, region.max_col + 1)
        selected = candidate_mask[rows, cols] != 0
        count = int(np.count_nonzero(selected))
        if count == 0:
            return None

        ref_values = ref_l[rows, cols][selected].astype(np.float64)
        dist_values = dist_l[rows, cols][selected].astype(np.float64)

        return RegionStats(
            count=count,
            fill_ratio=region.fill_ratio,
            mean_diff=float(np.mean(np.abs(dist_values - ref_values))),
            std_ref=float(np.std(ref_values)),
            std_dist=float(np.std(dist_values)),
        )

    def is_blocking(self, stats: RegionStats) -> bool:
        """Textured in the reference, flat in the distorted image, clearly changed."""
        return (
            stats.fill_ratio >= self.min_fill_ratio
            and stats.mean_diff >= self.diff_threshold
            and stats.std_ref >= self.ref_detail_threshold
            and stats.std_dist <= self.flat_threshold
        )

    def classify(
        self,
        regions: list[Region],
        candidate_mask: np.ndarray,
        ref_l: np.ndarray,
        dist_l: np.ndarray,
    ) -> tuple[np.ndarray, list[Region]]:
        """Classify regions and paint the blocking ones.

        Args:
            regions: Regions extracted from ``candidate_mask``
            candidate_mask: Binary candidate mask (0 / non-zero)
            ref_l: Reference luminance
            dist_l: Distorted luminance

        Returns:
            Tuple of (uint8 mask with 255 on blocking pixels, blocking regions)
        """
        mask = require_2d(candidate_mask, "candidate_mask")
        ref = require_2d(ref_l, "ref_l")
        dist = require_2d(dist_l, "dist_l")
        require_same_shape(ref, dist, "reference/distorted luminance")
        require_same_shape(mask, ref, "candidate mask/luminance")

        output = np.zeros(mask.shape, dtype=np.uint8)
        blocking: list[Region] = []

        for region in regions:
            if not self.passes_size_filter(region):
                continue

            stats = self.region_stats(region, mask, ref, dist)
            if stats is None or not self.is_blocking(stats):
                continue

            rows = slice(region.min_row, region.max_row + 1)
            cols = slice(region.min_col, region.max_col + 1)
            output[rows, cols][mask[rows, cols] != 0] = 255
            blocking.append(region)

        logger.debug(
            f"Classified {len(blocking)} of {len(regions)} regions as blocking"
        )
        return output, blocking


@dataclass
class BlockingResult:
    """Blocking mask together with the intermediate pipeline products."""

    mask: np.ndarray
    candidate_mask: np.ndarray
    regions: list[Region]
    blocking_regions: list[Region]


class BlockingArtifactDetector:
    """Runs flatness detection, region extraction and region classification."""

    def __init__(
        self,
        flatness: RowFlatnessDetector | None = None,
        classifier: RegionClassifier | None = None,
        flatness_config: FlatnessConfig | None = None,
        blocking_config: BlockingConfig | None = None,
    ):
        self.flatness = flatness or RowFlatnessDetector(config=flatness_config)
        self.classifier = classifier or RegionClassifier(config=blocking_config)

    def analyze(self, ref_lab: np.ndarray, dist_lab: np.ndarray) -> BlockingResult:
        """Run the full pipeline.

        Args:
            ref_lab: Reference luminance (H, W) or Lab image (H, W, C) with
                luminance in channel 0
            dist_lab: Distorted image, same shape

        Returns:
            BlockingResult with the final mask and intermediate products
        """
        ref = np.asarray(ref_lab)
        dist = np.asarray(dist_lab)
        if ref.shape != dist.shape:
            raise ValidationError(
                f"reference/distorted shape mismatch {ref.shape} vs {dist.shape}",
                context={"ref": ref.shape, "dist": dist.shape},
            )

        candidate_mask = self.flatness.detect(ref, dist)
        regions = StreamingRegionExtractor().extract(candidate_mask)

        ref_l = ref if ref.ndim == 2 else ref[..., 0]
        dist_l = dist if dist.ndim == 2 else dist[..., 0]
        mask, blocking = self.classifier.classify(
            regions, candidate_mask, ref_l, dist_l
        )
        return BlockingResult(
            mask=mask,
            candidate_mask=candidate_mask,
            regions=regions,
            blocking_regions=blocking,
        )

    def detect_mask(self, ref_lab: np.ndarray, dist_lab: np.ndarray) -> np.ndarray:
        """Blocking-artifact mask (uint8, 0 or 255) for an image pair."""
        return self.analyze(ref_lab, dist_lab).mask


def flat_blocking_to_mask(ref_lab: np.ndarray, dist_lab: np.ndarray) -> np.ndarray:
    """Blocking mask for Lab (or luminance) inputs with default thresholds."""
    return BlockingArtifactDetector().detect_mask(ref_lab, dist_lab)


def blocking_to_mask(ref_bgr: np.ndarray, dist_bgr: np.ndarray) -> np.ndarray:
    """Blocking mask for two 8-bit BGR images.

    Args:
        ref_bgr: Reference image as decoded by OpenCV [H, W, 3] uint8
        dist_bgr: Distorted image, same shape

    Returns:
        uint8 mask [H, W] with 255 on blocking pixels
    """
    from .color import bgr8_to_lab32

    return flat_blocking_to_mask(bgr8_to_lab32(ref_bgr), bgr8_to_lab32(dist_bgr))


def calculate_blocking_metrics(
    ref_lab: np.ndarray,
    dist_lab: np.ndarray,
    detector: BlockingArtifactDetector | None = None,
) -> dict[str, Any]:
    """Summarise blocking detection for an image pair.

    Args:
        ref_lab: Reference luminance or Lab image
        dist_lab: Distorted luminance or Lab image
        detector: Detector to use (defaults to default thresholds)

    Returns:
        Dictionary with blocking detection metrics
    """
    detector = detector or BlockingArtifactDetector()
    result = detector.analyze(ref_lab, dist_lab)
    total_pixels = result.mask.size

    return {
        "blocking_pixel_ratio": float(np.count_nonzero(result.mask)) / total_pixels,
        "blocking_region_count": len(result.blocking_regions),
        "candidate_pixel_ratio": float(np.count_nonzero(result.candidate_mask))
        / total_pixels,
        "candidate_region_count": len(result.regions),
    }
