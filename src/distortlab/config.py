"""Configuration settings for DistortLab."""

from dataclasses import dataclass


@dataclass
class RegionConfig:
    """Configuration for gradient-based flat/mid/detail region classification."""

    # Percentile (0-1) of the gradient distribution at or below which pixels are flat
    FLAT_PERCENTILE: float = 0.30

    # Percentile (0-1) at or above which pixels are detail
    DETAIL_PERCENTILE: float = 0.70

    # Gaussian pre-smoothing of luminance before the Sobel pass (0 disables it)
    PRE_SMOOTH_SIGMA: float = 1.0

    # Light Gaussian pass over the gradient magnitude
    POST_SMOOTH_SIGMA: float = 0.8

    def __post_init__(self) -> None:
        for name in ("FLAT_PERCENTILE", "DETAIL_PERCENTILE"):
            value = getattr(self, name)
            if value < 0.0 or value > 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        # FLAT_PERCENTILE <= DETAIL_PERCENTILE is expected but not enforced;
        # the flat test always wins when thresholds cross.

        if self.PRE_SMOOTH_SIGMA < 0:
            raise ValueError(
                f"PRE_SMOOTH_SIGMA must be non-negative, got {self.PRE_SMOOTH_SIGMA}"
            )
        if self.POST_SMOOTH_SIGMA <= 0:
            raise ValueError(
                f"POST_SMOOTH_SIGMA must be positive, got {self.POST_SMOOTH_SIGMA}"
            )


@dataclass
class FlatnessConfig:
    """Configuration for the per-row sliding-window flatness detector.

    All thresholds are expressed in luminance-scale units (L* 0-100).
    """

    # Sliding window length in pixels
    WINDOW_SIZE: int = 8

    # Max-min range of the distorted window at or below which it counts as flat
    FLAT_DX_THRESHOLD: float = 0.5

    # Per-pixel |dist - ref| at or above which the pixel counts as changed
    DIFF_THRESHOLD: float = 1.0

    # Max-min range of the reference window above which the reference was textured
    REF_THRESHOLD: float = 1.0

    def __post_init__(self) -> None:
        if self.WINDOW_SIZE < 1:
            raise ValueError(f"WINDOW_SIZE must be at least 1, got {self.WINDOW_SIZE}")
        if self.FLAT_DX_THRESHOLD < 0:
            raise ValueError(
                f"FLAT_DX_THRESHOLD must be non-negative, got {self.FLAT_DX_THRESHOLD}"
            )
        if self.DIFF_THRESHOLD < 0:
            raise ValueError(
                f"DIFF_THRESHOLD must be non-negative, got {self.DIFF_THRESHOLD}"
            )
        if self.REF_THRESHOLD < 0:
            raise ValueError(
                f"REF_THRESHOLD must be non-negative, got {self.REF_THRESHOLD}"
            )


@dataclass
class BlockingConfig:
    """Configuration for classifying extracted regions as blocking artifacts."""

    # Upper bound of the luminance scale the fractional thresholds refer to
    LUMINANCE_SCALE: float = 100.0

    # Size filters applied before any statistics are computed
    MIN_AREA: int = 64
    MIN_SIDE: int = 4

    # Minimum pixel_area / bounding-box area
    MIN_FILL_RATIO: float = 0.30

    # Thresholds as fractions of LUMINANCE_SCALE
    DIFF_FRACTION: float = 0.12  # mean |dist - ref| must reach this
    REF_DETAIL_FRACTION: float = 0.03  # reference std must reach this
    FLAT_FRACTION: float = 0.20  # distorted std must not exceed this

    def __post_init__(self) -> None:
        if self.LUMINANCE_SCALE <= 0:
            raise ValueError(
                f"LUMINANCE_SCALE must be positive, got {self.LUMINANCE_SCALE}"
            )
        if self.MIN_AREA < 1:
            raise ValueError(f"MIN_AREA must be at least 1, got {self.MIN_AREA}")
        if self.MIN_SIDE < 1:
            raise ValueError(f"MIN_SIDE must be at least 1, got {self.MIN_SIDE}")
        if self.MIN_FILL_RATIO < 0 or self.MIN_FILL_RATIO > 1:
            raise ValueError(
                f"MIN_FILL_RATIO must be between 0 and 1, got {self.MIN_FILL_RATIO}"
            )

        fractions = [self.DIFF_FRACTION, self.REF_DETAIL_FRACTION, self.FLAT_FRACTION]
        if any(f < 0 for f in fractions):
            raise ValueError(
                f"Threshold fractions must be non-negative, got {fractions}"
            )

    @property
    def diff_threshold(self) -> float:
        return self.DIFF_FRACTION * self.LUMINANCE_SCALE

    @property
    def ref_detail_threshold(self) -> float:
        return self.REF_DETAIL_FRACTION * self.LUMINANCE_SCALE

    @property
    def flat_threshold(self) -> float:
        return self.FLAT_FRACTION * self.LUMINANCE_SCALE


@dataclass
class BlockGridConfig:
    """Configuration for block-level aggregation of region masks."""

    BLOCK_SIZE: int = 16

    # Minimal fraction of the dominant class needed to label a block
    MIN_DOMINANT_FRAC: float = 0.5

    # Flat and detail both at or above this (with mid below it) makes a block mid
    STRONG_PAIR_FRAC: float = 0.3

    def __post_init__(self) -> None:
        if self.BLOCK_SIZE < 1:
            raise ValueError(f"BLOCK_SIZE must be at least 1, got {self.BLOCK_SIZE}")
        for name in ("MIN_DOMINANT_FRAC", "STRONG_PAIR_FRAC"):
            value = getattr(self, name)
            if value < 0.0 or value > 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")


# Default configuration instances
DEFAULT_REGION_CONFIG = RegionConfig()
DEFAULT_FLATNESS_CONFIG = FlatnessConfig()
DEFAULT_BLOCKING_CONFIG = BlockingConfig()
DEFAULT_BLOCK_GRID_CONFIG = BlockGridConfig()
