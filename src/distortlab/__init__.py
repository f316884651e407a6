"""DistortLab - full-reference image distortion analysis laboratory."""

__version__: str = "0.1.0"
__author__: str = "DistortLab Team"

# Public re-exports for convenience ---------------------------------------------------

from .blocking import (
    BlockingArtifactDetector,
    BlockingResult,
    RegionClassifier,
    RegionStats,
    blocking_to_mask,
    calculate_blocking_metrics,
    flat_blocking_to_mask,
)
from .config import BlockGridConfig, BlockingConfig, FlatnessConfig, RegionConfig
from .error_handling import (
    ConfigurationError,
    DistortLabError,
    ProcessingError,
    ValidationError,
)
from .flatness import RowFlatnessDetector
from .gradient_field import GradientFieldBuilder
from .region_extraction import (
    Region,
    Run,
    StreamingRegionExtractor,
    build_regions_from_mask,
)
from .region_masks import (
    PercentileRegionClassifier,
    RegionMasks,
    compute_region_masks,
    score_blur,
    score_impulses,
)

__all__ = [
    "BlockGridConfig",
    "BlockingArtifactDetector",
    "BlockingConfig",
    "BlockingResult",
    "ConfigurationError",
    "DistortLabError",
    "FlatnessConfig",
    "GradientFieldBuilder",
    "PercentileRegionClassifier",
    "ProcessingError",
    "Region",
    "RegionClassifier",
    "RegionConfig",
    "RegionMasks",
    "RegionStats",
    "RowFlatnessDetector",
    "Run",
    "StreamingRegionExtractor",
    "ValidationError",
    "blocking_to_mask",
    "build_regions_from_mask",
    "calculate_blocking_metrics",
    "compute_region_masks",
    "flat_blocking_to_mask",
    "score_blur",
    "score_impulses",
]
