"""Percentile-based flat / mid / detail region masks and masked region scores.

A reference luminance field is turned into a gradient-magnitude field, whose
empirical distribution is thresholded at two percentiles:

- pixels at or below the flat percentile are *flat*,
- pixels at or above the detail percentile are *detail*,
- everything in between is *mid*.

The three masks are disjoint and cover every pixel exactly once. The gradient
field is kept on the result so that blur scoring can reuse it.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_REGION_CONFIG, RegionConfig
from .error_handling import ValidationError, require_2d, require_same_shape
from .gradient_field import GradientFieldBuilder

logger = logging.getLogger(__name__)

MASK_ON = 255


@dataclass
class RegionMasks:
    """Flat / mid / detail masks (uint8, 0 or 255) plus the gradient field."""

    flat: np.ndarray
    mid: np.ndarray
    detail: np.ndarray
    grad_mag: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.flat.shape

    def counts(self) -> dict[str, int]:
        """Number of pixels in each class."""
        return {
            "flat": int(np.count_nonzero(self.flat)),
            "mid": int(np.count_nonzero(self.mid)),
            "detail": int(np.count_nonzero(self.detail)),
        }


@dataclass(frozen=True)
class ImpulseScore:
    """|ref - dist| statistics restricted to flat pixels."""

    mean: float
    p95: float
    count: int


@dataclass(frozen=True)
class BlurScore:
    """Positive gradient loss (ref - dist) statistics restricted to detail pixels."""

    mean: float
    p95: float
    count: int


def percentile_from_values(values: np.ndarray, p: float) -> float:
    """Linearly interpolated order statistic at index ``p * (n - 1)``.

    Args:
        values: Array of samples (any shape, flattened)
        p: Fraction in [0, 1]; values outside are clamped

    Returns:
        Interpolated percentile value, 0.0 for an empty array
    """
    flat_values = np.asarray(values, dtype=np.float64).ravel()
    if flat_values.size == 0:
        return 0.0

    p = min(1.0, max(0.0, float(p)))
    return float(np.quantile(flat_values, p, method="linear"))


class PercentileRegionClassifier:
    """Classifies pixels into flat / mid / detail from gradient percentiles."""

    def __init__(
        self,
        flat_percentile: float | None = None,
        detail_percentile: float | None = None,
        builder: GradientFieldBuilder | None = None,
        config: RegionConfig | None = None,
    ):
        """Initialize region classifier.

        Args:
            flat_percentile: Fraction (0-1) for the flat threshold
            detail_percentile: Fraction (0-1) for the detail threshold
            builder: Gradient field builder used by ``classify_luminance``
            config: Region configuration supplying defaults
        """
        config = config or DEFAULT_REGION_CONFIG
        self.flat_percentile = (
            config.FLAT_PERCENTILE if flat_percentile is None else flat_percentile
        )
        self.detail_percentile = (
            config.DETAIL_PERCENTILE if detail_percentile is None else detail_percentile
        )

        for name, value in (
            ("flat_percentile", self.flat_percentile),
            ("detail_percentile", self.detail_percentile),
        ):
            if value < 0.0 or value > 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        self.builder = builder or GradientFieldBuilder(config=config)

    def thresholds(self, grad_mag: np.ndarray) -> tuple[float, float]:
        """Return (flat_threshold, detail_threshold) for a gradient field."""
        return (
            percentile_from_values(grad_mag, self.flat_percentile),
            percentile_from_values(grad_mag, self.detail_percentile),
        )

    def classify(self, grad_mag: np.ndarray) -> RegionMasks:
        """Threshold a gradient field into three disjoint masks.

        Args:
            grad_mag: 2D gradient-magnitude field

        Returns:
            RegionMasks holding the masks and the field itself
        """
        grad = require_2d(grad_mag, "grad_mag").astype(np.float32, copy=False)
        thr_flat, thr_detail = self.thresholds(grad)

        # Flat is tested first so equal thresholds never double-assign a pixel
        is_flat = grad <= thr_flat
        is_detail = (grad >= thr_detail) & ~is_flat
        is_mid = ~is_flat & ~is_detail

        logger.debug(
            f"Region thresholds flat<={thr_flat:.4f} detail>={thr_detail:.4f} "
            f"on {grad.shape[1]}x{grad.shape[0]} field"
        )

        return RegionMasks(
            flat=is_flat.astype(np.uint8) * MASK_ON,
            mid=is_mid.astype(np.uint8) * MASK_ON,
            detail=is_detail.astype(np.uint8) * MASK_ON,
            grad_mag=grad,
        )

    def classify_luminance(self, luminance: np.ndarray) -> RegionMasks:
        """Build the gradient field of a luminance image and classify it."""
        return self.classify(self.builder.build(luminance))


def compute_region_masks(
    luminance: np.ndarray,
    flat_percentile: float | None = None,
    detail_percentile: float | None = None,
) -> RegionMasks:
    """Flat / mid / detail masks for a luminance field with default smoothing."""
    classifier = PercentileRegionClassifier(flat_percentile, detail_percentile)
    return classifier.classify_luminance(luminance)


def _masked_stats(values: np.ndarray) -> tuple[float, float, int]:
    if values.size == 0:
        return 0.0, 0.0, 0
    return (
        float(np.mean(values, dtype=np.float64)),
        percentile_from_values(values, 0.95),
        int(values.size),
    )


def _check_score_inputs(
    ref_l: np.ndarray, dist_l: np.ndarray, masks: RegionMasks
) -> tuple[np.ndarray, np.ndarray]:
    ref = require_2d(ref_l, "ref_l").astype(np.float32, copy=False)
    dist = require_2d(dist_l, "dist_l").astype(np.float32, copy=False)
    require_same_shape(ref, dist, "reference/distorted luminance")
    if masks.shape != ref.shape:
        raise ValidationError(
            f"region masks shape {masks.shape} does not match luminance {ref.shape}"
        )
    return ref, dist


def score_impulses(
    ref_l: np.ndarray, dist_l: np.ndarray, masks: RegionMasks
) -> ImpulseScore:
    """Mean and p95 of |ref - dist| over flat pixels.

    Args:
        ref_l: Reference luminance
        dist_l: Distorted luminance
        masks: Region masks of the reference

    Returns:
        ImpulseScore (zeros when no flat pixels exist)
    """
    ref, dist = _check_score_inputs(ref_l, dist_l, masks)
    diffs = np.abs(ref - dist)[masks.flat > 0]
    mean, p95, count = _masked_stats(diffs)
    return ImpulseScore(mean=mean, p95=p95, count=count)


def score_blur(
    ref_l: np.ndarray,
    dist_l: np.ndarray,
    masks: RegionMasks,
    builder: GradientFieldBuilder | None = None,
) -> BlurScore:
    """Mean and p95 of positive gradient loss over detail pixels.

    The reference gradient is taken from ``masks.grad_mag``; the distorted
    gradient is built with ``builder`` so both fields share the same smoothing.

    Args:
        ref_l: Reference luminance
        dist_l: Distorted luminance
        masks: Region masks of the reference
        builder: Gradient field builder (defaults to default smoothing)

    Returns:
        BlurScore (zeros when no detail pixel lost gradient energy)
    """
    _, dist = _check_score_inputs(ref_l, dist_l, masks)
    builder = builder or GradientFieldBuilder()
    dist_grad = builder.build(dist)

    loss = (masks.grad_mag - dist_grad)[masks.detail > 0]
    loss = loss[loss > 0.0]
    mean, p95, count = _masked_stats(loss)
    return BlurScore(mean=mean, p95=p95, count=count)
