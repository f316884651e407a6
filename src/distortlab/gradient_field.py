"""Gradient-magnitude fields for luminance images."""

import logging

import cv2
import numpy as np

from .config import DEFAULT_REGION_CONFIG, RegionConfig
from .error_handling import require_2d

logger = logging.getLogger(__name__)


class GradientFieldBuilder:
    """Builds a smoothed Sobel gradient-magnitude field from a luminance field."""

    def __init__(
        self,
        pre_smooth_sigma: float | None = None,
        post_smooth_sigma: float | None = None,
        config: RegionConfig | None = None,
    ):
        """Initialize gradient field builder.

        Args:
            pre_smooth_sigma: Sigma of the 3x3 Gaussian applied before
                differentiation (0 disables the pass)
            post_smooth_sigma: Sigma of the 3x3 Gaussian applied to the magnitude
            config: Region configuration supplying defaults
        """
        config = config or DEFAULT_REGION_CONFIG
        self.pre_smooth_sigma = (
            config.PRE_SMOOTH_SIGMA if pre_smooth_sigma is None else pre_smooth_sigma
        )
        self.post_smooth_sigma = (
            config.POST_SMOOTH_SIGMA if post_smooth_sigma is None else post_smooth_sigma
        )

        if self.pre_smooth_sigma < 0:
            raise ValueError(
                f"pre_smooth_sigma must be non-negative, got {self.pre_smooth_sigma}"
            )
        if self.post_smooth_sigma <= 0:
            raise ValueError(
                f"post_smooth_sigma must be positive, got {self.post_smooth_sigma}"
            )

    def build(self, luminance: np.ndarray) -> np.ndarray:
        """Compute the gradient magnitude of a luminance field.

        Args:
            luminance: 2D luminance array (any real dtype)

        Returns:
            float32 array of non-negative gradient magnitudes, same shape
        """
        lum = require_2d(luminance, "luminance")
        lum = np.ascontiguousarray(lum, dtype=np.float32)

        if self.pre_smooth_sigma > 0:
            lum = cv2.GaussianBlur(lum, (3, 3), self.pre_smooth_sigma)

        grad_x = cv2.Sobel(lum, cv2.CV_32F, 1, 0, ksize=3)
        grad_y = cv2.Sobel(lum, cv2.CV_32F, 0, 1, ksize=3)
        magnitude = cv2.magnitude(grad_x, grad_y)

        # Avoid reacting to single noisy pixels
        magnitude = cv2.GaussianBlur(magnitude, (3, 3), self.post_smooth_sigma)

        return np.maximum(magnitude, 0.0).astype(np.float32, copy=False)


def gradient_magnitude(luminance: np.ndarray) -> np.ndarray:
    """Gradient magnitude with default smoothing."""
    return GradientFieldBuilder().build(luminance)
