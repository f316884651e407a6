"""Conversion of decoded images into Lab luminance fields."""

import logging

import cv2
import numpy as np
from skimage import color as skcolor

from .error_handling import ValidationError, error_context

logger = logging.getLogger(__name__)


def bgr8_to_lab32(bgr_image: np.ndarray) -> np.ndarray:
    """Convert an 8-bit BGR (or grayscale) image to CIELAB.

    Args:
        bgr_image: Image as decoded by OpenCV, [H, W, 3] or [H, W] uint8

    Returns:
        float32 Lab image [H, W, 3] with L in 0-100
    """
    image = np.asarray(bgr_image)
    if image.size == 0:
        raise ValidationError("image must not be empty")
    if image.dtype != np.uint8:
        raise ValidationError(f"image must be uint8, got {image.dtype}")

    if image.ndim == 2:
        rgb = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    elif image.ndim == 3 and image.shape[2] == 3:
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    else:
        raise ValidationError(
            f"image must be [H, W] or [H, W, 3], got shape {image.shape}"
        )

    rgb_normalized = rgb.astype(np.float32) / 255.0
    with error_context("convert RGB to Lab"):
        lab_image = skcolor.rgb2lab(rgb_normalized)
    return np.asarray(lab_image, dtype=np.float32)


def luminance(lab_image: np.ndarray) -> np.ndarray:
    """L channel of a Lab image (a 2D input is returned unchanged)."""
    lab = np.asarray(lab_image)
    if lab.ndim == 2:
        return lab
    if lab.ndim != 3 or lab.shape[2] < 1:
        raise ValidationError(f"expected Lab image, got shape {lab.shape}")
    return lab[..., 0]
