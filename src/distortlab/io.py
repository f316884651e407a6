"""I/O utilities for image reading/writing, atomic writes and logging setup."""

import logging
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from shutil import move

import cv2
import numpy as np

from .error_handling import ProcessingError, ValidationError, error_context
from .region_masks import MASK_ON, RegionMasks

logger = logging.getLogger(__name__)

# BGR colours used by visualize_regions
FLAT_COLOR = (255, 0, 0)
MID_COLOR = (0, 255, 255)
DETAIL_COLOR = (0, 0, 255)


def setup_logging(log_dir: Path, log_level: str = "INFO") -> logging.Logger:
    """Set up logging configuration for DistortLab.

    Args:
        log_dir: Directory to store log files
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"distortlab_{timestamp}.log"

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()],
    )

    return logging.getLogger("distortlab")


@contextmanager
def atomic_write(target_path: Path, mode: str = "w"):
    """Context manager for atomic file writes using temporary files.

    Args:
        target_path: Final path where file should be written
        mode: File open mode

    Yields:
        File handle for writing

    Example:
        with atomic_write(Path("regions.json")) as f:
            json.dump(data, f)
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode=mode,
        dir=target_path.parent,
        delete=False,
        suffix=f".tmp_{target_path.name}",
    ) as temp_file:
        try:
            yield temp_file
            temp_file.flush()
            move(temp_file.name, target_path)
        except Exception:
            Path(temp_file.name).unlink(missing_ok=True)
            raise


def read_image(path: Path) -> np.ndarray:
    """Read an image as 8-bit BGR.

    Raises:
        ProcessingError: If the file cannot be decoded
    """
    with error_context("read image", ProcessingError, context={"path": str(path)}):
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise ProcessingError(f"Cannot read image: {path}", context={"path": str(path)})
    return image


def write_image(path: Path, image: np.ndarray) -> Path:
    """Write an image, creating parent directories as needed.

    Raises:
        ProcessingError: If OpenCV has no encoder for the extension or refuses
            to encode the image
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with error_context("write image", ProcessingError, context={"path": str(path)}):
        written = cv2.imwrite(str(path), image)
    if not written:
        raise ProcessingError(f"Cannot write image: {path}", context={"path": str(path)})
    logger.info(f"Wrote {path}")
    return path


def apply_block_mask(dist_bgr: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Copy of the distorted image with masked pixels painted black.

    Args:
        dist_bgr: Distorted image [H, W, 3] uint8
        mask: Blocking mask [H, W] uint8; non-zero pixels are painted

    Returns:
        New [H, W, 3] uint8 image
    """
    if dist_bgr.ndim != 3 or dist_bgr.shape[2] != 3 or dist_bgr.dtype != np.uint8:
        raise ValidationError(
            f"dist_bgr must be [H, W, 3] uint8, got {dist_bgr.shape} {dist_bgr.dtype}"
        )
    if mask.ndim != 2 or mask.dtype != np.uint8:
        raise ValidationError(f"mask must be [H, W] uint8, got {mask.shape} {mask.dtype}")
    if mask.shape != dist_bgr.shape[:2]:
        raise ValidationError(
            f"mask size {mask.shape} does not match image {dist_bgr.shape[:2]}"
        )

    out = dist_bgr.copy()
    out[mask != 0] = 0
    return out


def visualize_regions(bgr: np.ndarray, masks: RegionMasks) -> np.ndarray:
    """Copy of an image with region classes painted in solid colours.

    Flat pixels become blue, mid pixels yellow and detail pixels red. A pixel
    set in several masks takes the first of flat, mid, detail; pixels in no
    mask keep their original colour.

    Args:
        bgr: Image [H, W, 3] uint8, usually the reference
        masks: Region masks of the same height and width

    Returns:
        New [H, W, 3] uint8 image
    """
    if bgr.ndim != 3 or bgr.shape[2] != 3 or bgr.dtype != np.uint8:
        raise ValidationError(f"bgr must be [H, W, 3] uint8, got {bgr.shape} {bgr.dtype}")
    if masks.shape != bgr.shape[:2]:
        raise ValidationError(
            f"region masks shape {masks.shape} does not match image {bgr.shape[:2]}"
        )

    flat = masks.flat == MASK_ON
    mid = (masks.mid == MASK_ON) & ~flat
    detail = (masks.detail == MASK_ON) & ~flat & ~mid

    out = bgr.copy()
    out[flat] = FLAT_COLOR
    out[mid] = MID_COLOR
    out[detail] = DETAIL_COLOR
    return out
