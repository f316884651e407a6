"""Block-level flat / mid / detail masks on a regular grid.

Pixel-level region masks are noisy at texture boundaries. Aggregating them on
a fixed grid (16x16 by default) gives one label per block, which lines up with
the block structure of most compression schemes. Edge blocks are clipped to
the image.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .config import DEFAULT_BLOCK_GRID_CONFIG
from .error_handling import ValidationError
from .region_masks import MASK_ON, RegionMasks

logger = logging.getLogger(__name__)


class BlockClass(Enum):
    NONE = "none"
    FLAT = "flat"
    MID = "mid"
    DETAIL = "detail"


@dataclass(frozen=True)
class BlockGrid:
    """Regular grid of blocks covering an image."""

    height: int
    width: int
    block_size: int
    blocks_x: int
    blocks_y: int

    @property
    def block_count(self) -> int:
        return self.blocks_x * self.blocks_y


def make_block_grid(shape: tuple[int, ...], block_size: int | None = None) -> BlockGrid:
    """Grid for an image of the given (height, width, ...) shape.

    Partial blocks at the right and bottom edges are included.
    """
    if block_size is None:
        block_size = DEFAULT_BLOCK_GRID_CONFIG.BLOCK_SIZE
    if block_size < 1:
        raise ValueError(f"block_size must be at least 1, got {block_size}")

    height, width = int(shape[0]), int(shape[1])
    return BlockGrid(
        height=height,
        width=width,
        block_size=block_size,
        blocks_x=(width + block_size - 1) // block_size,
        blocks_y=(height + block_size - 1) // block_size,
    )


def block_index(grid: BlockGrid, x: int, y: int) -> int:
    """Index of the block containing pixel (x, y)."""
    return (y // grid.block_size) * grid.blocks_x + (x // grid.block_size)


def block_rect(grid: BlockGrid, index: int) -> tuple[int, int, int, int]:
    """(x, y, width, height) of a block, clipped to the image."""
    bx = index % grid.blocks_x
    by = index // grid.blocks_x
    x0 = bx * grid.block_size
    y0 = by * grid.block_size
    w = min(grid.block_size, grid.width - x0)
    h = min(grid.block_size, grid.height - y0)
    return x0, y0, w, h


def classify_block(
    flat_count: int,
    mid_count: int,
    detail_count: int,
    area: int,
    min_dominant_frac: float,
    strong_pair_frac: float,
) -> BlockClass:
    """Label one block from its per-class pixel counts."""
    flat_frac = flat_count / area
    mid_frac = mid_count / area
    detail_frac = detail_count / area

    # A block mixing large flat and detail parts is treated as mid texture
    if (
        flat_frac >= strong_pair_frac
        and detail_frac >= strong_pair_frac
        and mid_frac < strong_pair_frac
    ):
        return BlockClass.MID

    # Majority; ties favour flat, then mid
    best_count, best_class = flat_count, BlockClass.FLAT
    if mid_count > best_count:
        best_count, best_class = mid_count, BlockClass.MID
    if detail_count > best_count:
        best_count, best_class = detail_count, BlockClass.DETAIL

    if best_count / area >= min_dominant_frac:
        return best_class
    return BlockClass.NONE


def make_block_region_masks(
    grid: BlockGrid,
    flat: np.ndarray,
    mid: np.ndarray,
    detail: np.ndarray,
    min_dominant_frac: float | None = None,
    strong_pair_frac: float | None = None,
) -> RegionMasks:
    """Aggregate pixel-level masks into block-level masks.

    Pixels count towards a class where the mask equals 255. Unclassified
    blocks stay zero in all three outputs.

    Args:
        grid: Block grid matching the masks' shape
        flat: Pixel-level flat mask
        mid: Pixel-level mid mask
        detail: Pixel-level detail mask
        min_dominant_frac: Minimal fraction for the majority class
        strong_pair_frac: Flat/detail fraction triggering the mixture rule

    Returns:
        RegionMasks with block-level masks; ``grad_mag`` is left empty
    """
    if min_dominant_frac is None:
        min_dominant_frac = DEFAULT_BLOCK_GRID_CONFIG.MIN_DOMINANT_FRAC
    if strong_pair_frac is None:
        strong_pair_frac = DEFAULT_BLOCK_GRID_CONFIG.STRONG_PAIR_FRAC

    expected = (grid.height, grid.width)
    for name, mask in (("flat", flat), ("mid", mid), ("detail", detail)):
        if mask.shape != expected:
            raise ValidationError(
                f"{name} mask shape {mask.shape} does not match grid {expected}"
            )

    out = {cls: np.zeros(expected, dtype=np.uint8) for cls in BlockClass}
    counts = {cls: 0 for cls in BlockClass}

    for index in range(grid.block_count):
        x0, y0, w, h = block_rect(grid, index)
        if w <= 0 or h <= 0:
            continue

        rows = slice(y0, y0 + h)
        cols = slice(x0, x0 + w)
        cls = classify_block(
            int(np.count_nonzero(flat[rows, cols] == MASK_ON)),
            int(np.count_nonzero(mid[rows, cols] == MASK_ON)),
            int(np.count_nonzero(detail[rows, cols] == MASK_ON)),
            w * h,
            min_dominant_frac,
            strong_pair_frac,
        )
        counts[cls] += 1
        if cls is not BlockClass.NONE:
            out[cls][rows, cols] = MASK_ON

    logger.debug(
        "Block labels: "
        + ", ".join(f"{cls.value}={count}" for cls, count in counts.items())
    )

    return RegionMasks(
        flat=out[BlockClass.FLAT],
        mid=out[BlockClass.MID],
        detail=out[BlockClass.DETAIL],
        grad_mag=np.zeros(0, dtype=np.float32),
    )
