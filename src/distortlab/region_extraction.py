"""Streaming extraction of vertically stacked run regions from a binary mask.

The mask is scanned top to bottom, one row at a time. Each row is run-length
encoded; a run extends an active region when its columns overlap the region's
column span and it lies on the row directly below the region's last row.
Regions that are not extended in a row are finished immediately, so a single
empty row always separates two regions. This is deliberately not a flood fill.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

import numpy as np

from .error_handling import require_2d

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Run:
    """Maximal horizontal span of set pixels, ``col_end`` exclusive."""

    row: int
    col_start: int
    col_end: int

    @property
    def width(self) -> int:
        return self.col_end - self.col_start


@dataclass(frozen=True)
class Region:
    """Bounding box (inclusive) and exact pixel count of a stack of runs.

    Regions are immutable; growing one produces a new record.
    """

    min_col: int
    max_col: int
    min_row: int
    max_row: int
    pixel_area: int

    @classmethod
    def from_run(cls, run: Run) -> "Region":
        return cls(
            min_col=run.col_start,
            max_col=run.col_end - 1,
            min_row=run.row,
            max_row=run.row,
            pixel_area=run.width,
        )

    @property
    def width(self) -> int:
        return self.max_col - self.min_col + 1

    @property
    def height(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def bbox_area(self) -> int:
        return self.width * self.height

    @property
    def fill_ratio(self) -> float:
        return self.pixel_area / self.bbox_area

    def can_extend(self, run: Run) -> bool:
        """True if *run* lies on the next row and overlaps the column span."""
        return (
            run.row == self.max_row + 1
            and run.col_start <= self.max_col
            and run.col_end > self.min_col
        )

    def extended(self, run: Run) -> "Region":
        """Region grown by *run* (which must satisfy ``can_extend``)."""
        return replace(
            self,
            min_col=min(self.min_col, run.col_start),
            max_col=max(self.max_col, run.col_end - 1),
            max_row=run.row,
            pixel_area=self.pixel_area + run.width,
        )


def run_length_encode(row_values: np.ndarray, row: int) -> list[Run]:
    """Split one mask row into maximal runs of non-zero pixels.

    Args:
        row_values: 1D mask row
        row: Row index stored on the produced runs

    Returns:
        Runs ordered left to right
    """
    set_pixels = np.asarray(row_values).ravel() != 0
    if not set_pixels.any():
        return []

    padded = np.concatenate(([False], set_pixels, [False])).astype(np.int8)
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return [Run(row, int(s), int(e)) for s, e in zip(starts, ends)]


class StreamingRegionExtractor:
    """Incrementally grows regions from mask rows fed in top-to-bottom order.

    Regions live in a flat list (the arena); ``_active`` holds indices of the
    regions that may still be extended, in creation order.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Discard all state so the extractor can scan a new mask."""
        self._regions: list[Region] = []
        self._active: list[int] = []
        self._finished: list[int] = []
        self._next_row = 0

    @property
    def active_count(self) -> int:
        return len(self._active)

    def _feed_runs(self, runs: list[Run]) -> None:
        assigned = [False] * len(runs)
        still_active: list[int] = []

        for idx in self._active:
            region = self._regions[idx]
            extended = False
            # First match wins; a region takes at most one run per row
            for i, run in enumerate(runs):
                if assigned[i] or not region.can_extend(run):
                    continue
                self._regions[idx] = region.extended(run)
                assigned[i] = True
                extended = True
                break

            if extended:
                still_active.append(idx)
            else:
                self._finished.append(idx)

        for i, run in enumerate(runs):
            if assigned[i]:
                continue
            self._regions.append(Region.from_run(run))
            still_active.append(len(self._regions) - 1)

        self._active = still_active

    def feed_row(self, row_values: np.ndarray) -> None:
        """Run-length encode and process the next mask row."""
        self._feed_runs(run_length_encode(row_values, self._next_row))
        self._next_row += 1

    def finish(self) -> list[Region]:
        """Finalize remaining active regions and return every finished region."""
        self._finished.extend(self._active)
        self._active = []
        return [self._regions[idx] for idx in self._finished]

    def extract(self, mask: np.ndarray) -> list[Region]:
        """Extract all regions from a complete mask in a single pass."""
        mask = require_2d(mask, "mask")
        self.reset()
        for row_values in mask:
            self.feed_row(row_values)
        regions = self.finish()
        logger.debug(f"Extracted {len(regions)} regions from {mask.shape} mask")
        return regions


def build_regions_from_mask(mask: np.ndarray) -> list[Region]:
    """Regions of a binary mask (values 0 or non-zero)."""
    return StreamingRegionExtractor().extract(mask)


def iter_runs(mask: np.ndarray) -> Iterator[Run]:
    """All runs of a mask in row-major order."""
    mask = require_2d(mask, "mask")
    for y, row_values in enumerate(mask):
        yield from run_length_encode(row_values, y)


def total_area(regions: Iterable[Region]) -> int:
    return sum(region.pixel_area for region in regions)
