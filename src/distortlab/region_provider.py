"""Pluggable strategies producing flat / mid / detail region masks."""

from abc import ABC, abstractmethod
from dataclasses import replace

import numpy as np

from .color import luminance
from .config import DEFAULT_BLOCK_GRID_CONFIG, BlockGridConfig, RegionConfig
from .error_handling import ConfigurationError
from .region_blocks import make_block_grid, make_block_region_masks
from .region_masks import PercentileRegionClassifier, RegionMasks


class RegionProvider(ABC):
    """Computes region masks for a reference image in Lab (or its L channel)."""

    @abstractmethod
    def compute_regions(self, lab_ref: np.ndarray) -> RegionMasks:
        """Compute flat/mid/detail masks for the reference image."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs and reports."""


class PixelwiseRegionProvider(RegionProvider):
    """Per-pixel gradient percentile classification of the L channel."""

    def __init__(
        self,
        flat_percentile: float | None = None,
        detail_percentile: float | None = None,
        config: RegionConfig | None = None,
    ):
        self.classifier = PercentileRegionClassifier(
            flat_percentile, detail_percentile, config=config
        )

    @property
    def name(self) -> str:
        return "pixelwise_percentiles"

    @property
    def flat_percentile(self) -> float:
        return self.classifier.flat_percentile

    @property
    def detail_percentile(self) -> float:
        return self.classifier.detail_percentile

    def compute_regions(self, lab_ref: np.ndarray) -> RegionMasks:
        return self.classifier.classify_luminance(luminance(lab_ref))


class BlockRegionProvider(RegionProvider):
    """Pixelwise classification aggregated onto a regular block grid.

    The pixel-level gradient field is kept on the result so blur scoring
    keeps working with block masks.
    """

    def __init__(
        self,
        block_size: int | None = None,
        pixel_provider: PixelwiseRegionProvider | None = None,
        config: BlockGridConfig | None = None,
    ):
        self.config = config or DEFAULT_BLOCK_GRID_CONFIG
        self.block_size = self.config.BLOCK_SIZE if block_size is None else block_size
        if self.block_size < 1:
            raise ValueError(f"block_size must be at least 1, got {self.block_size}")
        self.pixel_provider = pixel_provider or PixelwiseRegionProvider()

    @property
    def name(self) -> str:
        return "block_grid"

    def compute_regions(self, lab_ref: np.ndarray) -> RegionMasks:
        pixel_masks = self.pixel_provider.compute_regions(lab_ref)
        grid = make_block_grid(pixel_masks.shape, self.block_size)
        block_masks = make_block_region_masks(
            grid,
            pixel_masks.flat,
            pixel_masks.mid,
            pixel_masks.detail,
            self.config.MIN_DOMINANT_FRAC,
            self.config.STRONG_PAIR_FRAC,
        )
        return replace(block_masks, grad_mag=pixel_masks.grad_mag)


PROVIDERS: dict[str, type[RegionProvider]] = {
    "pixelwise": PixelwiseRegionProvider,
    "block": BlockRegionProvider,
}


def make_region_provider(kind: str) -> RegionProvider:
    """Create a provider by short name ("pixelwise" or "block")."""
    try:
        provider_cls = PROVIDERS[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown region provider '{kind}', expected one of {sorted(PROVIDERS)}"
        ) from None
    return provider_cls()


def make_default_region_provider() -> RegionProvider:
    """Provider used by tools when none is requested explicitly."""
    return PixelwiseRegionProvider()
