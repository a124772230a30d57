"""Engine configuration: pixel layout, fixed kernels, filter defaults."""

import os
from dataclasses import dataclass
from typing import Tuple


# ---------------------------------------------------------------------------
# Pixel layout (interleaved BGRA, one byte per channel)
# ---------------------------------------------------------------------------
CHANNELS = 4
BLUE = 0
GREEN = 1
RED = 2
ALPHA = 3
COLOR_CHANNELS = slice(BLUE, RED + 1)

MIN_PIXEL_VALUE = 0
MAX_PIXEL_VALUE = 255
HISTOGRAM_BINS = 256

# Integer luma weights for (B, G, R), scaled by LUMA_SCALE
LUMA_WEIGHTS: Tuple[int, int, int] = (114, 587, 299)
LUMA_SCALE = 1000


# ---------------------------------------------------------------------------
# Fixed kernels
# ---------------------------------------------------------------------------
SOBEL_X = (
    (-1, 0, 1),
    (-2, 0, 2),
    (-1, 0, 1),
)
SOBEL_Y = (
    (1, 2, 1),
    (0, 0, 0),
    (-1, -2, -1),
)
LAPLACIAN_8 = (
    (1, 1, 1),
    (1, -8, 1),
    (1, 1, 1),
)

# Gaussian radius is ceil(GAUSSIAN_RADIUS_FACTOR * sigma)
GAUSSIAN_RADIUS_FACTOR = 3

# Morphology works on a fixed 3x3 square around each interior pixel
STRUCTURING_ELEMENT = 3

# Template match offset when the template does not fit the target
NO_MATCH: Tuple[int, int] = (-1, -1)


@dataclass
class FilterDefaults:
    """Default parameters the host application starts each filter with.

    ``ProcessingSession`` fills in ``gaussian_sigma`` and ``median_kernel_size``
    when a call omits them.  The remaining fields are settings for the host UI
    only: the Laplacian and the 3x3 morphology take no parameters and Otsu
    picks its own threshold.
    """
    gaussian_sigma: float = 1.0
    laplacian_kernel_type: int = 1      # 8-connectivity; the only kernel implemented
    binarization_threshold: int = 128
    dilation_kernel_size: int = STRUCTURING_ELEMENT
    erosion_kernel_size: int = STRUCTURING_ELEMENT
    median_kernel_size: int = 3


@dataclass
class EngineConfig:
    """Runtime knobs for the row-band fork-join."""
    workers: int = 1          # 1 keeps every operation serial
    band_rows: int = 64       # rows per partition for median / template search

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.band_rows < 1:
            raise ValueError(f"band_rows must be >= 1, got {self.band_rows}")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from PIXEL_ENGINE_* environment variables."""
        return cls(
            workers=int(os.environ.get("PIXEL_ENGINE_WORKERS", 1)),
            band_rows=int(os.environ.get("PIXEL_ENGINE_BAND_ROWS", 64)),
        )
