"""Engine facade: one method per algorithm over a caller-owned BGRA buffer.

Every method takes ``(data, width, height, ...)`` and either mutates ``data``
in place or, for template matching, only reads it.  Each engine owns its own
:class:`~pixel_engine.spectral.SpectralEngine`, so FFT state never leaks
between instances.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .buffer import BufferLike
from .config import EngineConfig
from .convolution import apply_gaussian_blur, apply_laplacian, apply_sobel
from .luminance import apply_grayscale
from .matching import find_template
from .morphology import apply_dilation, apply_erosion
from .rank import apply_median
from .spectral import SpectralEngine, SpectralState
from .threshold import apply_binarization

logger = logging.getLogger(__name__)


class ImageProcessingEngine:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.spectral = SpectralEngine()

    # ------------------------- point / linear filters ---------------------------

    def apply_grayscale(self, data: BufferLike, width: int, height: int) -> None:
        apply_grayscale(data, width, height)

    def apply_gaussian_blur(self, data: BufferLike, width: int, height: int, sigma: float) -> None:
        apply_gaussian_blur(data, width, height, sigma)

    def apply_sobel(self, data: BufferLike, width: int, height: int) -> None:
        apply_sobel(data, width, height)

    def apply_laplacian(self, data: BufferLike, width: int, height: int) -> None:
        apply_laplacian(data, width, height)

    # ------------------------- rank / morphology / threshold ---------------------------

    def apply_median(self, data: BufferLike, width: int, height: int, kernel_size: int) -> None:
        apply_median(
            data,
            width,
            height,
            kernel_size,
            workers=self.config.workers,
            band_rows=self.config.band_rows,
        )

    def apply_dilation(self, data: BufferLike, width: int, height: int) -> None:
        apply_dilation(data, width, height)

    def apply_erosion(self, data: BufferLike, width: int, height: int) -> None:
        apply_erosion(data, width, height)

    def apply_binarization(self, data: BufferLike, width: int, height: int) -> int:
        """Otsu binarization; returns the threshold that was applied."""
        return apply_binarization(
            data,
            width,
            height,
            workers=self.config.workers,
            band_rows=self.config.band_rows,
        )

    # ------------------------- pattern search ---------------------------

    def apply_template_match(
        self,
        data: BufferLike,
        width: int,
        height: int,
        template: BufferLike,
        template_width: int,
        template_height: int,
    ) -> Tuple[int, int]:
        """Return the best ``(x, y)`` offset, or ``(-1, -1)`` if the template does not fit."""
        result = find_template(
            data,
            width,
            height,
            template,
            template_width,
            template_height,
            workers=self.config.workers,
            band_rows=self.config.band_rows,
        )
        return result.as_tuple()

    # ------------------------- spectral ---------------------------

    def apply_fft(self, data: BufferLike, width: int, height: int) -> bool:
        return self.spectral.apply_forward_transform(data, width, height)

    def apply_ifft(self, data: BufferLike, width: int, height: int) -> bool:
        return self.spectral.apply_inverse_transform(data, width, height)

    def clear_fft_data(self) -> None:
        if self.spectral.state is SpectralState.FORWARD_CACHED:
            logger.debug("Discarding cached spectrum %s", self.spectral.cached_shape)
        self.spectral.reset()

    def has_fft_data(self) -> bool:
        return self.spectral.has_cached_transform()
