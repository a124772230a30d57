"""Public interface for the pixel-buffer processing engine."""

from __future__ import annotations

from .buffer import PixelBuffer, PreconditionError, pixel_view
from .config import EngineConfig, FilterDefaults
from .convolution import apply_gaussian_blur, apply_laplacian, apply_sobel, gaussian_kernel
from .engine import ImageProcessingEngine
from .luminance import apply_grayscale, luminance, reduce_luminance
from .matching import MatchResult, find_template
from .morphology import apply_dilation, apply_erosion
from .rank import apply_median
from .session import OperationLogEntry, ProcessingSession
from .spectral import SpectralEngine, SpectralState, SpectralStateError
from .threshold import apply_binarization, build_histogram, otsu_threshold

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "FilterDefaults",
    "ImageProcessingEngine",
    "MatchResult",
    "OperationLogEntry",
    "PixelBuffer",
    "PreconditionError",
    "ProcessingSession",
    "SpectralEngine",
    "SpectralState",
    "SpectralStateError",
    "apply_binarization",
    "apply_dilation",
    "apply_erosion",
    "apply_gaussian_blur",
    "apply_grayscale",
    "apply_laplacian",
    "apply_median",
    "apply_sobel",
    "build_histogram",
    "find_template",
    "gaussian_kernel",
    "luminance",
    "otsu_threshold",
    "pixel_view",
    "reduce_luminance",
]
