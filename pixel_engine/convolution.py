"""Convolution engine: separable Gaussian blur, Sobel and Laplacian.

Blur and Sobel read out-of-range neighbours through the clamp-to-edge
boundary policy.  The Laplacian only evaluates interior pixels and leaves the
one-pixel border as it was.
"""

import logging
import math

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .buffer import BufferLike, PreconditionError, pad_replicate, pixel_view, write_gray
from .config import (
    COLOR_CHANNELS,
    GAUSSIAN_RADIUS_FACTOR,
    LAPLACIAN_8,
    MAX_PIXEL_VALUE,
    MIN_PIXEL_VALUE,
    SOBEL_X,
    SOBEL_Y,
)
from .luminance import reduce_luminance

logger = logging.getLogger(__name__)

_SOBEL_X = np.array(SOBEL_X, dtype=np.int64)
_SOBEL_Y = np.array(SOBEL_Y, dtype=np.int64)
_LAPLACIAN = np.array(LAPLACIAN_8, dtype=np.int64)


def gaussian_kernel(sigma: float) -> np.ndarray:
    """Normalized 1D Gaussian of radius ``ceil(3 * sigma)``.

    A radius of zero (``sigma == 0``) gives the single-tap identity kernel.
    """
    if not math.isfinite(sigma) or sigma < 0:
        raise PreconditionError(f"Gaussian sigma must be finite and >= 0, got {sigma}")
    radius = int(math.ceil(GAUSSIAN_RADIUS_FACTOR * sigma))
    if radius == 0:
        return np.ones(1, dtype=np.float64)
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    # a tiny sigma overflows the square to inf; exp(-inf) is the wanted 0
    with np.errstate(over="ignore"):
        kernel = np.exp(-0.5 * (offsets / sigma) ** 2)
    return kernel / kernel.sum()


def _blur_pass(plane: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    """One 1D pass along ``axis`` (1 = horizontal, 0 = vertical), truncated to uint8."""
    radius = len(kernel) // 2
    height, width = plane.shape[:2]
    if axis == 1:
        padded = pad_replicate(plane, 0, radius)
    else:
        padded = pad_replicate(plane, radius, 0)

    acc = np.zeros(plane.shape, dtype=np.float64)
    for k, weight in enumerate(kernel):
        if axis == 1:
            acc += padded[:, k:k + width] * weight
        else:
            acc += padded[k:k + height, :] * weight
    return np.clip(acc, MIN_PIXEL_VALUE, MAX_PIXEL_VALUE).astype(np.uint8)


def apply_gaussian_blur(data: BufferLike, width: int, height: int, sigma: float) -> None:
    """Blur B, G and R in place with a horizontal then a vertical pass.

    The intermediate image is stored as bytes between passes.  Alpha is
    passed through unchanged.
    """
    view = pixel_view(data, width, height)
    kernel = gaussian_kernel(sigma)
    if len(kernel) == 1:
        logger.debug("Gaussian sigma=%s has radius 0, image unchanged", sigma)
        return

    color = view[..., COLOR_CHANNELS]
    horizontal = _blur_pass(color, kernel, axis=1)
    view[..., COLOR_CHANNELS] = _blur_pass(horizontal, kernel, axis=0)
    logger.debug("Gaussian blur sigma=%s radius=%d on %dx%d", sigma, len(kernel) // 2, width, height)


def _correlate3x3(padded: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    windows = sliding_window_view(padded, (3, 3))
    return np.tensordot(windows, kernel, axes=((2, 3), (0, 1)))


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Euclidean Sobel gradient magnitude of a 2D intensity map, clamped to [0, 255]."""
    padded = pad_replicate(gray.astype(np.int32), 1, 1)
    grad_x = _correlate3x3(padded, _SOBEL_X).astype(np.float64)
    grad_y = _correlate3x3(padded, _SOBEL_Y).astype(np.float64)
    magnitude = np.sqrt(grad_x ** 2 + grad_y ** 2)
    return np.clip(magnitude, MIN_PIXEL_VALUE, MAX_PIXEL_VALUE).astype(np.uint8)


def apply_sobel(data: BufferLike, width: int, height: int) -> None:
    """Replace the image with its Sobel edge magnitude (grayscale, alpha kept)."""
    view = pixel_view(data, width, height)
    write_gray(view, sobel_magnitude(reduce_luminance(view)))
    logger.debug("Sobel applied to %dx%d image", width, height)


def laplacian_response(gray: np.ndarray) -> np.ndarray:
    """Absolute 8-neighbour Laplacian of the interior, shape ``(H - 2, W - 2)``."""
    return np.abs(_correlate3x3(gray.astype(np.int64), _LAPLACIAN))


def apply_laplacian(data: BufferLike, width: int, height: int) -> None:
    """Write the rescaled absolute Laplacian into interior pixels.

    The strongest response maps to 255.  A flat image has no response at all
    and its interior becomes 0.
    """
    view = pixel_view(data, width, height)
    if width < 3 or height < 3:
        logger.debug("Laplacian skipped: %dx%d image has no interior", width, height)
        return

    response = laplacian_response(reduce_luminance(view))
    max_val = int(response.max())
    if max_val == 0:
        logger.info("Laplacian response is zero everywhere; using divisor 1")
        max_val = 1

    scaled = (response * MAX_PIXEL_VALUE) // max_val
    write_gray(view[1:-1, 1:-1], scaled.astype(np.uint8))
    logger.debug("Laplacian applied to %dx%d image (max response %d)", width, height, max_val)
