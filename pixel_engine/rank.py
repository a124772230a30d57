"""Rank filter: per-channel neighbourhood median with clamped borders."""

import logging

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .buffer import BufferLike, PreconditionError, pad_replicate, pixel_view
from .config import COLOR_CHANNELS
from .parallel import map_bands, row_bands

logger = logging.getLogger(__name__)


def _check_kernel_size(kernel_size: int) -> None:
    if int(kernel_size) != kernel_size or kernel_size < 1 or kernel_size % 2 == 0:
        raise PreconditionError(f"Median kernel size must be an odd integer >= 1, got {kernel_size}")


def rank_select(plane: np.ndarray, kernel_size: int, rank: int, workers: int = 1, band_rows: int = 64) -> np.ndarray:
    """Select the ``rank``-th smallest of each ``kernel_size`` square neighbourhood.

    Args:
        plane: ``(H, W)`` or ``(H, W, C)`` uint8 samples; channels are ranked
            independently.
        kernel_size: Odd window side.
        rank: Zero-based position in ascending order, ``0 <= rank < kernel_size**2``.
        workers: Threads for the row-band fork-join.
        band_rows: Output rows per band; bounds the window scratch memory.

    Returns:
        A new array shaped like ``plane``; the input is never written.
    """
    _check_kernel_size(kernel_size)
    kernel_size = int(kernel_size)
    area = kernel_size * kernel_size
    if not 0 <= rank < area:
        raise PreconditionError(f"Rank {rank} outside neighbourhood of {area} samples")

    radius = kernel_size // 2
    height = plane.shape[0]
    padded = pad_replicate(plane, radius, radius)

    def _select_band(start: int, stop: int) -> np.ndarray:
        block = padded[start:stop + 2 * radius]
        windows = sliding_window_view(block, (kernel_size, kernel_size), axis=(0, 1))
        samples = windows.reshape(windows.shape[:-2] + (area,))
        return np.partition(samples, rank, axis=-1)[..., rank]

    bands = row_bands(height, band_rows)
    return np.concatenate(map_bands(_select_band, bands, workers), axis=0)


def apply_median(
    data: BufferLike,
    width: int,
    height: int,
    kernel_size: int,
    workers: int = 1,
    band_rows: int = 64,
) -> None:
    """Median-filter B, G and R in place; alpha keeps the source pixel's value."""
    view = pixel_view(data, width, height)
    _check_kernel_size(kernel_size)
    kernel_size = int(kernel_size)
    if kernel_size == 1:
        return

    median = rank_select(
        view[..., COLOR_CHANNELS],
        kernel_size,
        (kernel_size * kernel_size) // 2,
        workers=workers,
        band_rows=band_rows,
    )
    view[..., COLOR_CHANNELS] = median
    logger.debug("Median k=%d applied to %dx%d image", kernel_size, width, height)
