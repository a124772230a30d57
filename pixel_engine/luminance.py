"""Luminance reduction: BGR samples to a single 0-255 intensity."""

import logging

import numpy as np

from .buffer import BufferLike, pixel_view, write_gray
from .config import BLUE, GREEN, LUMA_SCALE, LUMA_WEIGHTS, RED

logger = logging.getLogger(__name__)


def luminance(blue: int, green: int, red: int) -> int:
    """Weighted luma of one pixel, truncated: 0.114 B + 0.587 G + 0.299 R."""
    w_blue, w_green, w_red = LUMA_WEIGHTS
    return (w_blue * int(blue) + w_green * int(green) + w_red * int(red)) // LUMA_SCALE


def reduce_luminance(view: np.ndarray) -> np.ndarray:
    """Reduce an ``(H, W, 4)`` BGRA view to an ``(H, W)`` uint8 luminance map."""
    w_blue, w_green, w_red = LUMA_WEIGHTS
    weighted = (
        view[..., BLUE].astype(np.uint32) * w_blue
        + view[..., GREEN].astype(np.uint32) * w_green
        + view[..., RED].astype(np.uint32) * w_red
    )
    return (weighted // LUMA_SCALE).astype(np.uint8)


def apply_grayscale(data: BufferLike, width: int, height: int) -> None:
    """Replace B, G and R with their integer average; alpha is kept."""
    view = pixel_view(data, width, height)
    total = view[..., BLUE:RED + 1].astype(np.uint16).sum(axis=-1)
    write_gray(view, (total // 3).astype(np.uint8))
    logger.debug("Grayscale applied to %dx%d image", width, height)
