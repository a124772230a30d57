"""3x3 grayscale morphology (dilation / erosion) on the blue reference channel.

Only interior pixels are rewritten; the one-pixel border keeps its prior
value.  The blue channel stands in for a neutral pixel, so inputs are expected
to be grayscale or already binarized.
"""

import logging

import numpy as np
from scipy.ndimage import maximum_filter, minimum_filter

from .buffer import BufferLike, pixel_view, write_gray
from .config import BLUE, STRUCTURING_ELEMENT

logger = logging.getLogger(__name__)


def _apply_interior(data: BufferLike, width: int, height: int, reduce_fn, name: str) -> None:
    view = pixel_view(data, width, height)
    if width < STRUCTURING_ELEMENT or height < STRUCTURING_ELEMENT:
        logger.debug("%s skipped: %dx%d image has no interior", name, width, height)
        return

    reference = np.ascontiguousarray(view[..., BLUE])
    # interior results never touch the filter's own border mode
    reduced = reduce_fn(reference, size=STRUCTURING_ELEMENT)
    write_gray(view[1:-1, 1:-1], reduced[1:-1, 1:-1])
    logger.debug("%s applied to %dx%d image", name, width, height)


def apply_dilation(data: BufferLike, width: int, height: int) -> None:
    """Interior pixels become the 3x3 maximum of the reference channel."""
    _apply_interior(data, width, height, maximum_filter, "Dilation")


def apply_erosion(data: BufferLike, width: int, height: int) -> None:
    """Interior pixels become the 3x3 minimum of the reference channel."""
    _apply_interior(data, width, height, minimum_filter, "Erosion")
