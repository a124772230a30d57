"""Otsu binarization.

The threshold maximises the between-class variance
``w_bg * w_fg * (mean_bg - mean_fg) ** 2`` over candidates 0..255.  Pixels
whose luminance is strictly greater than the threshold become white; pixels
at or below it become black.
"""

import logging

import numpy as np

from .buffer import BufferLike, PreconditionError, pixel_view, write_gray
from .config import HISTOGRAM_BINS, MAX_PIXEL_VALUE, MIN_PIXEL_VALUE
from .luminance import reduce_luminance
from .parallel import map_bands, row_bands

logger = logging.getLogger(__name__)


def build_histogram(gray: np.ndarray, workers: int = 1, band_rows: int = 64) -> np.ndarray:
    """Count 8-bit intensities; per-band counts are merged before returning."""
    if gray.dtype != np.uint8:
        raise PreconditionError(f"Histogram input must be uint8, got {gray.dtype}")

    def _count(start: int, stop: int) -> np.ndarray:
        return np.bincount(gray[start:stop].ravel(), minlength=HISTOGRAM_BINS)

    histogram = np.zeros(HISTOGRAM_BINS, dtype=np.int64)
    for partial in map_bands(_count, row_bands(gray.shape[0], band_rows), workers):
        histogram += partial
    return histogram


def otsu_threshold(histogram: np.ndarray) -> int:
    """Return the first threshold with maximal between-class variance.

    Candidates where either class is empty score nothing.  If no candidate
    scores above zero (e.g. a uniform image) the threshold is 0.
    """
    histogram = np.asarray(histogram, dtype=np.int64)
    if histogram.shape != (HISTOGRAM_BINS,):
        raise PreconditionError(
            f"Histogram must have {HISTOGRAM_BINS} bins, got shape {histogram.shape}"
        )

    levels = np.arange(HISTOGRAM_BINS, dtype=np.int64)
    total = int(histogram.sum())
    total_sum = int((levels * histogram).sum())

    weight_bg = np.cumsum(histogram)
    sum_bg = np.cumsum(levels * histogram)
    weight_fg = total - weight_bg
    valid = (weight_bg > 0) & (weight_fg > 0)

    variance = np.zeros(HISTOGRAM_BINS, dtype=np.float64)
    w_bg = weight_bg[valid].astype(np.float64)
    w_fg = weight_fg[valid].astype(np.float64)
    mean_bg = sum_bg[valid] / w_bg
    mean_fg = (total_sum - sum_bg[valid]) / w_fg
    variance[valid] = w_bg * w_fg * (mean_bg - mean_fg) ** 2

    # argmax returns the first maximum, matching a strict '>' scan from t = 0
    return int(np.argmax(variance))


def apply_binarization(
    data: BufferLike,
    width: int,
    height: int,
    workers: int = 1,
    band_rows: int = 64,
) -> int:
    """Binarize the image in place with Otsu's threshold and return the threshold."""
    view = pixel_view(data, width, height)
    gray = reduce_luminance(view)
    threshold = otsu_threshold(build_histogram(gray, workers=workers, band_rows=band_rows))

    binary = np.where(gray > threshold, MAX_PIXEL_VALUE, MIN_PIXEL_VALUE).astype(np.uint8)
    write_gray(view, binary)
    logger.debug("Otsu threshold %d on %dx%d image", threshold, width, height)
    return threshold
