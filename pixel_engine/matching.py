"""Exhaustive template search by sum of absolute differences (SAD)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .buffer import BufferLike, pixel_view
from .config import NO_MATCH
from .luminance import reduce_luminance
from .parallel import map_bands, row_bands

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """Best top-left offset of the template inside the target."""
    x: int
    y: int
    sad: Optional[int] = None   # None when the template does not fit

    @property
    def found(self) -> bool:
        return (self.x, self.y) != NO_MATCH

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


def sad_block(target: np.ndarray, template: np.ndarray, start: int, stop: int) -> np.ndarray:
    """SAD for every offset whose top row lies in ``[start, stop)``.

    Args:
        target: ``(H, W)`` signed intensities of the search image.
        template: ``(th, tw)`` signed intensities of the template.

    Returns:
        ``(stop - start, W - tw + 1)`` int64 array; entry ``[r, x]`` is the SAD
        of the template placed at ``(x, start + r)``.
    """
    t_height, t_width = template.shape
    out_width = target.shape[1] - t_width + 1
    sad = np.zeros((stop - start, out_width), dtype=np.int64)
    for ty in range(t_height):
        rows = target[start + ty:stop + ty]
        for tx in range(t_width):
            sad += np.abs(rows[:, tx:tx + out_width] - template[ty, tx])
    return sad


def match_gray(
    target_gray: np.ndarray,
    template_gray: np.ndarray,
    workers: int = 1,
    band_rows: int = 64,
) -> MatchResult:
    """Search two luminance maps; ties go to the first offset in row-major order."""
    height, width = target_gray.shape
    t_height, t_width = template_gray.shape
    if t_height > height or t_width > width:
        logger.warning(
            "Template %dx%d does not fit inside %dx%d target",
            t_width, t_height, width, height,
        )
        return MatchResult(*NO_MATCH)

    target = target_gray.astype(np.int16)
    template = template_gray.astype(np.int16)

    def _band_best(start: int, stop: int) -> Tuple[int, int, int]:
        sad = sad_block(target, template, start, stop)
        # argmin keeps the first row-major minimum inside the band
        row, col = divmod(int(np.argmin(sad)), sad.shape[1])
        return int(sad[row, col]), start + row, col

    best: Optional[Tuple[int, int, int]] = None
    for candidate in map_bands(_band_best, row_bands(height - t_height + 1, band_rows), workers):
        # bands arrive in row order; strict '<' keeps the earlier band on ties
        if best is None or candidate[0] < best[0]:
            best = candidate

    sad, y, x = best
    return MatchResult(x=x, y=y, sad=sad)


def find_template(
    data: BufferLike,
    width: int,
    height: int,
    template: BufferLike,
    template_width: int,
    template_height: int,
    workers: int = 1,
    band_rows: int = 64,
) -> MatchResult:
    """Locate ``template`` inside ``data``; neither buffer is modified."""
    target_gray = reduce_luminance(pixel_view(data, width, height, writable=False))
    template_gray = reduce_luminance(pixel_view(template, template_width, template_height, writable=False))
    result = match_gray(target_gray, template_gray, workers=workers, band_rows=band_rows)
    logger.debug("Template match at (%d, %d) sad=%s", result.x, result.y, result.sad)
    return result
