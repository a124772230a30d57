"""Spectral engine: radix-2 FFT/IFFT with a forward/inverse round trip.

A forward call pads the luminance image to power-of-two sides, transforms it
and keeps the un-shifted spectrum.  The caller's buffer receives a centred
log-magnitude view.  A later inverse call rebuilds the image from the kept
spectrum and then drops it, so each forward call feeds at most one inverse.

State machine::

    EMPTY --forward--> FORWARD_CACHED --inverse/reset--> EMPTY
                       FORWARD_CACHED --forward--> FORWARD_CACHED
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from .buffer import BufferLike, PreconditionError, pixel_view, write_gray
from .config import ALPHA, MAX_PIXEL_VALUE, MIN_PIXEL_VALUE
from .luminance import reduce_luminance

logger = logging.getLogger(__name__)


class SpectralState(str, Enum):
    EMPTY = "empty"
    FORWARD_CACHED = "forward_cached"


class SpectralStateError(RuntimeError):
    """Raised for an inverse transform with nothing cached (strict mode)."""


# ---------------------------------------------------------------------------
# Transform primitives
# ---------------------------------------------------------------------------


def next_power_of_two(n: int) -> int:
    p = 1
    while p < n:
        p <<= 1
    return p


def bit_reversal_indices(n: int) -> np.ndarray:
    """Permutation taking natural order to bit-reversed order for ``n = 2**k``."""
    bits = n.bit_length() - 1
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.intp)
    for b in range(bits):
        rev |= ((idx >> b) & 1) << (bits - 1 - b)
    return rev


def fft_rows(data: np.ndarray, inverse: bool = False) -> np.ndarray:
    """Iterative Cooley-Tukey FFT of every row of a 2D array.

    Rows are permuted into bit-reversed order, then combined by butterfly
    stages of length 2, 4, ..., n with twiddles ``exp(-2*pi*i*k/len)``
    (sign flipped for the inverse).  Each stage runs over all rows at once and
    completes before the next one reads it.  The inverse divides by ``n``.

    Returns:
        A new complex128 array; ``data`` is not modified.
    """
    rows, n = data.shape
    if n < 1 or n & (n - 1):
        raise PreconditionError(f"FFT length must be a power of two, got {n}")

    out = np.asarray(data, dtype=np.complex128)[:, bit_reversal_indices(n)]
    sign = 1.0 if inverse else -1.0

    length = 2
    while length <= n:
        half = length // 2
        twiddle = np.exp(sign * 2j * np.pi * np.arange(half) / length)
        blocks = out.reshape(rows, n // length, length)
        upper = blocks[..., :half]
        lower = blocks[..., half:] * twiddle
        out = np.concatenate((upper + lower, upper - lower), axis=-1).reshape(rows, n)
        length <<= 1

    if inverse:
        out /= n
    return out


def fft2d(data: np.ndarray, inverse: bool = False) -> np.ndarray:
    """Separable 2D transform: every row, then every column."""
    by_rows = fft_rows(data, inverse)
    return np.ascontiguousarray(fft_rows(by_rows.T, inverse).T)


def center_shift(spectrum: np.ndarray) -> np.ndarray:
    """Swap quadrants so the zero frequency sits at ``(H/2, W/2)``.

    (0,0) <-> (H/2,W/2) and (0,W/2) <-> (H/2,0).  A spectrum with a single row
    or column has no quadrants and is returned as a copy.
    """
    shifted = spectrum.copy()
    cy = spectrum.shape[0] // 2
    cx = spectrum.shape[1] // 2
    if cy == 0 or cx == 0:
        return shifted
    shifted[:cy, :cx] = spectrum[cy:2 * cy, cx:2 * cx]
    shifted[cy:2 * cy, cx:2 * cx] = spectrum[:cy, :cx]
    shifted[cy:2 * cy, :cx] = spectrum[:cy, cx:2 * cx]
    shifted[:cy, cx:2 * cx] = spectrum[cy:2 * cy, :cx]
    return shifted


def to_pixel_values(real: np.ndarray) -> np.ndarray:
    """Round half away from zero and clamp to [0, 255]; negatives clamp to 0 either way."""
    return np.clip(np.floor(real + 0.5), MIN_PIXEL_VALUE, MAX_PIXEL_VALUE).astype(np.uint8)


def log_magnitude_image(shifted: np.ndarray, width: int, height: int) -> np.ndarray:
    """Map ``log(1 + |X|)`` to 0..255 and crop the centred ``height x width`` window."""
    magnitude = np.log1p(np.abs(shifted))
    max_val = float(magnitude.max())
    if max_val == 0:
        max_val = 1.0

    pad_height, pad_width = shifted.shape
    start_y = (pad_height - height) // 2
    start_x = (pad_width - width) // 2
    window = magnitude[start_y:start_y + height, start_x:start_x + width]
    return (window / max_val * 255.0).astype(np.uint8)


# ---------------------------------------------------------------------------
# Stateful engine
# ---------------------------------------------------------------------------


class SpectralEngine:
    """Forward/inverse FFT with the forward spectrum cached in between.

    Not safe for concurrent use; give each thread its own instance.
    """

    def __init__(self):
        self._state = SpectralState.EMPTY
        self._backup: Optional[np.ndarray] = None     # un-shifted forward spectrum
        self._current: Optional[np.ndarray] = None    # centred copy for display
        self._original_shape: Optional[Tuple[int, int]] = None

    @property
    def state(self) -> SpectralState:
        return self._state

    def has_cached_transform(self) -> bool:
        return self._state is SpectralState.FORWARD_CACHED

    @property
    def cached_shape(self) -> Optional[Tuple[int, int]]:
        """Padded ``(height, width)`` of the cached spectrum."""
        return None if self._backup is None else self._backup.shape

    @property
    def original_shape(self) -> Optional[Tuple[int, int]]:
        """``(height, width)`` of the image the cached spectrum came from."""
        return self._original_shape

    def shifted_spectrum(self) -> Optional[np.ndarray]:
        """Copy of the centred spectrum, or None when nothing is cached."""
        return None if self._current is None else self._current.copy()

    def apply_forward_transform(self, data: BufferLike, width: int, height: int) -> bool:
        """Transform the image and overwrite it with its log-magnitude spectrum.

        Replaces any previously cached spectrum.  Output is grayscale with
        full opacity.
        """
        view = pixel_view(data, width, height)
        pad_height = next_power_of_two(height)
        pad_width = next_power_of_two(width)

        padded = np.zeros((pad_height, pad_width), dtype=np.complex128)
        padded[:height, :width] = reduce_luminance(view)
        spectrum = fft2d(padded)
        shifted = center_shift(spectrum)

        if self._state is SpectralState.FORWARD_CACHED:
            logger.debug("Replacing cached %s spectrum", self.cached_shape)
        self._backup = spectrum
        self._current = shifted
        self._original_shape = (height, width)
        self._state = SpectralState.FORWARD_CACHED

        write_gray(view, log_magnitude_image(shifted, width, height))
        view[..., ALPHA] = MAX_PIXEL_VALUE
        logger.debug(
            "Forward FFT on %dx%d image (padded to %dx%d)",
            width, height, pad_width, pad_height,
        )
        return True

    def apply_inverse_transform(
        self,
        data: BufferLike,
        width: int,
        height: int,
        strict: bool = False,
    ) -> bool:
        """Rebuild the image from the cached spectrum, then clear the cache.

        Args:
            data: Destination buffer; receives opaque grayscale output.
            width: Must equal the width given to the forward transform.
            height: Must equal the height given to the forward transform.
            strict: Raise :class:`SpectralStateError` instead of returning
                False when nothing is cached.

        Returns:
            True on success, False when no forward transform is cached.
        """
        if self._state is SpectralState.EMPTY:
            if strict:
                raise SpectralStateError("Inverse FFT requested with no cached forward transform")
            logger.warning("Inverse FFT requested with no cached forward transform")
            return False

        try:
            view = pixel_view(data, width, height)
            if (height, width) != self._original_shape:
                orig_height, orig_width = self._original_shape
                raise PreconditionError(
                    f"Inverse FFT target is {width}x{height}, forward transform "
                    f"was {orig_width}x{orig_height}"
                )
            restored = fft2d(self._backup, inverse=True)
            write_gray(view, to_pixel_values(restored[:height, :width].real))
            view[..., ALPHA] = MAX_PIXEL_VALUE
        finally:
            self.reset()

        logger.debug("Inverse FFT restored %dx%d image", width, height)
        return True

    def reset(self) -> None:
        """Discard any cached spectrum."""
        self._backup = None
        self._current = None
        self._original_shape = None
        self._state = SpectralState.EMPTY
