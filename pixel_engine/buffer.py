"""Pixel buffer contract and the shared clamp-to-edge boundary policy.

Callers hand the kernel a writable byte buffer laid out as row-major BGRA
(``((y * width + x) * 4) + channel``).  :func:`pixel_view` turns it into a
zero-copy ``(height, width, 4)`` numpy view that operations mutate in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import cv2
import numpy as np
from PIL import Image

from .config import ALPHA, BLUE, CHANNELS, COLOR_CHANNELS, GREEN, MAX_PIXEL_VALUE, RED

BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]

# BGRA <-> RGBA is the same permutation both ways
_SWAP_RB = [RED, GREEN, BLUE, ALPHA]


class PreconditionError(ValueError):
    """Raised when a caller breaks the buffer or parameter contract."""


def check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise PreconditionError(
            f"Image dimensions must be positive, got {width}x{height}"
        )


def pixel_view(data: BufferLike, width: int, height: int, writable: bool = True) -> np.ndarray:
    """Return a ``(height, width, CHANNELS)`` uint8 view of ``data``.

    Args:
        data: Bytes-like object or C-contiguous uint8 ndarray.
        width: Image width in pixels.
        height: Image height in pixels.
        writable: Reject read-only buffers (the default, for in-place operations).

    Returns:
        A view sharing memory with ``data``; writes land in the caller's buffer.

    Raises:
        PreconditionError: On non-positive dimensions, a short, read-only or
            non-contiguous buffer, or a non-uint8 array.
    """
    check_dimensions(width, height)

    if isinstance(data, np.ndarray):
        if data.dtype != np.uint8:
            raise PreconditionError(f"Pixel array must be uint8, got {data.dtype}")
        if not data.flags.c_contiguous:
            raise PreconditionError("Pixel array must be C-contiguous")
        if writable and not data.flags.writeable:
            raise PreconditionError("Pixel array is read-only")
        flat = data.reshape(-1)
    else:
        try:
            raw = memoryview(data)
        except TypeError as exc:
            raise PreconditionError(
                f"Unsupported pixel buffer type: {type(data).__name__}"
            ) from exc
        if writable and raw.readonly:
            raise PreconditionError("Pixel buffer is read-only")
        if not raw.c_contiguous:
            raise PreconditionError("Pixel buffer must be C-contiguous")
        flat = np.frombuffer(raw.cast("B"), dtype=np.uint8)

    needed = width * height * CHANNELS
    if flat.size < needed:
        raise PreconditionError(
            f"Pixel buffer holds {flat.size} bytes, {width}x{height}x{CHANNELS} "
            f"needs {needed}"
        )
    return flat[:needed].reshape(height, width, CHANNELS)


def write_gray(view: np.ndarray, gray: np.ndarray) -> None:
    """Broadcast a single-channel result into B, G and R; alpha is untouched."""
    view[..., COLOR_CHANNELS] = gray[..., np.newaxis]


# ---------------------------------------------------------------------------
# Boundary policy
# ---------------------------------------------------------------------------


def pad_replicate(plane: np.ndarray, radius_y: int, radius_x: int) -> np.ndarray:
    """Pad a 2D (or HxWxC, C <= 4) array by repeating its edge samples.

    Reading ``padded[y + radius_y, x + radius_x]`` for an out-of-range ``(y, x)``
    yields the sample at the nearest valid row/column.
    """
    if radius_y == 0 and radius_x == 0:
        return np.ascontiguousarray(plane)
    return cv2.copyMakeBorder(
        np.ascontiguousarray(plane),
        radius_y,
        radius_y,
        radius_x,
        radius_x,
        cv2.BORDER_REPLICATE,
    )


# ---------------------------------------------------------------------------
# Owned buffer convenience type
# ---------------------------------------------------------------------------


@dataclass
class PixelBuffer:
    """A caller-owned BGRA image: raw bytes plus dimensions."""
    width: int
    height: int
    data: bytearray

    def __post_init__(self):
        # validates dimensions and length
        pixel_view(self.data, self.width, self.height)

    @classmethod
    def blank(cls, width: int, height: int, fill=(0, 0, 0, 255)) -> "PixelBuffer":
        check_dimensions(width, height)
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = np.asarray(fill, dtype=np.uint8)
        return cls(width, height, bytearray(pixels.tobytes()))

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "PixelBuffer":
        """Copy an ``(H, W, 4)`` BGRA uint8 array."""
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise PreconditionError(
                f"Expected an (H, W, {CHANNELS}) array, got shape {pixels.shape}"
            )
        height, width = pixels.shape[:2]
        data = np.ascontiguousarray(pixels, dtype=np.uint8).tobytes()
        return cls(width, height, bytearray(data))

    @classmethod
    def from_gray(cls, gray: np.ndarray, alpha: int = MAX_PIXEL_VALUE) -> "PixelBuffer":
        """Build a neutral BGRA image where B = G = R = ``gray``."""
        gray = np.asarray(gray)
        if gray.ndim != 2:
            raise PreconditionError(f"Expected a 2D array, got shape {gray.shape}")
        height, width = gray.shape
        check_dimensions(width, height)
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[..., COLOR_CHANNELS] = np.clip(gray, 0, MAX_PIXEL_VALUE).astype(np.uint8)[..., np.newaxis]
        pixels[..., ALPHA] = alpha
        return cls.from_array(pixels)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Convert a PIL image (any mode) to BGRA."""
        rgba = np.array(image.convert("RGBA"))
        return cls.from_array(rgba[..., _SWAP_RB])

    def view(self) -> np.ndarray:
        return pixel_view(self.data, self.width, self.height)

    def gray(self) -> np.ndarray:
        """Per-pixel luminance as an ``(H, W)`` uint8 array."""
        from .luminance import reduce_luminance

        return reduce_luminance(self.view())

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, bytearray(self.data))

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.view()[..., _SWAP_RB]))
