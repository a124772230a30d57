"""Row-band fork-join helpers.

Work is split into contiguous row ranges; results always come back in band
order so reductions over them are deterministic regardless of which thread
finishes first.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

Band = Tuple[int, int]


def row_bands(total: int, band_rows: int) -> List[Band]:
    """Split ``range(total)`` into ``[start, stop)`` bands of ``band_rows`` rows."""
    if total <= 0:
        return []
    band_rows = max(1, int(band_rows))
    return [(start, min(start + band_rows, total)) for start in range(0, total, band_rows)]


def map_bands(fn: Callable[[int, int], T], bands: Sequence[Band], workers: int = 1) -> List[T]:
    """Apply ``fn(start, stop)`` to every band, returning results in band order."""
    if workers <= 1 or len(bands) <= 1:
        return [fn(start, stop) for start, stop in bands]
    with ThreadPoolExecutor(max_workers=min(workers, len(bands))) as executor:
        return list(executor.map(lambda band: fn(*band), bands))
