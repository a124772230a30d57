"""Editing session over one image: named operations, undo/redo, timing log.

The session is the host-side companion of the engine.  It keeps a snapshot
of the image before each successful operation, a newest-first history of
what ran and how long it took, and can summarise that history as a Markdown
report.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .buffer import PixelBuffer
from .config import CHANNELS, FilterDefaults
from .engine import ImageProcessingEngine
from .matching import MatchResult, find_template

logger = logging.getLogger(__name__)

# Operations that report failure by returning False
SPECTRAL_OPERATIONS = {"fft", "ifft"}


@dataclass
class OperationLogEntry:
    operation: str
    processing_time_ms: float
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.operation} - {self.processing_time_ms:.0f} ms"


class ProcessingSession:
    def __init__(
        self,
        image: PixelBuffer,
        engine: Optional[ImageProcessingEngine] = None,
        defaults: Optional[FilterDefaults] = None,
    ):
        self.image = image
        self.engine = engine or ImageProcessingEngine()
        self.defaults = defaults or FilterDefaults()
        self.history: List[OperationLogEntry] = []
        self._undo_stack: List[PixelBuffer] = []
        self._redo_stack: List[PixelBuffer] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def _default_params(self, operation: str) -> Dict[str, Any]:
        if operation == "gaussian_blur":
            return {"sigma": self.defaults.gaussian_sigma}
        if operation == "median":
            return {"kernel_size": self.defaults.median_kernel_size}
        return {}

    def apply(self, operation: str, **params) -> Any:
        """Run ``engine.apply_<operation>`` on a copy of the image and commit it.

        Returns whatever the engine method returns.  A spectral operation that
        returns False leaves the image, the undo stack and the history as they
        were.

        Raises:
            ValueError: For an unknown operation name.
        """
        method = getattr(self.engine, f"apply_{operation}", None)
        if method is None or operation == "template_match":
            raise ValueError(f"Unknown operation: {operation}")

        merged = {**self._default_params(operation), **params}
        working = self.image.copy()

        started = time.perf_counter()
        result = method(working.data, working.width, working.height, **merged)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        if operation in SPECTRAL_OPERATIONS and result is False:
            logger.warning("%s failed; image left unchanged", operation)
            return result

        self._undo_stack.append(self.image)
        self._redo_stack.clear()
        self.image = working
        self.history.insert(0, OperationLogEntry(operation, elapsed_ms))
        logger.debug("%s finished in %.1f ms", operation, elapsed_ms)
        return result

    def match(self, template: PixelBuffer) -> MatchResult:
        """Search the current image for ``template``; the image is not modified."""
        return find_template(
            self.image.data,
            self.image.width,
            self.image.height,
            template.data,
            template.width,
            template.height,
            workers=self.engine.config.workers,
            band_rows=self.engine.config.band_rows,
        )

    def undo(self) -> PixelBuffer:
        if self._undo_stack:
            self._redo_stack.append(self.image)
            self.image = self._undo_stack.pop()
        return self.image

    def redo(self) -> PixelBuffer:
        if self._redo_stack:
            self._undo_stack.append(self.image)
            self.image = self._redo_stack.pop()
        return self.image

    def generate_report(self) -> str:
        """Markdown summary of the image and the operations applied to it."""
        lines = [
            "## Image Analysis Report",
            "---",
            f"**Image size:** {self.image.width} x {self.image.height}",
            f"**Format:** BGRA ({CHANNELS} channels, 8 bits each)",
            "",
            "## Applied Filters",
            "---",
        ]
        if not self.history:
            lines.append("- No filters applied.")
            return "\n".join(lines) + "\n"

        counts = Counter(entry.operation for entry in self.history)
        for operation, count in counts.most_common():
            lines.append(f"- **{operation}:** {count}x")

        total_ms = sum(entry.processing_time_ms for entry in self.history)
        lines.append("")
        lines.append(f"**Total processing time:** {total_ms:.0f} ms")
        return "\n".join(lines) + "\n"
