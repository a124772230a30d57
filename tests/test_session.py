"""Tests for the engine facade and the undo/redo processing session."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from pixel_engine import (
    EngineConfig,
    FilterDefaults,
    ImageProcessingEngine,
    PixelBuffer,
    ProcessingSession,
)
from pixel_engine.session import OperationLogEntry


def _make_noise(width: int = 12, height: int = 10, seed: int = 0) -> PixelBuffer:
    rng = np.random.RandomState(seed)
    pixels = rng.randint(0, 256, (height, width, 4)).astype(np.uint8)
    pixels[..., 3] = 255
    return PixelBuffer.from_array(pixels)


# ---------------------------------------------------------------------------
# Engine facade
# ---------------------------------------------------------------------------


class TestEngine:
    def test_every_filter_runs_in_place(self):
        engine = ImageProcessingEngine(EngineConfig(workers=2, band_rows=3))
        for name, args in [
            ("grayscale", ()),
            ("gaussian_blur", (1.2,)),
            ("sobel", ()),
            ("laplacian", ()),
            ("median", (3,)),
            ("dilation", ()),
            ("erosion", ()),
        ]:
            buf = _make_noise()
            before = bytes(buf.data)
            getattr(engine, f"apply_{name}")(buf.data, buf.width, buf.height, *args)
            assert bytes(buf.data) != before, name

    def test_binarization_returns_threshold(self):
        buf = _make_noise()
        threshold = ImageProcessingEngine().apply_binarization(buf.data, buf.width, buf.height)
        assert 0 <= threshold <= 255

    def test_template_match_tuple(self):
        buf = _make_noise(20, 16)
        template = PixelBuffer.from_array(buf.view()[5:9, 7:12].copy())
        engine = ImageProcessingEngine(EngineConfig(workers=3, band_rows=2))
        offset = engine.apply_template_match(
            buf.data, buf.width, buf.height, template.data, template.width, template.height
        )
        assert offset == (7, 5)

    def test_fft_lifecycle(self):
        engine = ImageProcessingEngine()
        buf = _make_noise(8, 8)
        assert not engine.has_fft_data()
        assert engine.apply_fft(buf.data, 8, 8)
        assert engine.has_fft_data()
        engine.clear_fft_data()
        assert not engine.has_fft_data()
        assert engine.apply_ifft(buf.data, 8, 8) is False


# ---------------------------------------------------------------------------
# Processing session
# ---------------------------------------------------------------------------


class TestProcessingSession:
    def test_apply_records_newest_first(self):
        session = ProcessingSession(_make_noise())
        session.apply("grayscale")
        session.apply("median", kernel_size=3)
        assert [entry.operation for entry in session.history] == ["median", "grayscale"]
        assert all(entry.processing_time_ms >= 0 for entry in session.history)

    def test_defaults_fill_missing_parameters(self):
        base = _make_noise()
        session = ProcessingSession(base.copy(), defaults=FilterDefaults(gaussian_sigma=0.0))
        session.apply("gaussian_blur")
        # sigma 0 is the identity
        assert bytes(session.image.data) == bytes(base.data)

    def test_median_uses_default_kernel_size(self):
        base = _make_noise()
        session = ProcessingSession(base.copy(), defaults=FilterDefaults(median_kernel_size=1))
        session.apply("median")
        # kernel size 1 is the identity
        assert bytes(session.image.data) == bytes(base.data)

    def test_explicit_parameter_overrides_default(self):
        base = _make_noise()
        session = ProcessingSession(base.copy(), defaults=FilterDefaults(median_kernel_size=1))
        session.apply("median", kernel_size=3)
        assert bytes(session.image.data) != bytes(base.data)

    def test_undo_redo(self):
        original = _make_noise()
        session = ProcessingSession(original.copy())
        assert not session.can_undo
        session.apply("sobel")
        edged = bytes(session.image.data)
        assert session.can_undo and not session.can_redo

        assert bytes(session.undo().data) == bytes(original.data)
        assert session.can_redo
        assert bytes(session.redo().data) == edged
        assert not session.can_redo

    def test_new_operation_clears_redo(self):
        session = ProcessingSession(_make_noise())
        session.apply("erosion")
        session.undo()
        session.apply("dilation")
        assert not session.can_redo

    def test_undo_on_empty_stack_is_noop(self):
        session = ProcessingSession(_make_noise())
        image = session.image
        assert session.undo() is image
        assert session.redo() is image

    def test_failed_ifft_leaves_session_untouched(self, caplog):
        session = ProcessingSession(_make_noise(8, 8))
        before = bytes(session.image.data)
        with caplog.at_level(logging.WARNING):
            assert session.apply("ifft") is False
        assert bytes(session.image.data) == before
        assert not session.can_undo
        assert session.history == []
        assert "ifft" in caplog.text

    def test_fft_then_ifft_round_trip(self):
        session = ProcessingSession(PixelBuffer.from_gray(np.arange(64, dtype=np.uint8).reshape(8, 8) * 3))
        source = session.image.gray().astype(int)
        assert session.apply("fft")
        assert session.apply("ifft")
        assert np.abs(session.image.gray().astype(int) - source).max() <= 1
        assert [entry.operation for entry in session.history] == ["ifft", "fft"]

    def test_unknown_operation(self):
        session = ProcessingSession(_make_noise())
        with pytest.raises(ValueError, match="Unknown operation"):
            session.apply("sharpen")
        with pytest.raises(ValueError):
            session.apply("template_match")

    def test_match_uses_current_image(self):
        session = ProcessingSession(_make_noise(16, 12))
        template = PixelBuffer.from_array(session.image.view()[2:6, 3:8].copy())
        result = session.match(template)
        assert result.as_tuple() == (3, 2)
        assert result.sad == 0

    def test_log_entry_str(self):
        entry = OperationLogEntry("sobel", 12.4)
        assert str(entry).endswith("sobel - 12 ms")


class TestReport:
    def test_empty_history(self):
        report = ProcessingSession(PixelBuffer.blank(3, 2)).generate_report()
        assert "**Image size:** 3 x 2" in report
        assert "No filters applied" in report

    def test_counts_most_frequent_first(self):
        session = ProcessingSession(_make_noise())
        session.apply("erosion")
        session.apply("dilation")
        session.apply("dilation")
        report = session.generate_report()
        assert "- **dilation:** 2x" in report
        assert "- **erosion:** 1x" in report
        assert report.index("dilation") < report.index("erosion")
        assert "**Total processing time:**" in report
