"""Tests for Otsu binarization and SAD template matching."""

from __future__ import annotations

import numpy as np
import pytest

from pixel_engine.buffer import PixelBuffer, PreconditionError
from pixel_engine.matching import MatchResult, find_template, match_gray
from pixel_engine.threshold import apply_binarization, build_histogram, otsu_threshold


# ---------------------------------------------------------------------------
# Synthetic image helpers
# ---------------------------------------------------------------------------


def _make_gray(values) -> PixelBuffer:
    return PixelBuffer.from_gray(np.asarray(values, dtype=np.uint8))


def _make_bimodal(width: int = 8, height: int = 6, dark: int = 50, bright: int = 200) -> PixelBuffer:
    values = np.full((height, width), dark, dtype=np.uint8)
    values[:, width // 2:] = bright
    return _make_gray(values)


def _make_scene(width: int = 40, height: int = 30, seed: int = 1) -> np.ndarray:
    rng = np.random.RandomState(seed)
    return rng.randint(0, 256, (height, width)).astype(np.uint8)


# ---------------------------------------------------------------------------
# Histogram and Otsu
# ---------------------------------------------------------------------------


class TestOtsu:
    def test_uniform_image_threshold_zero_all_white(self):
        buf = PixelBuffer.blank(4, 4, fill=(100, 100, 100, 255))
        threshold = apply_binarization(buf.data, 4, 4)
        assert threshold == 0
        assert (buf.view()[..., :3] == 255).all()

    def test_bimodal_first_maximum_wins(self):
        buf = _make_bimodal()
        # every t in [50, 199] splits the classes identically
        threshold = apply_binarization(buf.data, buf.width, buf.height)
        assert threshold == 50
        gray = buf.view()[..., 0]
        assert (gray[:, :4] == 0).all()
        assert (gray[:, 4:] == 255).all()

    def test_output_is_binary_and_alpha_kept(self):
        rng = np.random.RandomState(9)
        pixels = rng.randint(0, 256, (16, 16, 4)).astype(np.uint8)
        buf = PixelBuffer.from_array(pixels)
        apply_binarization(buf.data, 16, 16)
        assert set(np.unique(buf.view()[..., :3])) <= {0, 255}
        np.testing.assert_array_equal(buf.view()[..., 3], pixels[..., 3])

    def test_pixels_at_threshold_are_black(self):
        values = np.array([[10, 10, 240, 240]], dtype=np.uint8)
        buf = _make_gray(values)
        threshold = apply_binarization(buf.data, 4, 1)
        assert threshold == 10
        assert buf.view()[0, :, 0].tolist() == [0, 0, 255, 255]

    def test_matches_brute_force_scan(self):
        gray = _make_scene(23, 19, seed=4)
        histogram = build_histogram(gray)
        total = histogram.sum()
        best_t, best_var = 0, 0.0
        for t in range(256):
            w_bg = histogram[:t + 1].sum()
            w_fg = total - w_bg
            if w_bg == 0 or w_fg == 0:
                continue
            levels = np.arange(256)
            mean_bg = (levels[:t + 1] * histogram[:t + 1]).sum() / w_bg
            mean_fg = (levels[t + 1:] * histogram[t + 1:]).sum() / w_fg
            var = float(w_bg) * float(w_fg) * (mean_bg - mean_fg) ** 2
            if var > best_var:
                best_t, best_var = t, var
        assert otsu_threshold(histogram) == best_t

    def test_threaded_histogram_matches_serial(self):
        gray = _make_scene(31, 57)
        serial = build_histogram(gray)
        threaded = build_histogram(gray, workers=4, band_rows=5)
        np.testing.assert_array_equal(serial, threaded)
        assert serial.sum() == gray.size

    def test_deterministic(self):
        first = _make_gray(_make_scene())
        second = first.copy()
        assert apply_binarization(first.data, 40, 30) == apply_binarization(
            second.data, 40, 30, workers=3, band_rows=4
        )
        assert bytes(first.data) == bytes(second.data)

    def test_bad_histogram_shape(self):
        with pytest.raises(PreconditionError):
            otsu_threshold(np.zeros(10))


# ---------------------------------------------------------------------------
# Template matching
# ---------------------------------------------------------------------------


class TestTemplateMatch:
    def test_finds_cropped_region_exactly(self):
        scene = _make_scene()
        target = _make_gray(scene)
        template = _make_gray(scene[12:19, 21:30])
        result = find_template(
            target.data, target.width, target.height,
            template.data, template.width, template.height,
        )
        assert result == MatchResult(x=21, y=12, sad=0)
        assert result.found

    def test_oversized_template_returns_sentinel(self):
        target = PixelBuffer.blank(4, 4)
        template = PixelBuffer.blank(5, 2)
        result = find_template(target.data, 4, 4, template.data, 5, 2)
        assert result.as_tuple() == (-1, -1)
        assert not result.found

    def test_template_same_size_as_target(self):
        scene = _make_scene(6, 5)
        buf = _make_gray(scene)
        result = find_template(buf.data, 6, 5, bytes(buf.data), 6, 5)
        assert result.as_tuple() == (0, 0)

    def test_ties_break_to_first_row_major_offset(self):
        result = match_gray(np.zeros((10, 12), dtype=np.uint8), np.zeros((3, 3), dtype=np.uint8))
        assert result.as_tuple() == (0, 0)

    def test_ties_across_bands_keep_earliest(self):
        scene = np.zeros((20, 20), dtype=np.uint8)
        template = np.full((2, 2), 90, dtype=np.uint8)
        scene[15:17, 3:5] = 90
        scene[4:6, 10:12] = 90
        result = match_gray(scene, template, workers=4, band_rows=2)
        assert result == MatchResult(x=10, y=4, sad=0)

    def test_threaded_matches_serial(self):
        scene = _make_scene(50, 45, seed=8)
        template = _make_scene(6, 4, seed=2)
        serial = match_gray(scene, template)
        threaded = match_gray(scene, template, workers=3, band_rows=7)
        assert serial == threaded

    def test_buffers_are_not_modified(self):
        scene = _make_scene()
        target = _make_gray(scene)
        template = _make_gray(scene[:3, :3])
        before = bytes(target.data)
        find_template(target.data, 40, 30, template.data, 3, 3)
        assert bytes(target.data) == before
