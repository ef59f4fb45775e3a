"""Tests for edge-orientation and tone histograms."""

import numpy as np
import pytest

from skin_search.config import ExtractionConfig
from skin_search.histograms import (
    compute_edge_histogram, compute_tone_histogram, tone_histogram_from_pixels,
    tones_from_palette,
)
from skin_search.models import PixelBuffer

from conftest import rgba_canvas

NEUTRAL = 12


def _solid(color, size=16):
    return PixelBuffer.from_array(rgba_canvas(size, size, color))


class TestEdgeHistogram:
    """Tests for gradient-orientation histograms."""

    def test_bins_and_normalisation(self, blue_circle_image):
        hist = compute_edge_histogram(blue_circle_image)
        assert len(hist) == 8
        assert sum(hist) == pytest.approx(1.0)
        assert all(v >= 0 for v in hist)

    def test_vertical_edge_lands_in_zero_angle_bin(self):
        img = rgba_canvas(56, 56, (0, 0, 0, 255))
        img[:, 28:, :3] = 255
        hist = compute_edge_histogram(PixelBuffer.from_array(img))
        assert hist[4] == pytest.approx(1.0)

    def test_horizontal_edge_lands_in_quarter_turn_bin(self):
        img = rgba_canvas(56, 56, (0, 0, 0, 255))
        img[28:, :, :3] = 255
        hist = compute_edge_histogram(PixelBuffer.from_array(img))
        assert hist[6] == pytest.approx(1.0)

    def test_custom_bins(self, blue_circle_image):
        config = ExtractionConfig(edge_orientation_bins=16)
        assert len(compute_edge_histogram(blue_circle_image, config=config)) == 16

    def test_flat_image_is_none(self):
        assert compute_edge_histogram(_solid((90, 90, 90, 255))) is None

    def test_transparent_is_none(self, transparent_image):
        assert compute_edge_histogram(transparent_image) is None

    def test_tiny_grid_is_none(self, blue_circle_image):
        assert compute_edge_histogram(blue_circle_image, grid_size=1) is None

    def test_no_nan(self, noise_image):
        hist = compute_edge_histogram(noise_image)
        assert not np.any(np.isnan(hist))


class TestToneHistogram:
    """Tests for hue/tone distributions."""

    def test_length_and_normalisation(self, noise_image):
        hist = compute_tone_histogram(noise_image)
        assert len(hist) == 13
        assert sum(hist) == pytest.approx(1.0)

    @pytest.mark.parametrize("color,bucket", [
        ((255, 0, 0, 255), 0),
        ((0, 255, 0, 255), 4),
        ((0, 0, 255, 255), 8),
        ((128, 128, 128, 255), NEUTRAL),
        ((10, 0, 0, 255), NEUTRAL),
        ((255, 245, 245, 255), NEUTRAL),
    ])
    def test_single_colour_bucket(self, color, bucket):
        hist = compute_tone_histogram(_solid(color))
        assert hist[bucket] == pytest.approx(1.0)

    def test_saturation_weighting(self):
        img = rgba_canvas(16, 16)
        img[:, :8] = [255, 0, 0, 255]
        img[:, 8:] = [128, 128, 128, 255]
        hist = compute_tone_histogram(PixelBuffer.from_array(img))
        # Saturated pixels weigh 1.3, neutral ones 0.7.
        assert hist[0] == pytest.approx(0.65)
        assert hist[NEUTRAL] == pytest.approx(0.35)

    def test_faint_pixels_ignored(self):
        img = rgba_canvas(16, 16)
        img[:, :8] = [255, 0, 0, 255]
        img[:, 8:] = [0, 0, 255, 30]
        hist = compute_tone_histogram(PixelBuffer.from_array(img))
        assert hist[0] == pytest.approx(1.0)

    def test_transparent_is_none(self, transparent_image):
        assert compute_tone_histogram(transparent_image) is None

    def test_from_pixels_accepts_flat_array(self):
        pixels = np.array([[0, 0, 255, 255], [0, 0, 255, 255]], dtype=np.uint8)
        assert tone_histogram_from_pixels(pixels)[8] == pytest.approx(1.0)

    def test_from_pixels_empty(self):
        assert tone_histogram_from_pixels(np.zeros((0, 4), dtype=np.uint8)) is None


class TestTonesFromPalette:
    """Tests for palette-derived tone distributions."""

    def test_rank_weighting(self):
        hist = tones_from_palette(["#FF0000", "#808080"])
        assert hist[0] == pytest.approx(2 / 3)
        assert hist[NEUTRAL] == pytest.approx(1 / 3)

    def test_malformed_hex_consumes_rank(self):
        hist = tones_from_palette(["zz", "#FF0000"])
        assert hist[0] == pytest.approx(1.0)

    def test_matches_pixel_buckets(self):
        hist = tones_from_palette(["#0000FF"])
        assert hist[8] == pytest.approx(1.0)

    @pytest.mark.parametrize("palette", [None, [], ["nope", "#12"]])
    def test_unknown(self, palette):
        assert tones_from_palette(palette) is None
