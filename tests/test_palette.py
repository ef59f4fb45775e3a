"""Tests for dominant-colour palette extraction."""

import pytest

from skin_search.color_space import hex_to_rgb
from skin_search.config import ExtractionConfig
from skin_search.models import PixelBuffer, Rect
from skin_search.palette import extract_bucket_palette, extract_dominant_colors, extract_palette

from conftest import rgba_canvas

KMEANS = ExtractionConfig(palette_mode="kmeans")


def _split_image(left, right, width=16, height=16, split=None):
    img = rgba_canvas(width, height)
    split = width // 2 if split is None else split
    img[:, :split] = left
    img[:, split:] = right
    return PixelBuffer.from_array(img)


class TestBucketPalette:
    """Tests for the bucketed-histogram palette."""

    def test_solid_colour(self):
        buffer = PixelBuffer.from_array(rgba_canvas(16, 16, (255, 119, 85, 255)))
        palette = extract_bucket_palette(buffer)
        assert len(palette) == 1
        assert palette[0].hex == "#FF7755"
        assert palette[0].weight == 256

    def test_heaviest_first(self):
        buffer = _split_image((200, 30, 30, 255), (30, 30, 200, 255), split=12)
        palette = extract_bucket_palette(buffer)
        assert [c.hex for c in palette] == ["#C81E1E", "#1E1EC8"]
        assert palette[0].weight > palette[1].weight

    def test_bucket_mean_colour(self):
        buffer = _split_image((100, 100, 100, 255), (104, 104, 104, 255))
        palette = extract_bucket_palette(buffer)
        assert len(palette) == 1
        assert palette[0].hex == "#666666"

    def test_equal_counts_keep_first_seen_order(self):
        buffer = _split_image((30, 30, 200, 255), (200, 30, 30, 255))
        palette = extract_bucket_palette(buffer)
        assert [c.hex for c in palette] == ["#1E1EC8", "#C81E1E"]

    def test_transparent_pixels_excluded(self, red_square_image):
        palette = extract_bucket_palette(red_square_image)
        assert [c.hex for c in palette] == ["#C81E1E"]

    def test_low_alpha_excluded(self):
        buffer = _split_image((200, 30, 30, 255), (30, 30, 200, 40))
        assert [c.hex for c in extract_bucket_palette(buffer)] == ["#C81E1E"]

    def test_fully_transparent_is_none(self, transparent_image):
        assert extract_bucket_palette(transparent_image) is None

    def test_capped_at_max_colours(self):
        img = rgba_canvas(10, 10)
        for i in range(10):
            img[i, :] = [i * 25, 255 - i * 25, (i * 70) % 256, 255]
        palette = extract_bucket_palette(PixelBuffer.from_array(img))
        assert len(palette) == 6

    def test_unique_hexes(self, noise_image):
        palette = extract_bucket_palette(noise_image)
        hexes = [c.hex for c in palette]
        assert len(hexes) == len(set(hexes))

    def test_respects_source_rect(self):
        buffer = _split_image((200, 30, 30, 255), (30, 30, 200, 255), split=12)
        palette = extract_bucket_palette(buffer, Rect(12, 0, 4, 16))
        assert [c.hex for c in palette] == ["#1E1EC8"]


class TestKMeansPalette:
    """Tests for the CIELAB k-means palette."""

    def test_solid_colour(self):
        buffer = PixelBuffer.from_array(rgba_canvas(16, 16, (255, 119, 85, 255)))
        palette = extract_dominant_colors(buffer, config=KMEANS)
        assert len(palette) == 1
        rgb = hex_to_rgb(palette[0].hex)
        assert all(abs(a - b) <= 1 for a, b in zip(rgb, (255, 119, 85)))
        # 16x16 sampled with stride 4
        assert palette[0].weight == 16

    def test_separates_distinct_colours(self):
        buffer = _split_image((200, 30, 30, 255), (30, 30, 200, 255), width=32, height=32)
        palette = extract_dominant_colors(buffer, config=KMEANS)
        assert len(palette) == 2
        rgbs = sorted(hex_to_rgb(c.hex) for c in palette)
        assert all(abs(a - b) <= 1 for a, b in zip(rgbs[0], (30, 30, 200)))
        assert all(abs(a - b) <= 1 for a, b in zip(rgbs[1], (200, 30, 30)))

    def test_deterministic(self, noise_image):
        first = extract_dominant_colors(noise_image, config=KMEANS)
        second = extract_dominant_colors(noise_image, config=KMEANS)
        assert first == second

    def test_k_is_clamped(self, noise_image):
        palette = extract_dominant_colors(noise_image, config=ExtractionConfig(kmeans_k=12))
        assert 1 <= len(palette) <= 5

    def test_weights_descending(self, noise_image):
        palette = extract_dominant_colors(noise_image, config=KMEANS)
        weights = [c.weight for c in palette]
        assert weights == sorted(weights, reverse=True)

    def test_fully_transparent_is_none(self, transparent_image):
        assert extract_dominant_colors(transparent_image, config=KMEANS) is None


class TestExtractPalette:
    def test_dispatches_on_mode(self, red_square_image):
        assert extract_palette(red_square_image) == extract_bucket_palette(red_square_image)
        assert extract_palette(red_square_image, config=KMEANS) == \
            extract_dominant_colors(red_square_image, config=KMEANS)

    def test_unknown_mode(self, red_square_image):
        with pytest.raises(ValueError):
            extract_palette(red_square_image, config=ExtractionConfig(palette_mode="median"))
