"""Tests for the colour signature grid."""

import pytest

from skin_search.models import PixelBuffer, Rect
from skin_search.signature import compute_signature

from conftest import rgba_canvas


class TestComputeSignature:
    def test_default_grid(self, red_square_image):
        assert len(compute_signature(red_square_image)) == 144

    def test_solid_colour_cells(self):
        buffer = PixelBuffer.from_array(rgba_canvas(48, 48, (12, 34, 56, 255)))
        cells = compute_signature(buffer, grid_size=4)
        assert len(cells) == 16
        for cell in cells:
            assert (cell.r, cell.g, cell.b) == (12, 34, 56)
            assert cell.a == pytest.approx(1.0)

    def test_row_major_layout(self):
        img = rgba_canvas(8, 8)
        img[:4, :] = [255, 0, 0, 255]
        img[4:, :] = [0, 0, 255, 255]
        cells = compute_signature(PixelBuffer.from_array(img), grid_size=2)
        assert [(c.r, c.b) for c in cells] == [(255, 0), (255, 0), (0, 255), (0, 255)]

    def test_alpha_scaled_to_unit(self, red_square_image):
        cells = compute_signature(red_square_image, grid_size=4)
        # Corners of the 64x64 image are transparent, the centre is opaque.
        assert cells[0].a == 0.0
        assert cells[5].a == pytest.approx(1.0)

    def test_source_rect(self, red_square_image):
        cells = compute_signature(red_square_image, Rect(16, 16, 32, 32), grid_size=3)
        assert all((c.r, c.g, c.b, c.a) == (200, 30, 30, 1.0) for c in cells)

    def test_fully_transparent_is_none(self, transparent_image):
        assert compute_signature(transparent_image) is None

    def test_zero_grid_is_none(self, red_square_image):
        assert compute_signature(red_square_image, grid_size=0) is None
