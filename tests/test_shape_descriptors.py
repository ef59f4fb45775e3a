"""Tests for the silhouette occupancy profile."""

import numpy as np
import pytest

from skin_search.models import PixelBuffer
from skin_search.shape_descriptors import compute_shape_profile

from conftest import rgba_canvas


class TestComputeShapeProfile:
    """Tests for row/column occupancy extraction."""

    def test_profile_lengths(self, red_square_image):
        profile = compute_shape_profile(red_square_image)
        assert len(profile.rows) == 28
        assert len(profile.columns) == 28

    def test_custom_grid(self, red_square_image):
        profile = compute_shape_profile(red_square_image, grid_size=8)
        assert len(profile.rows) == 8
        assert len(profile.columns) == 8

    def test_fully_opaque(self):
        buffer = PixelBuffer.from_array(rgba_canvas(56, 56, (10, 10, 10, 255)))
        profile = compute_shape_profile(buffer)
        assert all(v == pytest.approx(1.0) for v in profile.rows)
        assert all(v == pytest.approx(1.0) for v in profile.columns)
        assert profile.occupancy == pytest.approx(1.0)

    def test_left_half_opaque(self):
        img = rgba_canvas(56, 56)
        img[:, :28] = [10, 10, 10, 255]
        profile = compute_shape_profile(PixelBuffer.from_array(img))
        assert profile.columns[:14] == pytest.approx([1.0] * 14)
        assert profile.columns[14:] == pytest.approx([0.0] * 14)
        assert profile.rows == pytest.approx([0.5] * 28)
        assert profile.occupancy == pytest.approx(0.5)

    def test_values_in_unit_range(self, blue_circle_image):
        profile = compute_shape_profile(blue_circle_image)
        for v in profile.rows + profile.columns:
            assert 0.0 <= v <= 1.0
        assert 0.0 < profile.occupancy < 1.0

    def test_tall_and_wide_differ(self, green_rectangle_image):
        tall = compute_shape_profile(green_rectangle_image)
        wide = compute_shape_profile(PixelBuffer.from_array(
            np.ascontiguousarray(np.transpose(green_rectangle_image.to_array(), (1, 0, 2)))
        ))
        assert tall.rows == pytest.approx(wide.columns, abs=0.01)
        assert tall.rows != pytest.approx(wide.rows, abs=0.01)

    def test_fully_transparent_is_none(self, transparent_image):
        assert compute_shape_profile(transparent_image) is None

    @pytest.mark.parametrize("grid_size", [0, -3])
    def test_non_positive_grid_is_none(self, red_square_image, grid_size):
        assert compute_shape_profile(red_square_image, grid_size=grid_size) is None
