"""Tests for colour space conversions."""

import math

import numpy as np
import pytest

from skin_search.color_space import (
    RGB, Lab, hex_to_lab, hex_to_rgb, hsl_to_rgb, lab_to_hex, lab_to_rgb,
    rgb_array_to_lab, rgb_to_hex, rgb_to_hsl, rgb_to_lab,
)


class TestHexParsing:
    """Tests for hex <-> RGB conversion."""

    def test_six_digit(self):
        assert hex_to_rgb("#33AA77") == RGB(51, 170, 119)

    def test_three_digit_expands(self):
        assert hex_to_rgb("#fa3") == RGB(255, 170, 51)

    def test_case_insensitive_and_optional_hash(self):
        assert hex_to_rgb("ffaa33") == hex_to_rgb("#FFAA33") == RGB(255, 170, 51)

    @pytest.mark.parametrize("value", [
        "", "#", "#12", "#1234", "#12345", "#1234567", "#GGGGGG", "red",
        None, 0xFFAA33, ["#FFAA33"],
    ])
    def test_malformed_returns_none(self, value):
        assert hex_to_rgb(value) is None

    def test_rgb_to_hex_uppercase(self):
        assert rgb_to_hex(255, 170, 51) == "#FFAA33"

    def test_rgb_to_hex_rounds_half_up(self):
        assert rgb_to_hex(127.5, 0, 0.4) == "#800000"

    @pytest.mark.parametrize("channels", [
        (256, 0, 0), (-1, 0, 0), (math.nan, 0, 0), (0, math.inf, 0), ("x", 0, 0),
    ])
    def test_rgb_to_hex_invalid_returns_none(self, channels):
        assert rgb_to_hex(*channels) is None

    def test_hex_to_lab_malformed(self):
        assert hex_to_lab("#nothex") is None


class TestLabConversion:
    """Tests for sRGB <-> CIELAB."""

    def test_black(self):
        lab = rgb_to_lab(0, 0, 0)
        assert lab == pytest.approx((0.0, 0.0, 0.0), abs=1e-9)

    def test_white(self):
        lab = rgb_to_lab(255, 255, 255)
        assert lab.L == pytest.approx(100.0, abs=1e-6)
        assert abs(lab.a) < 0.05
        assert abs(lab.b) < 0.05

    def test_pure_red(self):
        lab = rgb_to_lab(255, 0, 0)
        assert lab.L == pytest.approx(53.24, abs=0.1)
        assert lab.a == pytest.approx(80.09, abs=0.1)
        assert lab.b == pytest.approx(67.20, abs=0.1)

    def test_lab_to_rgb_clamps(self):
        assert lab_to_rgb(Lab(150.0, 0.0, 0.0)) == RGB(255, 255, 255)
        assert lab_to_rgb(Lab(-20.0, 0.0, 0.0)) == RGB(0, 0, 0)

    @pytest.mark.parametrize("hex_value", [
        "#000000", "#FFFFFF", "#33AA77", "#FF7755", "#FFAA33", "#112233",
        "#808080", "#0000FF", "#00FF00", "#C81E1E", "#010203", "#FEFDFC",
    ])
    def test_round_trip_named_colours(self, hex_value):
        rgb = hex_to_rgb(hex_value)
        back = hex_to_rgb(lab_to_hex(rgb_to_lab(*rgb)))
        assert all(abs(a - b) <= 1 for a, b in zip(rgb, back))

    def test_round_trip_grid(self):
        for r in range(0, 256, 51):
            for g in range(0, 256, 51):
                for b in range(0, 256, 51):
                    back = lab_to_rgb(rgb_to_lab(r, g, b))
                    assert abs(back.r - r) <= 1
                    assert abs(back.g - g) <= 1
                    assert abs(back.b - b) <= 1

    def test_vectorised_matches_scalar(self):
        colours = np.array([[255, 0, 0], [12, 200, 99], [128, 128, 128], [0, 0, 0]])
        labs = rgb_array_to_lab(colours)
        for colour, lab in zip(colours, labs):
            assert tuple(lab) == pytest.approx(tuple(rgb_to_lab(*colour)), abs=1e-9)


class TestHsl:
    """Tests for RGB <-> HSL."""

    def test_primaries(self):
        assert rgb_to_hsl(255, 0, 0) == pytest.approx((0.0, 1.0, 0.5))
        assert rgb_to_hsl(0, 255, 0) == pytest.approx((120.0, 1.0, 0.5))
        assert rgb_to_hsl(0, 0, 255) == pytest.approx((240.0, 1.0, 0.5))

    def test_magenta_hue_wraps_into_range(self):
        hue, _, _ = rgb_to_hsl(255, 0, 128)
        assert 0.0 <= hue < 360.0
        assert hue == pytest.approx(329.88, abs=0.01)

    def test_grey_has_no_saturation(self):
        hue, saturation, lightness = rgb_to_hsl(128, 128, 128)
        assert hue == 0.0
        assert saturation == 0.0
        assert lightness == pytest.approx(128 / 255)

    def test_hsl_to_rgb(self):
        assert hsl_to_rgb(120, 1, 0.5) == RGB(0, 255, 0)
        assert hsl_to_rgb(-120, 1, 0.5) == RGB(0, 0, 255)
        assert hsl_to_rgb(0, 0, 0.5) == RGB(128, 128, 128)

    @pytest.mark.parametrize("rgb", [(200, 30, 30), (30, 180, 30), (12, 34, 56), (250, 240, 10)])
    def test_round_trip(self, rgb):
        back = hsl_to_rgb(*rgb_to_hsl(*rgb))
        assert all(abs(a - b) <= 1 for a, b in zip(rgb, back))
