"""Shared test fixtures for skin search tests."""

import numpy as np
import cv2
import pytest

from skin_search.models import (
    PaletteColor, PixelBuffer, ShapeProfile, SignatureCell, VisualDescriptor,
)


def rgba_canvas(width, height, color=(0, 0, 0, 0)):
    """Blank RGBA canvas, transparent by default."""
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[:, :] = color
    return img


@pytest.fixture
def red_square_image():
    """64x64 opaque red square on a transparent background."""
    img = rgba_canvas(64, 64)
    img[16:48, 16:48] = [200, 30, 30, 255]
    return PixelBuffer.from_array(img)


@pytest.fixture
def blue_circle_image():
    """64x64 opaque blue disc on a transparent background."""
    img = rgba_canvas(64, 64)
    cv2.circle(img, (32, 32), 20, (30, 30, 200, 255), -1)
    return PixelBuffer.from_array(img)


@pytest.fixture
def green_rectangle_image():
    """64x64 tall green rectangle on a transparent background."""
    img = rgba_canvas(64, 64)
    img[6:58, 22:42] = [30, 180, 30, 255]
    return PixelBuffer.from_array(img)


@pytest.fixture
def transparent_image():
    """Fully transparent 32x32 buffer."""
    return PixelBuffer.from_array(rgba_canvas(32, 32))


@pytest.fixture
def noise_image():
    """64x64 opaque random noise."""
    rng = np.random.RandomState(42)
    rgb = rng.randint(0, 255, (64, 64, 3), dtype=np.uint8)
    return PixelBuffer.from_array(rgb)


@pytest.fixture
def full_descriptor():
    """Hand-built descriptor with every field populated."""
    return VisualDescriptor(
        palette=(PaletteColor("#C81E1E", 120.0), PaletteColor("#1E1EC8", 40.0)),
        signature=tuple(
            SignatureCell(200, 30, 30, 1.0) if i % 2 else SignatureCell(0, 0, 0, 0.0)
            for i in range(16)
        ),
        shape=ShapeProfile(rows=(0.0, 0.5, 0.5, 0.0),
                           columns=(0.0, 0.5, 0.5, 0.0),
                           occupancy=0.25),
        hash="1010" * 4,
        edges=(0.25, 0.0, 0.25, 0.0, 0.25, 0.0, 0.25, 0.0),
        tones=(0.8,) + (0.0,) * 11 + (0.2,),
    )
