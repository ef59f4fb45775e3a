"""
Edge-orientation and hue/tone histograms.

Both are small normalised distributions that summarise an image without
caring where things are:

    edges  Gradient orientation, weighted by gradient magnitude, in 8
           equal bins over (-pi, pi]. Captures whether an outline is
           dominated by horizontal, vertical or diagonal strokes.
    tones  12 hue sectors plus one neutral bucket (greys, near-black,
           near-white), weighted by opacity and saturation.

A histogram whose total weight is zero is "unknown" (None), never a zero
vector, so a blank image cannot look identical to another blank image.
"""

import math
import logging
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .color_space import hex_to_rgb, rgb_to_hsl
from .config import ExtractionConfig
from .models import PixelBuffer, Rect
from .preprocessing import brightness, draw_region

logger = logging.getLogger(__name__)


def compute_edge_histogram(buffer: PixelBuffer,
                           source_rect: Optional[Rect] = None,
                           grid_size: Optional[int] = None,
                           config: Optional[ExtractionConfig] = None
                           ) -> Optional[Tuple[float, ...]]:
    """
    Magnitude-weighted gradient orientation histogram.

    Process:
        1. Downsample the region to grid_size × grid_size
        2. Central finite differences of brightness; neighbours outside the
           grid are replaced by the centre value
        3. Drop pixels with magnitude below the minimum
        4. Bin atan2(gy, gx) into equal sectors, accumulate magnitude
        5. Normalise by total magnitude

    Returns:
        Tuple of bin weights summing to 1, or None if there is no gradient
        (or grid_size < 2).
    """
    config = config or ExtractionConfig()
    grid_size = grid_size if grid_size is not None else config.edge_grid_size
    if grid_size <= 1:
        return None

    bins = config.edge_orientation_bins
    grid = draw_region(buffer, source_rect, target_width=grid_size, target_height=grid_size)
    luma = np.pad(brightness(grid), 1, mode="edge")

    gx = luma[1:-1, 2:] - luma[1:-1, :-2]
    gy = luma[2:, 1:-1] - luma[:-2, 1:-1]
    magnitude = np.hypot(gx, gy)

    keep = magnitude >= config.edge_min_magnitude
    if not np.any(keep):
        return None

    orientation = np.arctan2(gy[keep], gx[keep])
    normalized = (orientation + math.pi) / (2 * math.pi)
    indices = np.clip(np.floor(normalized * bins), 0, bins - 1).astype(np.int64)
    histogram = np.bincount(indices, weights=magnitude[keep], minlength=bins)

    total = histogram.sum()
    if total <= 0:
        return None
    return tuple(float(v) for v in histogram / total)


def _hue_bucket(hue: np.ndarray, bucket_count: int) -> np.ndarray:
    return np.minimum(bucket_count - 1, np.floor(hue / 360.0 * bucket_count)).astype(np.int64)


def tone_histogram_from_pixels(pixels: np.ndarray,
                               config: Optional[ExtractionConfig] = None
                               ) -> Optional[Tuple[float, ...]]:
    """
    Tone distribution of an (N, 4) or (H, W, 4) RGBA uint8 array.

    Pixels below the minimum opacity are ignored. A pixel is neutral when
    its saturation is below the minimum or its lightness falls outside the
    allowed band; otherwise it lands in one of the hue sectors. Each pixel
    weighs ``alpha * (0.7 + 0.6 * saturation)``.

    Returns:
        hue_buckets + 1 weights summing to 1 (neutral last), or None.
    """
    config = config or ExtractionConfig()
    pixels = np.asarray(pixels, dtype=np.uint8).reshape(-1, 4)
    if pixels.shape[0] == 0:
        return None

    alpha = pixels[:, 3].astype(np.float64) / 255.0
    visible = alpha >= config.tone_min_alpha
    if not np.any(visible):
        return None
    pixels, alpha = pixels[visible], alpha[visible]

    rgb = pixels[:, :3].astype(np.float32).reshape(-1, 1, 3) / 255.0
    hls = cv2.cvtColor(rgb, cv2.COLOR_RGB2HLS).reshape(-1, 3).astype(np.float64)
    hue = np.mod(hls[:, 0], 360.0)
    lightness = hls[:, 1]
    saturation = np.clip(hls[:, 2], 0.0, 1.0)

    neutral = ((saturation < config.tone_min_saturation)
               | (lightness < config.tone_min_lightness)
               | (lightness > config.tone_max_lightness))
    weight = alpha * (0.7 + saturation * 0.6)

    bucket_count = config.hue_buckets
    indices = np.where(neutral, bucket_count, _hue_bucket(hue, bucket_count))
    histogram = np.bincount(indices, weights=weight, minlength=bucket_count + 1)

    total = histogram.sum()
    if total <= 0:
        return None
    return tuple(float(v) for v in histogram / total)


def compute_tone_histogram(buffer: PixelBuffer,
                           source_rect: Optional[Rect] = None,
                           config: Optional[ExtractionConfig] = None
                           ) -> Optional[Tuple[float, ...]]:
    """Tone distribution of a region, resampled to the working size first."""
    config = config or ExtractionConfig()
    region = draw_region(buffer, source_rect, max_dimension=config.max_dimension)
    return tone_histogram_from_pixels(region, config)


def tones_from_palette(palette: Optional[Iterable[str]],
                       config: Optional[ExtractionConfig] = None
                       ) -> Optional[Tuple[float, ...]]:
    """
    Approximate tone distribution from a ranked list of palette hexes.

    Used for catalogue items that only carry a palette. The i-th colour
    (0-based) weighs 1 / (i + 1); malformed hexes are skipped but still
    consume their rank.
    """
    if not palette:
        return None
    config = config or ExtractionConfig()
    bucket_count = config.hue_buckets
    buckets = [0.0] * (bucket_count + 1)
    total = 0.0

    for index, hex_value in enumerate(palette):
        rgb = hex_to_rgb(hex_value)
        if rgb is None:
            continue
        hue, saturation, lightness = rgb_to_hsl(*rgb)
        weight = 1.0 / (index + 1)
        if (saturation < config.tone_min_saturation
                or lightness < config.tone_min_lightness
                or lightness > config.tone_max_lightness):
            buckets[bucket_count] += weight
        else:
            segment = min(bucket_count - 1, int(math.floor(hue / 360.0 * bucket_count)))
            buckets[segment] += weight
        total += weight

    if total <= 0:
        return None
    return tuple(value / total for value in buckets)
