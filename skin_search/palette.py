"""
Dominant-colour palette extraction.

Two strategies are available:

    buckets  Quantise opaque pixels into coarse RGB buckets and keep the
             most populated ones (fast, the default).
    kmeans   Cluster opaque pixels in CIELAB using CIEDE2000 as the
             assignment metric, so clusters follow perceived colour rather
             than raw RGB distance.

Both return PaletteColor tuples sorted by pixel count, heaviest first, with
no duplicated hex, or None when the image has no opaque pixels.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .color_space import Lab, lab_to_rgb, rgb_array_to_lab, rgb_to_hex
from .config import ExtractionConfig
from .delta_e import delta_e_2000_matrix
from .models import PaletteColor, PixelBuffer, Rect
from .preprocessing import draw_region

logger = logging.getLogger(__name__)


def _dedupe(colors) -> Optional[Tuple[PaletteColor, ...]]:
    seen = set()
    unique = []
    for color in colors:
        if color.hex in seen:
            continue
        seen.add(color.hex)
        unique.append(color)
    return tuple(unique) or None


def extract_palette(buffer: PixelBuffer,
                    source_rect: Optional[Rect] = None,
                    config: Optional[ExtractionConfig] = None
                    ) -> Optional[Tuple[PaletteColor, ...]]:
    """
    Extract a palette with the configured strategy.

    Args:
        buffer: Source pixels.
        source_rect: Region of interest (None for the whole image).
        config: Extraction settings; ``palette_mode`` picks the strategy.

    Returns:
        Palette colours, heaviest first, or None if nothing is opaque.
    """
    config = config or ExtractionConfig()
    if config.palette_mode == "kmeans":
        return extract_dominant_colors(buffer, source_rect, config)
    if config.palette_mode != "buckets":
        raise ValueError(f"Unknown palette mode: {config.palette_mode}")
    return extract_bucket_palette(buffer, source_rect, config)


def extract_bucket_palette(buffer: PixelBuffer,
                           source_rect: Optional[Rect] = None,
                           config: Optional[ExtractionConfig] = None
                           ) -> Optional[Tuple[PaletteColor, ...]]:
    """
    Bucketed-histogram palette.

    Each pixel with alpha >= the palette alpha threshold falls into the
    bucket ``round(channel / bucket_size)`` per channel. Buckets are sorted
    by pixel count and each kept bucket is represented by the mean colour
    of its pixels; the pixel count is the colour's weight.
    """
    config = config or ExtractionConfig()
    region = draw_region(buffer, source_rect, max_dimension=config.max_dimension)
    pixels = region.reshape(-1, 4)
    pixels = pixels[pixels[:, 3] >= config.palette_alpha_threshold]
    if pixels.shape[0] == 0:
        return None

    rgb = pixels[:, :3].astype(np.int64)
    keys = np.floor(rgb / config.bucket_size + 0.5).astype(np.int64)
    flat_keys = (keys[:, 0] * 1024 + keys[:, 1]) * 1024 + keys[:, 2]

    unique_keys, first_seen, inverse, counts = np.unique(
        flat_keys, return_index=True, return_inverse=True, return_counts=True
    )
    sums = np.zeros((unique_keys.size, 3), dtype=np.int64)
    np.add.at(sums, inverse.reshape(-1), rgb)

    # Most populated first; equal counts keep first-encountered order.
    order = np.lexsort((first_seen, -counts))

    colors = []
    for index in order[:config.max_palette_colors]:
        mean = np.floor(sums[index] / counts[index] + 0.5)
        colors.append(PaletteColor(rgb_to_hex(*mean), float(counts[index])))
    return _dedupe(colors)


def _initial_centroids(samples: np.ndarray, k: int) -> np.ndarray:
    step = max(1, samples.shape[0] // k)
    picks = [min(i * step, samples.shape[0] - 1) for i in range(k)]
    return samples[picks].copy()


def extract_dominant_colors(buffer: PixelBuffer,
                            source_rect: Optional[Rect] = None,
                            config: Optional[ExtractionConfig] = None
                            ) -> Optional[Tuple[PaletteColor, ...]]:
    """
    K-means palette in CIELAB with CIEDE2000 assignment.

    Process:
        1. Sample every ``kmeans_sample_stride``-th pixel in both axes,
           skipping pixels below the k-means alpha threshold
        2. Seed k centroids at evenly strided samples (deterministic)
        3. Alternate CIEDE2000 nearest-centroid assignment and LAB mean
           update until assignments stop changing or the iteration cap
        4. Convert centroids back to RGB and weight by assigned samples

    k is clamped to [3, 5]. Empty clusters keep the first centroid, as
    moving them elsewhere would make the result depend on sample order.

    Returns:
        Palette colours, heaviest first, or None if nothing is opaque.
    """
    config = config or ExtractionConfig()
    k = int(min(5, max(3, round(config.kmeans_k))))
    stride = max(1, config.kmeans_sample_stride)

    region = draw_region(buffer, source_rect, max_dimension=config.max_dimension)
    sampled = region[::stride, ::stride].reshape(-1, 4)
    sampled = sampled[sampled[:, 3] >= config.kmeans_alpha_threshold]
    if sampled.shape[0] == 0:
        return None

    labs = rgb_array_to_lab(sampled[:, :3])
    centroids = _initial_centroids(labs, k)
    assignments = np.full(labs.shape[0], -1, dtype=np.int64)

    for iteration in range(config.kmeans_max_iterations):
        distances = delta_e_2000_matrix(labs, centroids)
        nearest = np.argmin(distances, axis=1)
        moved = bool(np.any(nearest != assignments))
        assignments = nearest
        if not moved and iteration > 0:
            break

        updated = []
        for cluster in range(centroids.shape[0]):
            members = labs[assignments == cluster]
            updated.append(members.mean(axis=0) if members.size else centroids[0])
        centroids = np.array(updated)

    counts = np.bincount(assignments, minlength=centroids.shape[0])
    order = np.argsort(-counts, kind="stable")

    colors = []
    for cluster in order:
        if counts[cluster] == 0:
            continue
        rgb = lab_to_rgb(Lab(*centroids[cluster]))
        colors.append(PaletteColor(rgb_to_hex(*rgb), float(counts[cluster])))

    logger.debug(f"k-means palette: {len(colors)} clusters from {labs.shape[0]} samples")
    return _dedupe(colors[:config.max_palette_colors])
