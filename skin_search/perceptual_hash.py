"""
Difference hash (dHash) of a render.

The region is downsampled to (N+1)×N and each bit records whether a pixel
is brighter than its right-hand neighbour. Small colour shifts barely move
the hash while structural changes flip many bits, which makes the Hamming
distance a cheap layout-similarity signal.
"""

from typing import Optional

import numpy as np

from .config import ExtractionConfig
from .models import PixelBuffer, Rect
from .preprocessing import brightness, draw_region


def compute_difference_hash(buffer: PixelBuffer,
                            source_rect: Optional[Rect] = None,
                            hash_size: Optional[int] = None,
                            config: Optional[ExtractionConfig] = None) -> Optional[str]:
    """
    Compute an N×N-bit difference hash.

    Args:
        buffer: Source pixels.
        source_rect: Region of interest (None for the whole image).
        hash_size: N; defaults to the configured hash grid size.
        config: Extraction settings.

    Returns:
        String of '0'/'1' of length N², row-major, or None for N <= 0 or a
        fully transparent region.
    """
    config = config or ExtractionConfig()
    hash_size = hash_size if hash_size is not None else config.hash_grid_size
    if hash_size <= 0:
        return None

    grid = draw_region(buffer, source_rect,
                       target_width=hash_size + 1, target_height=hash_size)
    if not grid[:, :, 3].any():
        return None
    luma = brightness(grid)
    bits = luma[:, :-1] > luma[:, 1:]
    return "".join(np.where(bits.reshape(-1), "1", "0"))
