"""
Silhouette occupancy profile.

Colour signals cannot tell a tall narrow item from a wide flat one with
the same colours. The shape profile downsamples the region's alpha channel
to a fixed grid and records how much of each row and each column is
covered:

    rows       mean opacity of each grid row, in [0, 1]
    columns    mean opacity of each grid column, in [0, 1]
    occupancy  mean of the row profile (overall coverage)
"""

import logging
from typing import Optional

import numpy as np

from .config import ExtractionConfig
from .models import PixelBuffer, Rect, ShapeProfile
from .preprocessing import draw_region

logger = logging.getLogger(__name__)


def compute_shape_profile(buffer: PixelBuffer,
                          source_rect: Optional[Rect] = None,
                          grid_size: Optional[int] = None,
                          config: Optional[ExtractionConfig] = None
                          ) -> Optional[ShapeProfile]:
    """
    Extract the row/column alpha-occupancy profile.

    Args:
        buffer: Source pixels.
        source_rect: Region of interest (None for the whole image).
        grid_size: Profile resolution; defaults to the configured size.
        config: Extraction settings.

    Returns:
        ShapeProfile, or None for a non-positive grid size or a fully
        transparent region.
    """
    config = config or ExtractionConfig()
    grid_size = grid_size if grid_size is not None else config.shape_grid_size
    if grid_size <= 0:
        return None

    grid = draw_region(buffer, source_rect, target_width=grid_size, target_height=grid_size)
    if not grid[:, :, 3].any():
        logger.debug("Shape profile unknown: region is fully transparent")
        return None
    alpha = grid[:, :, 3].astype(np.float64) / 255.0
    height, width = alpha.shape

    rows = np.clip(alpha.sum(axis=1) / width, 0.0, 1.0)
    columns = np.clip(alpha.sum(axis=0) / height, 0.0, 1.0)
    occupancy = float(np.clip(rows.mean(), 0.0, 1.0))

    return ShapeProfile(
        rows=tuple(float(v) for v in rows),
        columns=tuple(float(v) for v in columns),
        occupancy=occupancy,
    )
