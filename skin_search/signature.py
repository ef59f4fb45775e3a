"""
Colour signature: a fixed N×N grid of RGBA samples of the region.

The signature keeps spatial colour layout (a red hat over a blue cape is
not the same as the reverse), which the palette alone cannot see.
"""

from typing import Optional, Tuple

from .config import ExtractionConfig
from .models import PixelBuffer, Rect, SignatureCell
from .preprocessing import draw_region


def compute_signature(buffer: PixelBuffer,
                      source_rect: Optional[Rect] = None,
                      grid_size: Optional[int] = None,
                      config: Optional[ExtractionConfig] = None
                      ) -> Optional[Tuple[SignatureCell, ...]]:
    """
    Downsample the region to ``grid_size``² cells and record raw RGBA.

    Returns:
        Row-major cells with alpha scaled to [0, 1], or None for a
        non-positive grid size or a fully transparent region.
    """
    config = config or ExtractionConfig()
    grid_size = grid_size if grid_size is not None else config.signature_grid_size
    if grid_size <= 0:
        return None

    grid = draw_region(buffer, source_rect, target_width=grid_size, target_height=grid_size)
    if not grid[:, :, 3].any():
        return None
    return tuple(
        SignatureCell(int(r), int(g), int(b), int(a) / 255.0)
        for r, g, b, a in grid.reshape(-1, 4)
    )
