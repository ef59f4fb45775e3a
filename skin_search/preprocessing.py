"""
Pixel-buffer preprocessing for descriptor extraction.

Handles region-of-interest detection (alpha trimming with a gradient-based
fallback) and canvas-equivalent resampling of a region into a working grid,
so every descriptor is computed from the same framing regardless of how
much empty margin the source render carries.
"""

import math
import logging
from typing import Optional

import cv2
import numpy as np

from .config import ExtractionConfig
from .models import PixelBuffer, Rect

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def brightness(rgba: np.ndarray) -> np.ndarray:
    """Per-pixel perceived brightness (0-255) of an (..., 3+) array."""
    return np.asarray(rgba[..., :3], dtype=np.float64) @ LUMA_WEIGHTS


def _pad_rect(x0: int, y0: int, x1: int, y1: int,
              width: int, height: int, padding_ratio: float) -> Rect:
    """Expand the inclusive box (x0, y0)-(x1, y1) by the padding ratio."""
    pad_x = max(2, int(math.floor(width * padding_ratio + 0.5)))
    pad_y = max(2, int(math.floor(height * padding_ratio + 0.5)))
    start_x = max(0, x0 - pad_x)
    start_y = max(0, y0 - pad_y)
    end_x = min(width, x1 + 1 + pad_x)
    end_y = min(height, y1 + 1 + pad_y)
    return Rect(start_x, start_y, max(1, end_x - start_x), max(1, end_y - start_y))


def _bounding_box(mask: np.ndarray):
    ys, xs = np.nonzero(mask)
    if xs.size == 0:
        return None
    return int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())


def resolve_source_rect(buffer: PixelBuffer,
                        trim_transparent: bool = False,
                        detect_edges: bool = False,
                        padding_ratio: Optional[float] = None,
                        config: Optional[ExtractionConfig] = None) -> Optional[Rect]:
    """
    Detect the region of interest of a render.

    Policy:
        1. With trim_transparent, use the tight bounding box of pixels whose
           alpha exceeds the alpha threshold.
        2. Otherwise (or if nothing is opaque) and with detect_edges, use the
           bounding box of pixels whose forward brightness gradient exceeds
           the gradient threshold, but only if those pixels make up at
           least the minimum active ratio of the image.
        3. Otherwise no cropping is applied (None).

    Args:
        buffer: Source pixels.
        trim_transparent: Enable alpha-based trimming.
        detect_edges: Enable the gradient-based fallback.
        padding_ratio: Fraction of the image size added around the box
            (at least 2 pixels). Defaults to the configured ratio.
        config: Extraction thresholds.

    Returns:
        The padded region, or None when no cropping should happen.
    """
    if not trim_transparent and not detect_edges:
        return None

    config = config or ExtractionConfig()
    if padding_ratio is None:
        padding_ratio = config.roi_padding_ratio

    pixels = buffer.to_array()
    width, height = buffer.width, buffer.height

    if trim_transparent:
        box = _bounding_box(pixels[:, :, 3] > config.roi_alpha_threshold)
        if box is not None:
            rect = _pad_rect(*box, width, height, padding_ratio)
            logger.debug(f"Alpha ROI {rect}")
            return rect

    if not detect_edges:
        return None

    luma = brightness(pixels)
    gradient = np.zeros_like(luma)
    gradient[:, :-1] += np.abs(luma[:, :-1] - luma[:, 1:])
    gradient[:-1, :] += np.abs(luma[:-1, :] - luma[1:, :])
    active = gradient > config.roi_gradient_threshold

    box = _bounding_box(active)
    if box is None:
        return None

    active_ratio = float(np.count_nonzero(active)) / (width * height)
    if active_ratio < config.roi_min_active_ratio:
        logger.debug(f"Gradient ROI rejected: active ratio {active_ratio:.4f}")
        return None

    rect = _pad_rect(*box, width, height, padding_ratio)
    logger.debug(f"Gradient ROI {rect}")
    return rect


def draw_region(buffer: PixelBuffer,
                source_rect: Optional[Rect] = None,
                target_width: Optional[int] = None,
                target_height: Optional[int] = None,
                max_dimension: Optional[int] = None) -> np.ndarray:
    """
    Resample a region of the buffer, like drawing it onto a canvas.

    Sizing follows the canvas conventions: with neither target given the
    region is scaled down (never up) to fit max_dimension; with one given
    the other keeps the aspect ratio. Colour is interpolated with
    premultiplied alpha so fully transparent pixels do not bleed their
    (meaningless) RGB into neighbouring cells.

    Returns:
        (height, width, 4) uint8 RGBA array.
    """
    pixels = buffer.to_array()
    if source_rect is not None:
        x0 = max(0, min(source_rect.x, buffer.width - 1))
        y0 = max(0, min(source_rect.y, buffer.height - 1))
        x1 = max(x0 + 1, min(buffer.width, source_rect.x + source_rect.width))
        y1 = max(y0 + 1, min(buffer.height, source_rect.y + source_rect.height))
        pixels = pixels[y0:y1, x0:x1]

    src_h, src_w = pixels.shape[:2]
    width, height = target_width, target_height

    if not width and not height:
        limit = max_dimension or src_w
        ratio = min(1.0, limit / src_w, limit / src_h)
        width = max(1, int(math.floor(src_w * ratio + 0.5)))
        height = max(1, int(math.floor(src_h * ratio + 0.5)))
    elif width and not height:
        height = max(1, int(math.floor(width * src_h / src_w + 0.5)))
    elif height and not width:
        width = max(1, int(math.floor(height * src_w / src_h + 0.5)))

    if (width, height) == (src_w, src_h):
        # A canvas stores premultiplied colour, so hidden RGB reads back as 0.
        region = pixels.copy()
        region[region[:, :, 3] == 0, :3] = 0
        return region

    alpha = pixels[:, :, 3:4].astype(np.float32) / 255.0
    premultiplied = np.concatenate(
        [pixels[:, :, :3].astype(np.float32) * alpha, alpha * 255.0], axis=2
    )

    shrinking = width <= src_w and height <= src_h
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    resized = cv2.resize(premultiplied, (width, height), interpolation=interpolation)
    resized = resized.reshape(height, width, 4)

    out_alpha = resized[:, :, 3:4]
    scale = np.divide(255.0, out_alpha, out=np.zeros_like(out_alpha), where=out_alpha > 0)
    rgb = resized[:, :, :3] * scale

    out = np.concatenate([rgb, out_alpha], axis=2)
    return np.clip(np.floor(out + 0.5), 0, 255).astype(np.uint8)
