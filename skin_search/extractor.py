"""
Descriptor extraction: pixel buffer -> VisualDescriptor.

Resolves the region of interest once and computes every descriptor field
from that same region. Degenerate input (fully transparent, flat colour)
yields a partially populated descriptor, never an exception.
"""

import logging
from typing import Optional

from .config import ExtractionConfig
from .histograms import compute_edge_histogram, compute_tone_histogram
from .models import PixelBuffer, Rect, VisualDescriptor
from .palette import extract_palette
from .perceptual_hash import compute_difference_hash
from .preprocessing import resolve_source_rect
from .shape_descriptors import compute_shape_profile
from .signature import compute_signature

logger = logging.getLogger(__name__)


def extract_descriptor(buffer: PixelBuffer,
                       source_rect: Optional[Rect] = None,
                       trim_transparent: bool = True,
                       detect_edges: bool = True,
                       padding_ratio: Optional[float] = None,
                       config: Optional[ExtractionConfig] = None) -> VisualDescriptor:
    """
    Extract the full visual descriptor of an image.

    Args:
        buffer: RGBA pixels of the render.
        source_rect: Explicit region of interest. When None it is
            auto-detected (alpha trim first, gradient box as fallback).
        trim_transparent: Allow alpha-based ROI detection.
        detect_edges: Allow gradient-based ROI detection.
        padding_ratio: Padding around a detected ROI.
        config: Extraction settings.

    Returns:
        VisualDescriptor; fields that cannot be computed are None.
    """
    config = config or ExtractionConfig()
    if source_rect is None:
        source_rect = resolve_source_rect(
            buffer,
            trim_transparent=trim_transparent,
            detect_edges=detect_edges,
            padding_ratio=padding_ratio,
            config=config,
        )

    descriptor = VisualDescriptor(
        palette=extract_palette(buffer, source_rect, config),
        signature=compute_signature(buffer, source_rect, config=config),
        shape=compute_shape_profile(buffer, source_rect, config=config),
        hash=compute_difference_hash(buffer, source_rect, config=config),
        edges=compute_edge_histogram(buffer, source_rect, config=config),
        tones=compute_tone_histogram(buffer, source_rect, config=config),
        source_rect=source_rect,
    )

    missing = [name for name in ("palette", "signature", "shape", "hash", "edges", "tones")
               if getattr(descriptor, name) is None]
    if missing:
        logger.debug(f"Descriptor for {buffer.width}x{buffer.height} image "
                     f"has unknown fields: {', '.join(missing)}")
    return descriptor
