"""
Tunable constants for descriptor extraction and candidate scoring.

Every threshold, grid size, weight and boost used by the engine lives here,
grouped into two frozen structures:

    ExtractionConfig   How pixels become a VisualDescriptor
    ScoringConfig      How two descriptors become a ranking score

Defaults are read once from the environment (SKIN_SEARCH_* variables) so a
deployment can retune the policy without code changes. Pass an explicit
instance to override them per call.
"""

import os
import math
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(f"SKIN_SEARCH_{name}", default))


def _env_int(name: str, default: str) -> int:
    return int(os.environ.get(f"SKIN_SEARCH_{name}", default))


# Extraction defaults
MAX_DIMENSION = _env_int("MAX_DIMENSION", "280")
BUCKET_SIZE = _env_int("BUCKET_SIZE", "24")
MAX_PALETTE_COLORS = _env_int("MAX_PALETTE_COLORS", "6")
PALETTE_MODE = os.environ.get("SKIN_SEARCH_PALETTE_MODE", "buckets")
PALETTE_ALPHA_THRESHOLD = _env_int("PALETTE_ALPHA_THRESHOLD", "48")
SIGNATURE_GRID_SIZE = _env_int("SIGNATURE_GRID_SIZE", "12")
SHAPE_GRID_SIZE = _env_int("SHAPE_GRID_SIZE", "28")
HASH_GRID_SIZE = _env_int("HASH_GRID_SIZE", "24")
EDGE_GRID_SIZE = _env_int("EDGE_GRID_SIZE", "28")
EDGE_ORIENTATION_BINS = _env_int("EDGE_ORIENTATION_BINS", "8")
HUE_BUCKETS = _env_int("HUE_BUCKETS", "12")

# Region-of-interest detection
ROI_ALPHA_THRESHOLD = _env_int("ROI_ALPHA_THRESHOLD", "32")
ROI_GRADIENT_THRESHOLD = _env_float("ROI_GRADIENT_THRESHOLD", "28")
ROI_MIN_ACTIVE_RATIO = _env_float("ROI_MIN_ACTIVE_RATIO", "0.004")
ROI_PADDING_RATIO = _env_float("ROI_PADDING_RATIO", "0.04")

# Scoring defaults
MAX_COLOR_DISTANCE = math.sqrt(3) * 255
DEFAULT_TOP_K = _env_int("TOP_K", "5")


@dataclass(frozen=True)
class ExtractionConfig:
    """Parameters controlling how a pixel buffer is turned into a descriptor."""

    max_dimension: int = MAX_DIMENSION
    bucket_size: int = BUCKET_SIZE
    max_palette_colors: int = MAX_PALETTE_COLORS
    palette_mode: str = PALETTE_MODE  # "buckets" or "kmeans"
    palette_alpha_threshold: int = PALETTE_ALPHA_THRESHOLD

    # k-means in LAB (palette_mode="kmeans")
    kmeans_k: int = 4
    kmeans_max_iterations: int = 8
    kmeans_sample_stride: int = 4
    kmeans_alpha_threshold: int = 64

    signature_grid_size: int = SIGNATURE_GRID_SIZE
    shape_grid_size: int = SHAPE_GRID_SIZE
    hash_grid_size: int = HASH_GRID_SIZE
    edge_grid_size: int = EDGE_GRID_SIZE
    edge_orientation_bins: int = EDGE_ORIENTATION_BINS
    edge_min_magnitude: float = 1.0

    hue_buckets: int = HUE_BUCKETS
    tone_min_alpha: float = 0.16
    tone_min_saturation: float = 0.18
    tone_min_lightness: float = 0.12
    tone_max_lightness: float = 0.88

    roi_alpha_threshold: int = ROI_ALPHA_THRESHOLD
    roi_gradient_threshold: float = ROI_GRADIENT_THRESHOLD
    roi_min_active_ratio: float = ROI_MIN_ACTIVE_RATIO
    roi_padding_ratio: float = ROI_PADDING_RATIO


@dataclass(frozen=True)
class SignalPolicy:
    """
    Weighting and confidence-boost policy for one comparison signal.

    A finite raw distance is normalised with ``min(raw / max_distance, 1)``
    and contributes ``weight`` to the weighted average. When the raw
    distance is small the score is additionally reduced by:

        max(0, 1 - raw / confidence_distance) * confidence_weight
        + strong_boost   if raw < strong_threshold
        + perfect_boost  if raw < perfect_threshold

    ``confidence_distance=None`` disables the proportional boost.
    """

    weight: float
    max_distance: float
    confidence_distance: Optional[float] = None
    confidence_weight: float = 0.0
    strong_threshold: Optional[float] = None
    strong_boost: float = 0.0
    perfect_threshold: Optional[float] = None
    perfect_boost: float = 0.0


SIGNALS = ("palette", "signature", "shape", "tone", "hash", "edge")


@dataclass(frozen=True)
class ScoringConfig:
    """Fusion policy: weights, normalisation maxima, thresholds and boosts."""

    palette: SignalPolicy = field(default_factory=lambda: SignalPolicy(
        weight=_env_float("PALETTE_W", "0.24"),
        max_distance=MAX_COLOR_DISTANCE,
    ))
    signature: SignalPolicy = field(default_factory=lambda: SignalPolicy(
        weight=_env_float("SIGNATURE_W", "0.28"),
        max_distance=MAX_COLOR_DISTANCE,
        confidence_distance=160.0,
        confidence_weight=0.24,
        strong_threshold=20.0,
        strong_boost=0.08,
        perfect_threshold=12.0,
        perfect_boost=0.12,
    ))
    shape: SignalPolicy = field(default_factory=lambda: SignalPolicy(
        weight=_env_float("SHAPE_W", "0.16"),
        max_distance=1.0,
        confidence_distance=0.32,
        confidence_weight=0.16,
        strong_threshold=0.18,
        strong_boost=0.06,
    ))
    tone: SignalPolicy = field(default_factory=lambda: SignalPolicy(
        weight=_env_float("TONE_W", "0.18"),
        max_distance=2.0,
        confidence_distance=0.72,
        confidence_weight=0.18,
        strong_threshold=0.18,
        strong_boost=0.05,
    ))
    hash: SignalPolicy = field(default_factory=lambda: SignalPolicy(
        weight=_env_float("HASH_W", "0.22"),
        max_distance=1.0,
        confidence_distance=0.32,
        confidence_weight=0.18,
        strong_threshold=0.12,
        strong_boost=0.10,
    ))
    edge: SignalPolicy = field(default_factory=lambda: SignalPolicy(
        weight=_env_float("EDGE_W", "0.12"),
        max_distance=1.0,
        confidence_distance=0.26,
        confidence_weight=0.12,
        strong_threshold=0.10,
        strong_boost=0.07,
    ))

    # Palette confidence comes from coverage rather than raw distance.
    palette_coverage_threshold: float = 56.0
    palette_coverage_weight: float = 0.32

    # Signature cells below this alpha on both sides are skipped.
    min_alpha_weight: float = 0.05

    # Derive candidate tones from its palette when no tone histogram exists.
    tones_from_palette: bool = True

    top_k: int = DEFAULT_TOP_K

    def policy(self, signal: str) -> SignalPolicy:
        if signal not in SIGNALS:
            raise KeyError(f"Unknown signal: {signal}")
        return getattr(self, signal)
