"""
skin_search: visual equipment retrieval for character skin renders.

Extracts a perceptual fingerprint from a reference render (palette,
colour signature, silhouette profile, difference hash, edge and tone
histograms) and ranks catalogue items by visual compatibility.

Modules:
    engine             Main SearchEngine class (per-slot retrieval)
    catalogue          In-memory item store and batch construction
    extractor          Pixel buffer -> VisualDescriptor
    scoring            Multi-signal fusion and ranking
    comparators        Per-field descriptor distances
    palette            Bucketed and k-means (CIELAB) palettes
    signature          Downsampled RGBA grid
    shape_descriptors  Row/column occupancy profile
    perceptual_hash    Difference hash
    histograms         Edge-orientation and tone histograms
    preprocessing      ROI detection and canvas-style resampling
    color_space        Hex / RGB / LAB / HSL conversions
    delta_e            CIEDE2000 colour difference
    config             Extraction and scoring policy
    models             Shared value types
"""

from .catalogue import Catalogue, build_catalogue
from .config import ExtractionConfig, ScoringConfig, SignalPolicy
from .engine import SearchEngine
from .extractor import extract_descriptor
from .models import (
    CandidateScore, CatalogueItem, PixelBuffer, ScoreBreakdown,
    VisualDescriptor, SLOTS,
)
from .scoring import score_candidate

__version__ = "1.0.0"
