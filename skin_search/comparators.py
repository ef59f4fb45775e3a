"""
Pairwise distances between descriptor fields.

Every comparator accepts two optional fields and returns a non-negative
distance, or positive infinity when either side is missing or the overlap
is empty. Infinity means "cannot compare" and is deliberately distinct from
"maximally different"; callers must exclude it from averaging rather than
coerce it to 0 or 1.

When two sequences differ in length only the overlapping prefix (the
shorter length) is compared.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from .color_space import hex_to_rgb, rgb_array_to_lab
from .delta_e import delta_e_2000_matrix
from .models import PaletteColor, ShapeProfile, SignatureCell

INDETERMINATE = math.inf

DEFAULT_COVERAGE_THRESHOLD = 56.0
DEFAULT_MIN_ALPHA_WEIGHT = 0.05


def _rgb_distance(a: Sequence[float], b: Sequence[float]) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


def mean_absolute_difference(a: Optional[Sequence[float]],
                             b: Optional[Sequence[float]]) -> float:
    """Mean |a_i - b_i| over the overlapping length; inf if it is zero."""
    if not a or not b:
        return INDETERMINATE
    length = min(len(a), len(b))
    if length == 0:
        return INDETERMINATE
    return sum(abs(a[i] - b[i]) for i in range(length)) / length


def _palette_rgbs(palette) -> list:
    rgbs = []
    for entry in palette or ():
        hex_value = entry.hex if isinstance(entry, PaletteColor) else entry
        rgb = hex_to_rgb(hex_value)
        if rgb is not None:
            rgbs.append(rgb)
    return rgbs


def palette_distance(reference: Optional[Sequence[PaletteColor]],
                     candidate: Optional[Sequence[PaletteColor]],
                     coverage_threshold: float = DEFAULT_COVERAGE_THRESHOLD
                     ) -> Tuple[float, float]:
    """
    Compare a candidate palette against the reference palette.

    Each candidate colour is matched to its nearest reference colour by
    Euclidean RGB distance. The distance is the mean of those nearest
    distances; the coverage is the fraction of candidate colours whose
    nearest distance is within ``coverage_threshold``.

    Args:
        reference: Reference palette (PaletteColor or hex strings).
        candidate: Candidate palette (PaletteColor or hex strings).
        coverage_threshold: RGB distance counted as "covered".

    Returns:
        (mean nearest distance, coverage fraction). (inf, 0.0) when either
        side has no usable colour.
    """
    reference_rgb = _palette_rgbs(reference)
    candidate_rgb = _palette_rgbs(candidate)
    if not reference_rgb or not candidate_rgb:
        return INDETERMINATE, 0.0

    total = 0.0
    covered = 0
    for color in candidate_rgb:
        nearest = min(_rgb_distance(color, ref) for ref in reference_rgb)
        if nearest <= coverage_threshold:
            covered += 1
        total += nearest

    count = len(candidate_rgb)
    return total / count, covered / count


def palette_delta_e(reference: Optional[Sequence[PaletteColor]],
                    candidate: Optional[Sequence[PaletteColor]]) -> float:
    """
    Mean CIEDE2000 from each candidate colour to its nearest reference colour.

    Perceptual counterpart of palette_distance, reported alongside the
    fused score for inspection.

    Returns:
        Mean nearest Delta E 2000, or inf when either side has no usable
        colour.
    """
    reference_rgb = _palette_rgbs(reference)
    candidate_rgb = _palette_rgbs(candidate)
    if not reference_rgb or not candidate_rgb:
        return INDETERMINATE

    distances = delta_e_2000_matrix(rgb_array_to_lab(np.array(candidate_rgb)),
                                    rgb_array_to_lab(np.array(reference_rgb)))
    return float(distances.min(axis=1).mean())


def signature_distance(reference: Optional[Sequence[SignatureCell]],
                       candidate: Optional[Sequence[SignatureCell]],
                       min_alpha_weight: float = DEFAULT_MIN_ALPHA_WEIGHT) -> float:
    """
    Alpha-weighted mean RGB distance between overlapping signature cells.

    Cells transparent on both sides (alpha below ``min_alpha_weight``) are
    skipped; every other cell weighs the mean of the two alphas, floored at
    ``min_alpha_weight``.
    """
    if not reference or not candidate:
        return INDETERMINATE
    length = min(len(reference), len(candidate))

    total = 0.0
    weight_total = 0.0
    for i in range(length):
        cell_a, cell_b = reference[i], candidate[i]
        alpha_a = max(cell_a.a, 0.0)
        alpha_b = max(cell_b.a, 0.0)
        if alpha_a < min_alpha_weight and alpha_b < min_alpha_weight:
            continue
        weight = max((alpha_a + alpha_b) / 2.0, min_alpha_weight)
        total += _rgb_distance((cell_a.r, cell_a.g, cell_a.b),
                               (cell_b.r, cell_b.g, cell_b.b)) * weight
        weight_total += weight

    if weight_total <= 0:
        return INDETERMINATE
    return total / weight_total


def shape_distance(reference: Optional[ShapeProfile],
                   candidate: Optional[ShapeProfile]) -> float:
    """
    Average of row MAD, column MAD and occupancy difference.

    Only finite terms are averaged. If neither the rows nor the columns
    overlap the result is indeterminate. A missing occupancy counts as 0.
    """
    if reference is None or candidate is None:
        return INDETERMINATE

    row_distance = mean_absolute_difference(reference.rows, candidate.rows)
    column_distance = mean_absolute_difference(reference.columns, candidate.columns)
    if math.isinf(row_distance) and math.isinf(column_distance):
        return INDETERMINATE

    occupancy_a = reference.occupancy if reference.occupancy is not None else 0.0
    occupancy_b = candidate.occupancy if candidate.occupancy is not None else 0.0

    terms = [d for d in (row_distance, column_distance) if math.isfinite(d)]
    terms.append(abs(occupancy_a - occupancy_b))
    return sum(terms) / len(terms)


def hash_distance(reference: Optional[str], candidate: Optional[str]) -> float:
    """Hamming distance over the overlapping bits, divided by that length."""
    if not reference or not candidate:
        return INDETERMINATE
    length = min(len(reference), len(candidate))
    if length == 0:
        return INDETERMINATE
    differing = sum(1 for i in range(length) if reference[i] != candidate[i])
    return differing / length


def edge_distance(reference: Optional[Sequence[float]],
                  candidate: Optional[Sequence[float]]) -> float:
    return mean_absolute_difference(reference, candidate)


def tone_distance(reference: Optional[Sequence[float]],
                  candidate: Optional[Sequence[float]]) -> float:
    return mean_absolute_difference(reference, candidate)
