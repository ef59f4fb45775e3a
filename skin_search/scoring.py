"""
Multi-signal fusion scoring for candidate items.

Combines six independent signals (palette, signature, shape, tone, hash,
edge) into one distance-like score where lower is better:

    1. Each sub-distance is normalised to [0, 1] by its per-signal maximum
    2. A weighted average is taken over the signals that are finite,
       re-normalising the weights over that subset
    3. Confidence boosts are subtracted for signals that are both present
       and unusually close

Boosts are not clamped, so a near-identical candidate ends up with a
negative score. That is expected: ranking is relative, not absolute. If no
signal can be compared at all the score is +inf and the candidate must be
excluded.

The whole policy (weights, maxima, thresholds, boosts) comes from a
ScoringConfig; see skin_search.config.
"""

import math
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .comparators import (
    edge_distance, hash_distance, palette_delta_e, palette_distance,
    shape_distance, signature_distance, tone_distance,
)
from .config import SIGNALS, ScoringConfig, SignalPolicy
from .histograms import tones_from_palette
from .models import CandidateScore, ScoreBreakdown, VisualDescriptor

logger = logging.getLogger(__name__)

# Reported in the breakdown but never weighted into the score.
DIAGNOSTICS = ("palette_delta_e",)


def compute_distances(reference: VisualDescriptor,
                      candidate: VisualDescriptor,
                      config: Optional[ScoringConfig] = None
                      ) -> Tuple[Dict[str, float], float]:
    """
    Raw sub-distances between two descriptors.

    Returns:
        (distances keyed by signal name, palette coverage fraction).
    """
    config = config or ScoringConfig()

    candidate_tones = candidate.tones
    if candidate_tones is None and config.tones_from_palette:
        candidate_tones = tones_from_palette(candidate.palette_hexes())

    palette, coverage = palette_distance(
        reference.palette, candidate.palette,
        coverage_threshold=config.palette_coverage_threshold,
    )
    distances = {
        "palette": palette,
        "signature": signature_distance(
            reference.signature, candidate.signature,
            min_alpha_weight=config.min_alpha_weight,
        ),
        "shape": shape_distance(reference.shape, candidate.shape),
        "tone": tone_distance(reference.tones, candidate_tones),
        "hash": hash_distance(reference.hash, candidate.hash),
        "edge": edge_distance(reference.edges, candidate.edges),
        "palette_delta_e": palette_delta_e(reference.palette, candidate.palette),
    }
    return distances, coverage


def _signal_boosts(name: str, raw: float, policy: SignalPolicy) -> Dict[str, float]:
    boosts = {}
    if policy.confidence_distance:
        confidence = max(0.0, 1.0 - raw / policy.confidence_distance)
        if confidence > 0:
            boosts[f"{name}_confidence"] = confidence * policy.confidence_weight
    if policy.strong_threshold is not None and raw < policy.strong_threshold:
        boosts[f"{name}_strong"] = policy.strong_boost
    if policy.perfect_threshold is not None and raw < policy.perfect_threshold:
        boosts[f"{name}_perfect"] = policy.perfect_boost
    return boosts


def fuse_distances(distances: Dict[str, float],
                   palette_coverage: float = 0.0,
                   config: Optional[ScoringConfig] = None
                   ) -> Tuple[float, ScoreBreakdown]:
    """
    Fuse raw sub-distances into a final score.

    Args:
        distances: Raw distance per signal name; missing keys or inf mean
            indeterminate.
        palette_coverage: Fraction of candidate colours covered by the
            reference palette.
        config: Scoring policy.

    Returns:
        (final score, breakdown). The score is +inf when no signal is
        finite.
    """
    config = config or ScoringConfig()

    raw = {name: distances.get(name, math.inf) for name in SIGNALS}
    reported = dict(raw)
    reported.update((name, distances[name]) for name in DIAGNOSTICS if name in distances)

    finite = [name for name in SIGNALS if math.isfinite(raw[name])]
    if not finite:
        return math.inf, ScoreBreakdown(distances=reported)

    normalized = {}
    weighted = 0.0
    total_weight = 0.0
    for name in finite:
        policy = config.policy(name)
        normalized[name] = min(raw[name] / policy.max_distance, 1.0)
        weighted += normalized[name] * policy.weight
        total_weight += policy.weight

    if total_weight <= 0:
        return math.inf, ScoreBreakdown(distances=reported, normalized=normalized)

    weighted_distance = weighted / total_weight

    boosts = {}
    if "palette" in normalized and palette_coverage > 0:
        boosts["palette_coverage"] = palette_coverage * config.palette_coverage_weight
    for name in finite:
        boosts.update(_signal_boosts(name, raw[name], config.policy(name)))

    score = weighted_distance - sum(boosts.values())
    breakdown = ScoreBreakdown(
        distances=reported,
        normalized=normalized,
        palette_coverage=palette_coverage,
        weighted_distance=weighted_distance,
        boosts=boosts,
    )
    return (score if math.isfinite(score) else math.inf), breakdown


def score_candidate(reference: VisualDescriptor,
                    candidate: Optional[VisualDescriptor],
                    config: Optional[ScoringConfig] = None
                    ) -> Tuple[float, ScoreBreakdown]:
    """
    Score one candidate descriptor against the reference.

    Pure and side-effect free; safe to call concurrently on shared
    descriptors.

    Returns:
        (score, breakdown); lower is better, +inf means "exclude".
    """
    if candidate is None:
        unknown = {name: math.inf for name in SIGNALS + DIAGNOSTICS}
        return math.inf, ScoreBreakdown(distances=unknown)
    distances, coverage = compute_distances(reference, candidate, config)
    return fuse_distances(distances, coverage, config)


def rank_results(results: Sequence[CandidateScore]) -> List[CandidateScore]:
    """
    Sort candidate scores ascending (best first).

    The sort is stable, so equal scores keep their insertion order.
    """
    return sorted(results, key=lambda result: result.score)


def deduplicate(results: Sequence[CandidateScore]) -> List[CandidateScore]:
    """
    Keep the best (lowest) score per item id, preserving ranked order.

    Expects ``results`` already ranked; the first occurrence of an id wins.
    """
    seen = set()
    unique = []
    for result in results:
        if result.item_id in seen:
            continue
        seen.add(result.item_id)
        unique.append(result)
    return unique
