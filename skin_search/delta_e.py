"""
CIEDE2000 perceptual colour difference.

Implements the formula as published by Sharma, Wu & Dalal (2005), with
k_L = k_C = k_H = 1, including the zero-chroma and mean-hue wrap-around
branches that naive implementations get wrong. The scalar function is the
reference; delta_e_2000_matrix is a numpy-broadcast version used in hot
loops (k-means assignment) and must agree with it.
"""

import math
from typing import Sequence

import numpy as np

_POW25_7 = 25.0 ** 7


def _check_finite(lab: Sequence[float]) -> None:
    if len(lab) != 3 or not all(math.isfinite(v) for v in lab):
        raise ValueError(f"CIEDE2000 requires three finite LAB components, got {lab!r}")


def delta_e_2000(lab1: Sequence[float], lab2: Sequence[float]) -> float:
    """
    Compute the CIEDE2000 difference between two LAB colours.

    Args:
        lab1: (L, a, b) of the first colour.
        lab2: (L, a, b) of the second colour.

    Returns:
        Non-negative colour difference; 0 for identical inputs.

    Raises:
        ValueError: If either colour has non-finite components. This
            indicates an upstream extraction bug, not a data condition.
    """
    _check_finite(lab1)
    _check_finite(lab2)
    L1, a1, b1 = (float(v) for v in lab1)
    L2, a2, b2 = (float(v) for v in lab2)

    c1 = math.hypot(a1, b1)
    c2 = math.hypot(a2, b2)
    c_bar7 = ((c1 + c2) / 2.0) ** 7
    g = 0.5 * (1.0 - math.sqrt(c_bar7 / (c_bar7 + _POW25_7)))

    a1p = (1.0 + g) * a1
    a2p = (1.0 + g) * a2
    c1p = math.hypot(a1p, b1)
    c2p = math.hypot(a2p, b2)

    h1p = math.degrees(math.atan2(b1, a1p)) % 360.0 if c1p else 0.0
    h2p = math.degrees(math.atan2(b2, a2p)) % 360.0 if c2p else 0.0

    d_lp = L2 - L1
    d_cp = c2p - c1p

    chroma_product = c1p * c2p
    if chroma_product == 0:
        d_hp = 0.0
    else:
        d_hp = h2p - h1p
        if d_hp > 180.0:
            d_hp -= 360.0
        elif d_hp < -180.0:
            d_hp += 360.0
    d_big_hp = 2.0 * math.sqrt(chroma_product) * math.sin(math.radians(d_hp) / 2.0)

    l_bar = (L1 + L2) / 2.0
    c_bar_p = (c1p + c2p) / 2.0

    if chroma_product == 0:
        h_bar = h1p + h2p
    elif abs(h1p - h2p) <= 180.0:
        h_bar = (h1p + h2p) / 2.0
    elif h1p + h2p < 360.0:
        h_bar = (h1p + h2p + 360.0) / 2.0
    else:
        h_bar = (h1p + h2p - 360.0) / 2.0

    t = (1.0
         - 0.17 * math.cos(math.radians(h_bar - 30.0))
         + 0.24 * math.cos(math.radians(2.0 * h_bar))
         + 0.32 * math.cos(math.radians(3.0 * h_bar + 6.0))
         - 0.20 * math.cos(math.radians(4.0 * h_bar - 63.0)))

    d_theta = 30.0 * math.exp(-(((h_bar - 275.0) / 25.0) ** 2))
    c_bar_p7 = c_bar_p ** 7
    r_c = 2.0 * math.sqrt(c_bar_p7 / (c_bar_p7 + _POW25_7))
    l_offset = (l_bar - 50.0) ** 2
    s_l = 1.0 + (0.015 * l_offset) / math.sqrt(20.0 + l_offset)
    s_c = 1.0 + 0.045 * c_bar_p
    s_h = 1.0 + 0.015 * c_bar_p * t
    r_t = -math.sin(math.radians(2.0 * d_theta)) * r_c

    term_l = d_lp / s_l
    term_c = d_cp / s_c
    term_h = d_big_hp / s_h
    total = term_l ** 2 + term_c ** 2 + term_h ** 2 + r_t * term_c * term_h
    return math.sqrt(max(total, 0.0))


def delta_e_2000_matrix(labs: np.ndarray, references: np.ndarray) -> np.ndarray:
    """
    Pairwise CIEDE2000 between every row of ``labs`` and of ``references``.

    Args:
        labs: (N, 3) LAB array.
        references: (K, 3) LAB array.

    Returns:
        (N, K) float64 distance matrix.

    Raises:
        ValueError: On non-finite input or wrong shapes.
    """
    labs = np.asarray(labs, dtype=np.float64).reshape(-1, 3)
    references = np.asarray(references, dtype=np.float64).reshape(-1, 3)
    if not (np.all(np.isfinite(labs)) and np.all(np.isfinite(references))):
        raise ValueError("CIEDE2000 requires finite LAB components")

    L1, a1, b1 = (labs[:, i:i + 1] for i in range(3))
    L2, a2, b2 = (references[None, :, i] for i in range(3))

    c1 = np.hypot(a1, b1)
    c2 = np.hypot(a2, b2)
    c_bar7 = ((c1 + c2) / 2.0) ** 7
    g = 0.5 * (1.0 - np.sqrt(c_bar7 / (c_bar7 + _POW25_7)))

    a1p = (1.0 + g) * a1
    a2p = (1.0 + g) * a2
    c1p = np.hypot(a1p, b1)
    c2p = np.hypot(a2p, b2)

    h1p = np.where(c1p == 0, 0.0, np.degrees(np.arctan2(b1, a1p)) % 360.0)
    h2p = np.where(c2p == 0, 0.0, np.degrees(np.arctan2(b2, a2p)) % 360.0)

    d_lp = L2 - L1
    d_cp = c2p - c1p

    chroma_product = c1p * c2p
    zero_chroma = chroma_product == 0
    d_hp = h2p - h1p
    d_hp = np.where(d_hp > 180.0, d_hp - 360.0, d_hp)
    d_hp = np.where(d_hp < -180.0, d_hp + 360.0, d_hp)
    d_hp = np.where(zero_chroma, 0.0, d_hp)
    d_big_hp = 2.0 * np.sqrt(chroma_product) * np.sin(np.radians(d_hp) / 2.0)

    l_bar = (L1 + L2) / 2.0
    c_bar_p = (c1p + c2p) / 2.0

    h_sum = h1p + h2p
    h_bar = np.where(
        np.abs(h1p - h2p) <= 180.0,
        h_sum / 2.0,
        np.where(h_sum < 360.0, (h_sum + 360.0) / 2.0, (h_sum - 360.0) / 2.0),
    )
    h_bar = np.where(zero_chroma, h_sum, h_bar)

    t = (1.0
         - 0.17 * np.cos(np.radians(h_bar - 30.0))
         + 0.24 * np.cos(np.radians(2.0 * h_bar))
         + 0.32 * np.cos(np.radians(3.0 * h_bar + 6.0))
         - 0.20 * np.cos(np.radians(4.0 * h_bar - 63.0)))

    d_theta = 30.0 * np.exp(-(((h_bar - 275.0) / 25.0) ** 2))
    c_bar_p7 = c_bar_p ** 7
    r_c = 2.0 * np.sqrt(c_bar_p7 / (c_bar_p7 + _POW25_7))
    l_offset = (l_bar - 50.0) ** 2
    s_l = 1.0 + (0.015 * l_offset) / np.sqrt(20.0 + l_offset)
    s_c = 1.0 + 0.045 * c_bar_p
    s_h = 1.0 + 0.015 * c_bar_p * t
    r_t = -np.sin(np.radians(2.0 * d_theta)) * r_c

    term_l = d_lp / s_l
    term_c = d_cp / s_c
    term_h = d_big_hp / s_h
    total = term_l ** 2 + term_c ** 2 + term_h ** 2 + r_t * term_c * term_h
    return np.sqrt(np.maximum(total, 0.0))
