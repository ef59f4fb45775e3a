"""
Colour space conversions: hex, RGB, CIELAB and HSL.

LAB values are computed through the standard sRGB -> XYZ -> LAB pipeline
against the D65 reference white (Xr=0.95047, Yr=1.0, Zr=1.08883) and are
used exclusively for perceptual distance (see delta_e).

Malformed user-style input (bad hex strings, non-finite or out-of-range
channels) resolves to None rather than raising.
"""

import re
import math
from typing import NamedTuple, Optional, Tuple

import numpy as np

REF_X = 0.95047
REF_Y = 1.0
REF_Z = 1.08883

LAB_EPSILON = 0.008856
LAB_KAPPA = 7.787

_RGB_TO_XYZ = np.array([
    [0.4124, 0.3576, 0.1805],
    [0.2126, 0.7152, 0.0722],
    [0.0193, 0.1192, 0.9505],
])

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class Lab(NamedTuple):
    L: float
    a: float
    b: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _srgb_to_linear(channel: float) -> float:
    c = channel / 255.0
    return c / 12.92 if c <= 0.04045 else ((c + 0.055) / 1.055) ** 2.4


def _linear_to_srgb(value: float) -> float:
    v = _clamp(value, 0.0, 1.0)
    return 12.92 * v if v <= 0.0031308 else 1.055 * v ** (1 / 2.4) - 0.055


def _pivot(value: float) -> float:
    if value > LAB_EPSILON:
        return value ** (1.0 / 3.0)
    return LAB_KAPPA * value + 16.0 / 116.0


def _inverse_pivot(value: float) -> float:
    cubed = value ** 3
    if cubed > LAB_EPSILON:
        return cubed
    return (value - 16.0 / 116.0) / LAB_KAPPA


def rgb_to_lab(r: float, g: float, b: float) -> Lab:
    """Convert an sRGB triple (0-255) to CIELAB."""
    lr, lg, lb = _srgb_to_linear(r), _srgb_to_linear(g), _srgb_to_linear(b)

    x = lr * 0.4124 + lg * 0.3576 + lb * 0.1805
    y = lr * 0.2126 + lg * 0.7152 + lb * 0.0722
    z = lr * 0.0193 + lg * 0.1192 + lb * 0.9505

    fx = _pivot(x / REF_X)
    fy = _pivot(y / REF_Y)
    fz = _pivot(z / REF_Z)

    return Lab(116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz))


def lab_to_rgb(lab: Lab) -> RGB:
    """Convert CIELAB back to sRGB, clamped to [0, 255] and rounded."""
    L, a, b = lab
    fy = (L + 16.0) / 116.0
    fx = a / 500.0 + fy
    fz = fy - b / 200.0

    x = _inverse_pivot(fx) * REF_X
    y = _inverse_pivot(fy) * REF_Y
    z = _inverse_pivot(fz) * REF_Z

    lr = x * 3.2406 + y * -1.5372 + z * -0.4986
    lg = x * -0.9689 + y * 1.8758 + z * 0.0415
    lb = x * 0.0557 + y * -0.2040 + z * 1.0570

    return RGB(*(
        _round_half_up(_clamp(_linear_to_srgb(c) * 255.0, 0.0, 255.0))
        for c in (lr, lg, lb)
    ))


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """
    Vectorised rgb_to_lab for an (..., 3) array of 0-255 values.

    Returns:
        Float64 array of the same leading shape with L, a, b in the last axis.
    """
    c = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)
    xyz = linear @ _RGB_TO_XYZ.T
    xyz = xyz / np.array([REF_X, REF_Y, REF_Z])
    f = np.where(xyz > LAB_EPSILON, np.cbrt(xyz), LAB_KAPPA * xyz + 16.0 / 116.0)

    lab = np.empty_like(f)
    lab[..., 0] = 116.0 * f[..., 1] - 16.0
    lab[..., 1] = 500.0 * (f[..., 0] - f[..., 1])
    lab[..., 2] = 200.0 * (f[..., 1] - f[..., 2])
    return lab


def hex_to_rgb(value) -> Optional[RGB]:
    """
    Parse a 3- or 6-digit hex colour (``#`` optional, any case).

    Returns None for anything that is not a well-formed hex colour.
    """
    if not isinstance(value, str):
        return None
    match = _HEX_PATTERN.match(value.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return RGB(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def rgb_to_hex(r: float, g: float, b: float) -> Optional[str]:
    """Format an RGB triple as ``#RRGGBB``; None if a channel is invalid."""
    channels = []
    for value in (r, g, b):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value):
            return None
        rounded = _round_half_up(value)
        if rounded < 0 or rounded > 255:
            return None
        channels.append(rounded)
    return "#{:02X}{:02X}{:02X}".format(*channels)


def hex_to_lab(value: str) -> Optional[Lab]:
    rgb = hex_to_rgb(value)
    if rgb is None:
        return None
    return rgb_to_lab(*rgb)


def lab_to_hex(lab: Lab) -> str:
    return rgb_to_hex(*lab_to_rgb(lab))


def rgb_to_hsl(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert RGB (0-255) to HSL.

    Returns:
        (hue in [0, 360), saturation in [0, 1], lightness in [0, 1]).
    """
    rr, gg, bb = r / 255.0, g / 255.0, b / 255.0
    high = max(rr, gg, bb)
    low = min(rr, gg, bb)
    delta = high - low
    lightness = (high + low) / 2.0

    if delta == 0:
        return 0.0, 0.0, lightness

    saturation = delta / (1.0 - abs(2.0 * lightness - 1.0))
    if high == rr:
        hue = ((gg - bb) / delta) % 6.0
    elif high == gg:
        hue = (bb - rr) / delta + 2.0
    else:
        hue = (rr - gg) / delta + 4.0

    return (hue * 60.0) % 360.0, _clamp(saturation, 0.0, 1.0), lightness


def hsl_to_rgb(h: float, s: float, l: float) -> RGB:
    """Convert HSL (hue in degrees, s/l in [0, 1]) to an RGB triple."""
    hue = h % 360.0
    sat = _clamp(s, 0.0, 1.0)
    light = _clamp(l, 0.0, 1.0)

    c = (1.0 - abs(2.0 * light - 1.0)) * sat
    x = c * (1.0 - abs((hue / 60.0) % 2.0 - 1.0))
    m = light - c / 2.0

    if hue < 60:
        rr, gg, bb = c, x, 0.0
    elif hue < 120:
        rr, gg, bb = x, c, 0.0
    elif hue < 180:
        rr, gg, bb = 0.0, c, x
    elif hue < 240:
        rr, gg, bb = 0.0, x, c
    elif hue < 300:
        rr, gg, bb = x, 0.0, c
    else:
        rr, gg, bb = c, 0.0, x

    return RGB(*(
        _round_half_up(_clamp((v + m) * 255.0, 0.0, 255.0)) for v in (rr, gg, bb)
    ))
