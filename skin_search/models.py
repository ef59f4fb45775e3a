"""Value types shared across extraction, comparison and retrieval."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from .color_space import RGB, Lab, hex_to_rgb, rgb_to_hex

__all__ = [
    "RGB", "Lab", "Rect", "PixelBuffer", "PaletteColor", "SignatureCell",
    "ShapeProfile", "VisualDescriptor", "CatalogueItem", "ScoreBreakdown",
    "CandidateScore", "SLOTS",
]

# Equipment slots known to the catalogue. Slot values are plain strings so
# callers may introduce new ones without touching this module.
SLOTS: Tuple[str, ...] = (
    "headgear", "cape", "shield", "pet", "shoulders", "costume", "wings",
)


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class PixelBuffer:
    """
    Raw RGBA image: ``width * height`` pixels, row-major, top to bottom.

    The engine only reads from it. Decoding PNG/JPEG into a buffer is the
    caller's job.
    """

    width: int
    height: int
    data: bytes

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid buffer size {self.width}x{self.height}")
        if len(self.data) != self.width * self.height * 4:
            raise ValueError(
                f"Expected {self.width * self.height * 4} RGBA bytes, "
                f"got {len(self.data)}"
            )

    @classmethod
    def from_array(cls, image_np: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from an HxWx4 (RGBA), HxWx3 (RGB, opaque) or HxW
        (grayscale, opaque) uint8 array.
        """
        image_np = np.asarray(image_np)
        if image_np.dtype != np.uint8:
            if image_np.size and image_np.max() <= 1.0:
                image_np = (image_np * 255).round()
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)

        if image_np.ndim == 2:
            image_np = np.stack([image_np] * 3, axis=-1)
        if image_np.ndim != 3 or image_np.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported image shape {image_np.shape}")
        if image_np.shape[2] == 3:
            alpha = np.full(image_np.shape[:2] + (1,), 255, dtype=np.uint8)
            image_np = np.concatenate([image_np, alpha], axis=-1)

        h, w = image_np.shape[:2]
        return cls(width=w, height=h, data=np.ascontiguousarray(image_np).tobytes())

    def to_array(self) -> np.ndarray:
        """Return a read-only HxWx4 uint8 view of the pixels."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            self.height, self.width, 4
        )


@dataclass(frozen=True)
class PaletteColor:
    hex: str
    weight: float

    @property
    def rgb(self) -> RGB:
        return hex_to_rgb(self.hex)


@dataclass(frozen=True)
class SignatureCell:
    r: float
    g: float
    b: float
    a: float = 1.0  # opacity in [0, 1]


@dataclass(frozen=True)
class ShapeProfile:
    rows: Tuple[float, ...]
    columns: Tuple[float, ...]
    occupancy: Optional[float]


@dataclass(frozen=True)
class VisualDescriptor:
    """
    Perceptual fingerprint of one image.

    Every field is independently optional: None means "unknown", and any
    comparison involving an unknown field is indeterminate rather than
    zero. Descriptors are immutable once built.

    Fields:
        palette     Up to six dominant colours, heaviest first, unique hex.
        signature   Downsampled N×N grid of RGBA cells, row-major.
        shape       Row/column alpha-occupancy profile.
        hash        Difference hash as a string of '0'/'1'.
        edges       Normalised gradient-orientation histogram.
        tones       Normalised 12-hue + 1-neutral histogram.
        source_rect Region of interest the fields were computed from.
    """

    palette: Optional[Tuple[PaletteColor, ...]] = None
    signature: Optional[Tuple[SignatureCell, ...]] = None
    shape: Optional[ShapeProfile] = None
    hash: Optional[str] = None
    edges: Optional[Tuple[float, ...]] = None
    tones: Optional[Tuple[float, ...]] = None
    source_rect: Optional[Rect] = None

    def palette_hexes(self) -> Tuple[str, ...]:
        return tuple(color.hex for color in self.palette or ())

    def is_empty(self) -> bool:
        return not any((self.palette, self.signature, self.shape,
                        self.hash, self.edges, self.tones))

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form, suitable for JSON."""
        return {
            "palette": [
                {"hex": c.hex, "weight": c.weight} for c in self.palette
            ] if self.palette else None,
            "signature": [
                {"r": c.r, "g": c.g, "b": c.b, "a": c.a} for c in self.signature
            ] if self.signature else None,
            "shape": {
                "rows": list(self.shape.rows),
                "columns": list(self.shape.columns),
                "occupancy": self.shape.occupancy,
            } if self.shape else None,
            "hash": self.hash,
            "edges": list(self.edges) if self.edges else None,
            "tones": list(self.tones) if self.tones else None,
            "source_rect": {
                "x": self.source_rect.x, "y": self.source_rect.y,
                "width": self.source_rect.width,
                "height": self.source_rect.height,
            } if self.source_rect else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "VisualDescriptor":
        """
        Parse a loosely-typed descriptor mapping.

        Catalogue records come from external collaborators, so parsing is
        lenient: malformed colours are dropped, and empty or malformed
        fields become None instead of raising.
        """
        if not data:
            return cls()
        return cls(
            palette=_parse_palette(data.get("palette")),
            signature=_parse_signature(data.get("signature")),
            shape=_parse_shape(data.get("shape")),
            hash=_parse_hash(data.get("hash")),
            edges=_parse_floats(data.get("edges")),
            tones=_parse_floats(data.get("tones")),
            source_rect=_parse_rect(data.get("source_rect")),
        )


@dataclass(frozen=True)
class CatalogueItem:
    item_id: str
    name: str
    slot: str
    descriptor: Optional[VisualDescriptor] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    """
    Per-signal explanation of a fused score.

    ``distances`` holds raw sub-distances (inf when indeterminate) plus
    unweighted diagnostics such as ``palette_delta_e``,
    ``normalized`` the [0, 1] values that entered the weighted average,
    ``boosts`` every confidence reduction that was applied, by name.
    """

    distances: Dict[str, float] = field(default_factory=dict)
    normalized: Dict[str, float] = field(default_factory=dict)
    palette_coverage: float = 0.0
    weighted_distance: float = math.inf
    boosts: Dict[str, float] = field(default_factory=dict)

    @property
    def total_boost(self) -> float:
        return sum(self.boosts.values())


@dataclass(frozen=True)
class CandidateScore:
    item_id: str
    score: float
    breakdown: ScoreBreakdown
    name: str = ""
    slot: str = ""


def _parse_palette(value) -> Optional[Tuple[PaletteColor, ...]]:
    if not value or isinstance(value, (str, bytes)):
        return None

    colors = []
    seen = set()
    for rank, entry in enumerate(value):
        if isinstance(entry, Mapping):
            raw_hex = entry.get("hex")
            weight = entry.get("weight", 1.0 / (rank + 1))
        else:
            raw_hex, weight = entry, 1.0 / (rank + 1)
        rgb = hex_to_rgb(raw_hex)
        if rgb is None:
            continue
        hex_value = rgb_to_hex(*rgb)
        if hex_value in seen:
            continue
        seen.add(hex_value)
        colors.append(PaletteColor(hex_value, _number(weight, 0.0)))
    # Heaviest first; equal weights keep their listed order.
    colors.sort(key=lambda color: -color.weight)
    return tuple(colors) or None


def _number(value, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _parse_signature(value) -> Optional[Tuple[SignatureCell, ...]]:
    if not value or isinstance(value, (str, bytes)):
        return None
    cells = []
    for entry in value:
        if not isinstance(entry, Mapping):
            continue
        cells.append(SignatureCell(
            r=_number(entry.get("r"), 0.0),
            g=_number(entry.get("g"), 0.0),
            b=_number(entry.get("b"), 0.0),
            a=max(_number(entry.get("a"), 1.0), 0.0),
        ))
    return tuple(cells) or None


def _parse_floats(value) -> Optional[Tuple[float, ...]]:
    if not value or isinstance(value, (str, bytes)):
        return None
    try:
        floats = tuple(float(v) for v in value)
    except (TypeError, ValueError):
        return None
    if not all(math.isfinite(v) for v in floats):
        return None
    return floats or None


def _parse_shape(value) -> Optional[ShapeProfile]:
    if not isinstance(value, Mapping):
        return None
    rows = _parse_floats(value.get("rows")) or ()
    columns = _parse_floats(value.get("columns")) or ()
    if not rows and not columns:
        return None
    occupancy = value.get("occupancy")
    occupancy = _number(occupancy, 0.0) if occupancy is not None else None
    return ShapeProfile(rows=rows, columns=columns, occupancy=occupancy)


def _parse_hash(value) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return None
    if set(value) - {"0", "1"}:
        return None
    return value


def _parse_rect(value) -> Optional[Rect]:
    if not isinstance(value, Mapping):
        return None
    try:
        return Rect(int(value["x"]), int(value["y"]),
                    int(value["width"]), int(value["height"]))
    except (KeyError, TypeError, ValueError):
        return None
