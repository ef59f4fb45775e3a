"""
In-memory catalogue of equipment items and their visual descriptors.

The catalogue is owned by the caller and passed to the search engine by
reference; the engine itself keeps no cache. Descriptors are either
supplied precomputed (plain mappings from a catalogue-loading collaborator)
or computed from pixel buffers, eagerly during build_catalogue() or lazily
on first access for items registered with a loader.

Supports:
    - Precomputed descriptor mappings (lenient parsing, see
      VisualDescriptor.from_dict)
    - Pixel buffers or numpy images, extracted with the configured settings
    - Lazy loaders, resolved once and cached thread-safely
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import cv2
import numpy as np

from .config import ExtractionConfig
from .extractor import extract_descriptor
from .models import CatalogueItem, PixelBuffer, VisualDescriptor

logger = logging.getLogger(__name__)

ImageLoader = Callable[[], PixelBuffer]

# Extraction options used for catalogue renders, which usually sit on a
# transparent background with some margin.
CATALOGUE_PADDING_RATIO = 0.05


class Catalogue:
    """
    Ordered collection of CatalogueItem records.

    Items are kept in insertion order; the same item id may appear more
    than once (e.g. listed under two sources), and retrieval keeps only its
    best-scoring entry.
    """

    def __init__(self,
                 items: Optional[Iterable[CatalogueItem]] = None,
                 config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()
        self._items: List[CatalogueItem] = list(items or [])
        # position -> (loader, lock serialising that item's extraction)
        self._loaders: Dict[int, Tuple[ImageLoader, threading.Lock]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: CatalogueItem) -> None:
        with self._lock:
            self._items.append(item)

    def add_lazy(self, item_id: str, name: str, slot: str, loader: ImageLoader) -> None:
        """Register an item whose descriptor is extracted on first access."""
        with self._lock:
            self._loaders[len(self._items)] = (loader, threading.Lock())
            self._items.append(CatalogueItem(item_id=item_id, name=name, slot=slot))

    def _load(self, item: CatalogueItem, loader: ImageLoader) -> Optional[VisualDescriptor]:
        try:
            return extract_descriptor(
                loader(),
                padding_ratio=CATALOGUE_PADDING_RATIO,
                config=self.config,
            )
        except Exception as e:
            logger.warning(f"Descriptor extraction failed for {item.item_id}: {e}")
            return None

    def _resolve(self, position: int) -> CatalogueItem:
        with self._lock:
            item = self._items[position]
            pending = self._loaders.get(position)
        if pending is None:
            return item

        loader, item_lock = pending
        # Only this item's lock is held while extracting.
        with item_lock:
            with self._lock:
                if position not in self._loaders:
                    return self._items[position]

            resolved = CatalogueItem(item.item_id, item.name, item.slot,
                                     self._load(item, loader))
            with self._lock:
                self._items[position] = resolved
                del self._loaders[position]
            return resolved

    def items(self, slot: Optional[str] = None) -> Tuple[CatalogueItem, ...]:
        """Items in insertion order, optionally restricted to one slot."""
        with self._lock:
            positions = [
                i for i, item in enumerate(self._items)
                if slot is None or item.slot == slot
            ]
        return tuple(self._resolve(i) for i in positions)

    def get(self, item_id: str) -> Optional[CatalogueItem]:
        """First item with this id; only that item is extracted if pending."""
        with self._lock:
            position = next(
                (i for i, item in enumerate(self._items) if item.item_id == item_id),
                None,
            )
        if position is None:
            return None
        return self._resolve(position)

    def slots(self) -> Tuple[str, ...]:
        """Distinct slots in order of first appearance."""
        with self._lock:
            return tuple(dict.fromkeys(item.slot for item in self._items))


def _coerce_descriptor(value: Any) -> Optional[VisualDescriptor]:
    if value is None or isinstance(value, VisualDescriptor):
        return value
    if isinstance(value, Mapping):
        return VisualDescriptor.from_dict(value)
    raise ValueError(f"Unsupported descriptor type: {type(value).__name__}")


def _coerce_buffer(value: Any) -> Optional[PixelBuffer]:
    if value is None or isinstance(value, PixelBuffer):
        return value
    if isinstance(value, np.ndarray):
        return PixelBuffer.from_array(value)
    raise ValueError(f"Unsupported image type: {type(value).__name__}")


def build_catalogue(entries: Iterable[Mapping[str, Any]],
                    config: Optional[ExtractionConfig] = None
                    ) -> Tuple[Catalogue, Dict[str, Any]]:
    """
    Build a catalogue from item records.

    Each record needs ``id`` and ``slot``, optionally ``name``, and either a
    precomputed ``descriptor`` (mapping or VisualDescriptor) or an
    ``image`` (PixelBuffer or numpy RGBA/RGB array). A record with
    neither is kept with no descriptor: "no visual data yet" is a normal
    state and such items are simply never ranked.

    Args:
        entries: Item records from the catalogue-loading collaborator.
        config: Extraction settings for records that carry an image.

    Returns:
        (catalogue, stats) where stats has 'processed', 'extracted',
        'precomputed', 'without_visuals' and 'errors' counts.
    """
    config = config or ExtractionConfig()
    catalogue = Catalogue(config=config)
    processed = extracted = precomputed = without_visuals = errors = 0

    for i, entry in enumerate(entries):
        item_id = entry.get("id")
        slot = entry.get("slot")
        if item_id is None or not slot:
            logger.warning(f"Skipping catalogue entry {i}: missing id or slot")
            errors += 1
            continue

        try:
            descriptor = _coerce_descriptor(entry.get("descriptor"))
            buffer = _coerce_buffer(entry.get("image"))
            if descriptor is None and buffer is not None:
                descriptor = extract_descriptor(
                    buffer,
                    padding_ratio=CATALOGUE_PADDING_RATIO,
                    config=config,
                )
                extracted += 1
            elif descriptor is not None:
                precomputed += 1
        except (ValueError, cv2.error) as e:
            logger.warning(f"Failed to process catalogue item {item_id}: {e}")
            errors += 1
            continue

        if descriptor is None or descriptor.is_empty():
            without_visuals += 1

        catalogue.add(CatalogueItem(
            item_id=str(item_id),
            name=str(entry.get("name") or item_id),
            slot=str(slot),
            descriptor=descriptor,
        ))
        processed += 1

        if (i + 1) % 500 == 0:
            logger.info(f"Processed {i + 1} catalogue entries")

    logger.info(
        f"Catalogue built: {processed} items, {extracted} extracted, "
        f"{precomputed} precomputed, {without_visuals} without visuals, "
        f"{errors} errors"
    )

    return catalogue, {
        "processed": processed,
        "extracted": extracted,
        "precomputed": precomputed,
        "without_visuals": without_visuals,
        "errors": errors,
    }
