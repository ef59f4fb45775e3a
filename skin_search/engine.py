"""
Catalogue retrieval engine.

Given a reference render (or its precomputed descriptor), scores every
catalogue item of the requested slot(s) and returns the best matches per
slot:

    1. Extract the reference descriptor (once per query)
    2. Score each candidate with the fusion policy
    3. Drop candidates whose score is indeterminate (+inf)
    4. Sort ascending, keep the best entry per item id, cut to top-K

Scoring is pure and reads only immutable descriptors, so candidates can be
scored on a thread pool without locking. Cancellation is cooperative: the
caller's flag is checked between items, never mid-comparison.
"""

import math
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Union

from .catalogue import Catalogue
from .config import ExtractionConfig, ScoringConfig
from .extractor import extract_descriptor
from .models import CandidateScore, CatalogueItem, PixelBuffer, VisualDescriptor
from .scoring import deduplicate, rank_results, score_candidate

logger = logging.getLogger(__name__)

Reference = Union[VisualDescriptor, PixelBuffer]


class SearchEngine:
    """
    Visual item retrieval over a caller-owned catalogue.

    The engine holds no cache and never mutates catalogue items; the same
    instance can serve concurrent queries.
    """

    def __init__(self,
                 catalogue: Catalogue,
                 scoring_config: Optional[ScoringConfig] = None,
                 extraction_config: Optional[ExtractionConfig] = None,
                 max_workers: int = 1):
        """
        Args:
            catalogue: Item store, passed by reference.
            scoring_config: Fusion policy (defaults from environment).
            extraction_config: Settings used when the reference is a raw
                pixel buffer.
            max_workers: Threads used to score candidates; 1 scores inline.
        """
        self.catalogue = catalogue
        self.scoring_config = scoring_config or ScoringConfig()
        self.extraction_config = extraction_config or ExtractionConfig()
        self.max_workers = max(1, int(max_workers))

    def describe(self, reference: Reference) -> VisualDescriptor:
        """Return the reference descriptor, extracting it if needed."""
        if isinstance(reference, VisualDescriptor):
            return reference
        if isinstance(reference, PixelBuffer):
            return extract_descriptor(reference, config=self.extraction_config)
        raise TypeError(
            f"Reference must be a VisualDescriptor or PixelBuffer, "
            f"got {type(reference).__name__}"
        )

    def _score_items(self,
                     descriptor: VisualDescriptor,
                     items: Sequence[CatalogueItem],
                     should_cancel: Optional[Callable[[], bool]]) -> List[CandidateScore]:
        def score(item: CatalogueItem) -> CandidateScore:
            value, breakdown = score_candidate(descriptor, item.descriptor, self.scoring_config)
            return CandidateScore(item_id=item.item_id, score=value,
                                  breakdown=breakdown, name=item.name, slot=item.slot)

        results = []
        if self.max_workers == 1:
            for item in items:
                if should_cancel and should_cancel():
                    logger.info(f"Search cancelled after {len(results)} candidates")
                    break
                results.append(score(item))
            return results

        # Submission stops at cancellation; results keep catalogue order so
        # tie-breaking matches the sequential path.
        futures = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for item in items:
                if should_cancel and should_cancel():
                    logger.info(f"Search cancelled after submitting {len(futures)} candidates")
                    break
                futures.append(pool.submit(score, item))
            results = [future.result() for future in futures]
        return results

    def search_slot(self,
                    reference: Reference,
                    slot: str,
                    top_k: Optional[int] = None,
                    should_cancel: Optional[Callable[[], bool]] = None
                    ) -> List[CandidateScore]:
        """
        Rank the catalogue items of one slot.

        Args:
            reference: Reference descriptor or pixel buffer.
            slot: Equipment slot to search.
            top_k: Maximum results (defaults to the scoring config's top_k).
            should_cancel: Optional flag checked between candidates.

        Returns:
            Up to top_k CandidateScore, best first, unique item ids.
        """
        return self.search(reference, slot=slot, top_k=top_k,
                           should_cancel=should_cancel).get(slot, [])

    def search(self,
               reference: Reference,
               slot: Optional[str] = None,
               top_k: Optional[int] = None,
               should_cancel: Optional[Callable[[], bool]] = None
               ) -> Dict[str, List[CandidateScore]]:
        """
        Rank catalogue items per slot.

        Args:
            reference: Reference descriptor or pixel buffer. A buffer is
                extracted eagerly, once per call.
            slot: Restrict to one slot; None searches every slot present
                in the catalogue.
            top_k: Maximum results per slot (defaults to config top_k).
            should_cancel: Optional callable checked between candidates;
                once it returns True no further candidates are scored and
                the results gathered so far are ranked and returned.

        Returns:
            Mapping slot -> ranked CandidateScore list. Each list has
            exactly min(top_k, number of finite-scoring unique items)
            entries.
        """
        descriptor = self.describe(reference)
        top_k = self.scoring_config.top_k if top_k is None else top_k
        if top_k < 0:
            raise ValueError(f"top_k must be non-negative, got {top_k}")

        slots = [slot] if slot is not None else list(self.catalogue.slots())
        results: Dict[str, List[CandidateScore]] = {}
        scanned = 0

        for current in slots:
            if should_cancel and should_cancel():
                results[current] = []
                continue

            items = self.catalogue.items(current)
            scored = self._score_items(descriptor, items, should_cancel)
            scanned += len(scored)

            finite = [result for result in scored if math.isfinite(result.score)]
            results[current] = deduplicate(rank_results(finite))[:top_k]

        logger.info(
            f"Search complete: {scanned} candidates across {len(slots)} slot(s) -> "
            f"{sum(len(v) for v in results.values())} results"
        )
        return results
