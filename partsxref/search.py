from __future__ import annotations

"""
Search entry point for the cross-reference resolver.

:class:`CrossReferenceEngine` wires the pieces together::

    text → normalize → (family: resolve_family) or (fuzzy: match_identifiers)
         → assemble_records → SearchResponse

Exact mode resolves the whole family of the seed identifier.  When the
seed is unknown and fuzzy fallback is enabled, the request is retried
through the fuzzy tiers.  Empty or blank input short-circuits to an
empty response without touching the record store.

Example::

    from partsxref.record_store import InMemoryRecordStore
    from partsxref.search import CrossReferenceEngine

    engine = CrossReferenceEngine(InMemoryRecordStore(records))
    engine.search("A1").count
"""

from typing import Optional

from loguru import logger

from .config import (
    FUZZY_FALLBACK,
    FUZZY_THRESHOLD,
    MAX_FAMILY_SIZE,
    RESULT_CAP,
    SearchResponse,
)
from .fuzzy import match_identifiers
from .graph_index import GraphIndex, Snapshot
from .mapping import assemble_records, empty_response, to_search_response
from .normalize import normalize_identifier
from .record_store import RecordStore
from .resolver import resolve_family


class CrossReferenceEngine:
    def __init__(
        self,
        store: RecordStore,
        result_cap: int = RESULT_CAP,
        fuzzy_threshold: float = FUZZY_THRESHOLD,
        fuzzy_fallback: bool = FUZZY_FALLBACK,
        max_family_size: Optional[int] = MAX_FAMILY_SIZE,
    ):
        self.index = GraphIndex(store)
        self.result_cap = result_cap
        self.fuzzy_threshold = fuzzy_threshold
        self.fuzzy_fallback = fuzzy_fallback
        self.max_family_size = max_family_size

    @property
    def store(self) -> RecordStore:
        return self.index.store

    def refresh(self) -> Snapshot:
        return self.index.refresh()

    def current_snapshot(self) -> Optional[Snapshot]:
        return self.index.current_snapshot()

    def search(self, identifier_text: Optional[str], fuzzy: bool = False) -> SearchResponse:
        """Resolve ``identifier_text`` into its family's records (or fuzzy matches).

        Raises StoreUnavailable when no snapshot has been published yet
        and the store cannot be read.
        """
        text = (identifier_text or "").strip()
        if not text:
            return empty_response()
        seed = normalize_identifier(text)
        if not seed:
            return empty_response()

        # one snapshot per request, even if a refresh lands mid-search
        snapshot = self.index.ensure_snapshot()

        if not fuzzy:
            family = resolve_family(snapshot, seed, max_nodes=self.max_family_size)
            if family:
                records = assemble_records(snapshot, sorted(family), cap=self.result_cap)
                logger.info(
                    "Family search for {}: {} identifiers, {} records",
                    seed,
                    len(family),
                    len(records),
                )
                return to_search_response(records)
            if not self.fuzzy_fallback:
                logger.info("Unknown identifier {}", seed)
                return empty_response()
            logger.info("Unknown identifier {}; falling back to fuzzy match", seed)

        matches = match_identifiers(
            snapshot, seed, threshold=self.fuzzy_threshold, limit=self.result_cap
        )
        records = assemble_records(
            snapshot, (m.identifier for m in matches), cap=self.result_cap
        )
        logger.info(
            "Fuzzy search for {}: {} identifiers, {} records", seed, len(matches), len(records)
        )
        return to_search_response(records)
