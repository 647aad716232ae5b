from __future__ import annotations

"""
Tiered fuzzy matching over the identifiers of a snapshot.

Each identifier the snapshot knows about is placed in a relevance
group against the normalized query:

1. exact match
2. partial match (either string contains the other)
3. trigram similarity above the threshold

Anything else is dropped.  Results are ordered by group, then by
descending similarity, with ties kept in the order identifiers were
first indexed.  The cap is applied after ranking, so truncation only
ever drops the lowest-ranked matches.

The similarity metric mirrors PostgreSQL's ``pg_trgm`` ``similarity()``,
which is what the parts database used for this search before the graph
engine existed.
"""

from typing import AbstractSet, List, NamedTuple

import numpy as np
from loguru import logger

from .config import FUZZY_THRESHOLD, RESULT_CAP
from .graph_index import Snapshot
from .normalize import trigrams

EXACT_GROUP = 1
PARTIAL_GROUP = 2
TRIGRAM_GROUP = 3


class FuzzyMatch(NamedTuple):
    identifier: str
    relevance_group: int
    similarity: float


def trigram_set_similarity(ta: AbstractSet[str], tb: AbstractSet[str]) -> float:
    """Jaccard over two precomputed trigram sets."""
    if not ta or not tb:
        return 0.0
    union = len(ta | tb)
    return len(ta & tb) / union


def trigram_similarity(a: str, b: str) -> float:
    """Shared trigrams over all trigrams (Jaccard), in ``[0, 1]``."""
    return trigram_set_similarity(trigrams(a), trigrams(b))


def relevance_group(identifier: str, query: str, similarity: float, threshold: float) -> int:
    """Group for ``identifier`` or 0 when it does not qualify."""
    if identifier == query:
        return EXACT_GROUP
    if query in identifier or identifier in query:
        return PARTIAL_GROUP
    if similarity > threshold:
        return TRIGRAM_GROUP
    return 0


def match_identifiers(
    snapshot: Snapshot,
    query: str,
    threshold: float = FUZZY_THRESHOLD,
    limit: int = RESULT_CAP,
) -> List[FuzzyMatch]:
    """Rank the snapshot's identifiers against a normalized ``query``."""
    if not query:
        return []

    query_trigrams = trigrams(query)
    shingles = snapshot.trigram_index
    candidates: List[FuzzyMatch] = []
    for identifier in snapshot.record_index:
        ident_trigrams = shingles.get(identifier)
        if ident_trigrams is None:
            ident_trigrams = trigrams(identifier)
        sim = trigram_set_similarity(ident_trigrams, query_trigrams)
        group = relevance_group(identifier, query, sim, threshold)
        if group:
            candidates.append(FuzzyMatch(identifier, group, sim))

    if not candidates:
        logger.info("No fuzzy matches for {} above threshold {}", query, threshold)
        return []

    groups = np.array([c.relevance_group for c in candidates], dtype=np.int64)
    sims = np.array([c.similarity for c in candidates], dtype=np.float64)
    # lexsort is stable; last key is primary
    order = np.lexsort((-sims, groups))
    ranked = [candidates[i] for i in order]

    if limit is not None and limit >= 0 and len(ranked) > limit:
        logger.info("Fuzzy matches for {} capped at {} (of {})", query, limit, len(ranked))
        ranked = ranked[:limit]
    return ranked
