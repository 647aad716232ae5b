from __future__ import annotations

"""
Mapping utilities: identifiers back to records, records to responses.

A record is indexed under both of its identifiers, so a family or a
ranked match list can reach the same record twice.  Records are
deduplicated by their position in the snapshot (identity), never by
field equality: two distinct rows with identical text both appear.
"""

from typing import Iterable, List, Sequence, Set

from loguru import logger

from .config import RESULT_CAP, PartRecord, SearchResponse
from .graph_index import Snapshot


def assemble_records(
    snapshot: Snapshot,
    identifiers: Iterable[str],
    cap: int = RESULT_CAP,
) -> List[PartRecord]:
    """Records for ``identifiers`` in the given order, deduplicated and capped."""
    out: List[PartRecord] = []
    if cap is not None and cap <= 0:
        return out
    seen: Set[int] = set()
    for ident in identifiers:
        for pos in snapshot.record_index.get(ident, ()):
            if pos in seen:
                continue
            seen.add(pos)
            out.append(snapshot.records[pos])
            if cap is not None and len(out) >= cap:
                logger.info("Result list capped at {} records", cap)
                return out
    return out


def to_search_response(records: Sequence[PartRecord]) -> SearchResponse:
    return SearchResponse(count=len(records), results=list(records))


def empty_response() -> SearchResponse:
    return SearchResponse(count=0, results=[])
