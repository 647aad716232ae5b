from __future__ import annotations

"""
Snapshot builder and holder for the cross-reference link graph.

A :class:`Snapshot` pairs the undirected link graph (identifier →
neighbouring identifiers) with a record index (identifier → record
positions) and the trigram shingles of every indexed identifier.
Snapshots are built into fresh structures, frozen, and only
then published on a :class:`GraphIndex`; readers grab the current
reference once and never see a half-built graph.

Refreshing is serialised with a lock so at most one build runs at a
time.  A failed refresh leaves the previously published snapshot in
place.

Example::

    from partsxref.graph_index import GraphIndex
    from partsxref.record_store import InMemoryRecordStore

    index = GraphIndex(InMemoryRecordStore(records))
    snapshot = index.refresh()
    snapshot.graph["A1"]   # frozenset({'B2'})
"""

import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from loguru import logger

from .config import REFRESH_INTERVAL_SECONDS, PartRecord
from .exceptions import SnapshotBuildError, StoreUnavailable
from .normalize import normalize_identifier, trigrams
from .record_store import RecordStore


@dataclass(frozen=True, eq=False)
class Snapshot:
    records: Tuple[PartRecord, ...]
    graph: Mapping[str, frozenset]
    record_index: Mapping[str, Tuple[int, ...]]
    built_at: float
    source: str = "unknown"
    trigram_index: Mapping[str, frozenset] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def edge_count(self) -> int:
        return sum(len(n) for n in self.graph.values()) // 2

    def neighbors(self, identifier: str) -> frozenset:
        return self.graph.get(identifier, frozenset())


def build_snapshot(records: Iterable[PartRecord], source: str = "unknown") -> Snapshot:
    """
    Single pass over ``records``.  A record with both identifiers adds
    the undirected edge between them and is indexed under both; a
    record with only one is indexed under it without an edge.  Blank
    after normalization counts as missing.
    """
    adjacency: Dict[str, Set[str]] = {}
    index: Dict[str, List[int]] = {}
    kept: List[PartRecord] = []

    for pos, record in enumerate(records):
        kept.append(record)
        a = normalize_identifier(record.part_number)
        b = normalize_identifier(record.reference_number)

        for ident in dict.fromkeys(x for x in (a, b) if x):
            index.setdefault(ident, []).append(pos)

        if a and b and a != b:
            adjacency.setdefault(a, set()).add(b)
            adjacency.setdefault(b, set()).add(a)

    graph = MappingProxyType({k: frozenset(v) for k, v in adjacency.items()})
    record_index = MappingProxyType({k: tuple(v) for k, v in index.items()})
    # shingles for fuzzy matching, computed once per snapshot
    trigram_index = MappingProxyType({k: trigrams(k) for k in index})
    return Snapshot(
        records=tuple(kept),
        graph=graph,
        record_index=record_index,
        built_at=time.time(),
        source=source,
        trigram_index=trigram_index,
    )


class GraphIndex:
    """Holds the currently published snapshot for a record store."""

    def __init__(self, store: RecordStore):
        self.store = store
        self._snapshot: Optional[Snapshot] = None
        self._refresh_lock = threading.Lock()

    def current_snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    def refresh(self) -> Snapshot:
        """
        Rebuild from ``store.all_records()`` and publish the result.

        Raises StoreUnavailable when the store cannot be read and
        SnapshotBuildError when the build itself fails; the previous
        snapshot stays published either way.
        """
        with self._refresh_lock:
            started = time.perf_counter()
            try:
                records = self.store.all_records()
            except StoreUnavailable:
                logger.warning("Refresh aborted: record store {} unavailable", self.store.name)
                raise
            try:
                snapshot = build_snapshot(records, source=self.store.name)
            except Exception as e:
                logger.exception("Snapshot build failed: {}", e)
                raise SnapshotBuildError(str(e)) from e
            self._snapshot = snapshot
            logger.info(
                "Published snapshot: records={}, identifiers={}, edges={} ({:.3f}s)",
                len(snapshot.records),
                len(snapshot.record_index),
                snapshot.edge_count,
                time.perf_counter() - started,
            )
            return snapshot

    def ensure_snapshot(self) -> Snapshot:
        """Current snapshot, building the first one on demand."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._refresh_lock:
            snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        return self.refresh()


class RefreshScheduler:
    """Daemon thread that refreshes a GraphIndex every ``interval`` seconds."""

    def __init__(self, index: GraphIndex, interval: float = REFRESH_INTERVAL_SECONDS):
        self.index = index
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.interval <= 0:
            logger.info("Snapshot refresh schedule disabled")
            return False
        if self.running:
            return True
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="snapshot-refresh", daemon=True)
        self._thread.start()
        logger.info("Snapshot refresh scheduled every {}s", self.interval)
        return True

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.index.refresh()
            except Exception as e:
                logger.warning("Scheduled refresh failed, keeping last snapshot: {}", e)
