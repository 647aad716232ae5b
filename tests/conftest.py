"""
pytest configuration and shared fixtures.
"""

import pytest
from typing import List

from partsxref.config import PartRecord
from partsxref.graph_index import build_snapshot
from partsxref.record_store import InMemoryRecordStore
from partsxref.search import CrossReferenceEngine


def part(ref=None, pn=None, **extra) -> PartRecord:
    """Shorthand record builder"""
    return PartRecord(reference_number=ref, part_number=pn, **extra)


@pytest.fixture
def chain_records() -> List[PartRecord]:
    """A1 - B2 - C3 chain across two records"""
    return [
        part("A1", "B2", make="Acme", company="Acme Corp", description="filter"),
        part("B2", "C3", make="Bolt", company="Bolt Ltd", description="filter element"),
    ]


@pytest.fixture
def mixed_records() -> List[PartRecord]:
    """Two families, a standalone part and a record with no identifiers"""
    return [
        part("A1", "B2"),
        part("B2", "C3"),
        part("X-9", "Y 9"),
        part(None, "ALPHA100"),
        part("  ", "-/-"),
        part(None, None, description="orphan"),
    ]


@pytest.fixture
def snapshot(mixed_records):
    return build_snapshot(mixed_records, source="memory")


@pytest.fixture
def make_engine():
    """Factory for an engine over an in-memory store"""
    def _make(records, **kwargs):
        return CrossReferenceEngine(InMemoryRecordStore(records), **kwargs)
    return _make
