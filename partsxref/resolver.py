from __future__ import annotations

"""
Family resolution: the connected component of the link graph that
contains a seed identifier.
"""

from collections import deque
from typing import Optional, Set

from loguru import logger

from .config import MAX_FAMILY_SIZE
from .graph_index import Snapshot


def resolve_family(
    snapshot: Snapshot,
    seed: str,
    max_nodes: Optional[int] = MAX_FAMILY_SIZE,
) -> frozenset:
    """Breadth-first walk from ``seed`` over ``snapshot.graph``.

    Returns every identifier reachable from ``seed``, seed included.  A
    seed that no record carries yields an empty family.  When
    ``max_nodes`` is a positive number the walk stops after visiting
    that many identifiers.
    """
    if not seed or seed not in snapshot.record_index:
        return frozenset()

    visited: Set[str] = set()
    queue = deque([seed])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        if max_nodes and len(visited) >= max_nodes:
            logger.warning(
                "Family of {} truncated at {} identifiers ({} still queued)",
                seed,
                max_nodes,
                len(queue),
            )
            break
        for neighbor in snapshot.neighbors(current):
            if neighbor not in visited:
                queue.append(neighbor)
    return frozenset(visited)
