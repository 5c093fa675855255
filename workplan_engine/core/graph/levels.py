from __future__ import annotations

import logging
from typing import Optional

from workplan_engine.core.model import TaskGraph

logger = logging.getLogger(__name__)


def assign_levels(graph: TaskGraph) -> dict[str, int]:
    """Assign each node its longest-path-from-source rank.

    Sources are level 0; every other node sits one level past its deepest
    predecessor. A node met again inside its own ancestor chain (a cycle)
    counts as level 0 for that branch instead of recursing further, so the
    pass always terminates.

    Levels are also written onto the graph's nodes.
    """
    cache: dict[str, int] = {}

    def level_of(node_id: str, visiting: frozenset[str]) -> int:
        if node_id in visiting:
            logger.debug("cycle through %s neutralized at level 0", node_id)
            return 0
        if node_id in cache:
            return cache[node_id]

        incoming = graph.predecessors(node_id)
        if not incoming:
            cache[node_id] = 0
            return 0

        # each branch gets its own copy of the ancestor chain
        branch = visiting | {node_id}
        max_pred = -1
        for edge in incoming:
            max_pred = max(max_pred, level_of(edge.from_id, branch))

        cache[node_id] = max_pred + 1
        return cache[node_id]

    for node in graph.nodes:
        node.level = level_of(node.id, frozenset())

    return {node.id: node.level for node in graph.nodes}


def find_cyclic_nodes(graph: TaskGraph) -> set[str]:
    """Return ids of nodes that can reach themselves through dependencies."""
    cyclic: set[str] = set()
    for node in graph.nodes:
        if node.id in cyclic:
            continue
        cycle = _cycle_through(graph, node.id)
        if cycle:
            cyclic.update(cycle)
    return cyclic


def _cycle_through(graph: TaskGraph, start: str) -> Optional[list[str]]:
    # Iterative DFS over predecessor edges, tracking the path back to `start`.
    stack: list[tuple[str, int]] = [(start, 0)]
    path: list[str] = [start]
    seen: set[str] = {start}
    while stack:
        node_id, idx = stack[-1]
        incoming = graph.predecessors(node_id)
        if idx >= len(incoming):
            stack.pop()
            path.pop()
            continue
        stack[-1] = (node_id, idx + 1)
        pred = incoming[idx].from_id
        if pred == start:
            return list(path)
        if pred in seen:
            continue
        seen.add(pred)
        stack.append((pred, 0))
        path.append(pred)
    return None


def topological_order(graph: TaskGraph, levels: Optional[dict[str, int]] = None) -> list[str]:
    """Node ids ordered by level, ties broken by input order."""
    if levels is None:
        levels = assign_levels(graph)
    position = {node.id: i for i, node in enumerate(graph.nodes)}
    return sorted(position, key=lambda nid: (levels.get(nid, 0), position[nid]))
