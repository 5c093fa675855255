from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from workplan_engine.core.model import GraphNode, TaskGraph

logger = logging.getLogger(__name__)


@dataclass
class CriticalPath:
    node_ids: set[str] = field(default_factory=set)
    # "<predecessor_id>-<successor_id>"
    edge_keys: set[str] = field(default_factory=set)

    def is_critical_edge(self, from_id: str, to_id: str) -> bool:
        return f"{from_id}-{to_id}" in self.edge_keys


def find_critical_path(graph: TaskGraph) -> CriticalPath:
    """Trace the chain(s) of tasks ending at the project's latest finish.

    Heuristic, not full CPM: every node finishing within a day of the latest
    end date seeds a trace; each trace follows the dependency whose
    predecessor ends last (first one wins on ties) until it reaches a node
    without dated predecessors. Nodes already marked are not traced again.
    """
    result = CriticalPath()

    dated = [n for n in graph.nodes if n.end_date is not None]
    if not dated:
        return result

    max_end = max(n.end_date for n in dated)  # type: ignore[type-var]

    for node in dated:
        if abs((node.end_date - max_end).days) < 1:  # type: ignore[operator]
            if node.id in result.node_ids:
                continue
            _trace(graph, node, result)

    logger.debug(
        "critical path: %d nodes, %d edges", len(result.node_ids), len(result.edge_keys)
    )
    return result


def _trace(graph: TaskGraph, node: GraphNode, result: CriticalPath) -> None:
    current: Optional[GraphNode] = node
    while current is not None:
        result.node_ids.add(current.id)
        driving = _driving_predecessor(graph, current)
        if driving is None:
            return
        result.edge_keys.add(f"{driving.id}-{current.id}")
        if driving.id in result.node_ids:
            logger.debug("critical trace stopped at already-marked %s", driving.id)
            return
        current = driving


def _driving_predecessor(graph: TaskGraph, node: GraphNode) -> Optional[GraphNode]:
    best: Optional[GraphNode] = None
    for edge in graph.predecessors(node.id):
        pred = graph.nodes_by_id.get(edge.from_id)
        if pred is None or pred.end_date is None:
            continue
        if best is None or pred.end_date > best.end_date:  # type: ignore[operator]
            best = pred
    return best
