from __future__ import annotations

import logging
from typing import Any, Union

from workplan_engine.core.model import (
    GraphEdge,
    GraphNode,
    Project,
    TaskGraph,
    day_span,
    project_from_dict,
)

logger = logging.getLogger(__name__)


def build_task_graph(project: Union[Project, dict[str, Any], None]) -> TaskGraph:
    """Flatten every work package's tasks into one node/edge graph.

    Nodes keep input order and remember their owning work-package index.
    Dependencies whose predecessor is unknown are dropped from the edge list.
    Malformed input yields an empty graph.
    """
    if not isinstance(project, Project):
        project = project_from_dict(project)

    graph = TaskGraph()

    for wp_index, task in project.iter_tasks():
        if task.id in graph.nodes_by_id:
            logger.debug("duplicate task id %s ignored (first occurrence wins)", task.id)
            continue
        duration = 0
        if task.start_date is not None and task.end_date is not None:
            duration = day_span(task.start_date, task.end_date)
        node = GraphNode(
            id=task.id,
            title=task.title,
            wp_index=wp_index,
            start_date=task.start_date,
            end_date=task.end_date,
            dependencies=task.dependencies,
            duration=duration,
        )
        graph.nodes.append(node)
        graph.nodes_by_id[task.id] = node

    for node in graph.nodes:
        incoming: list[GraphEdge] = []
        for dep in node.dependencies:
            if dep.predecessor_id not in graph.nodes_by_id:
                logger.debug(
                    "dropping dangling dependency %s -> %s", dep.predecessor_id, node.id
                )
                continue
            edge = GraphEdge(from_id=dep.predecessor_id, to_id=node.id, type=dep.type)
            graph.edges.append(edge)
            incoming.append(edge)
        graph.incoming[node.id] = incoming

    return graph
