from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from workplan_engine.core.config.layout_config import LayoutConfig
from workplan_engine.core.graph.build_graph import build_task_graph
from workplan_engine.core.graph.critical_path import CriticalPath, find_critical_path
from workplan_engine.core.graph.levels import assign_levels
from workplan_engine.core.layout.network_layout import connector_curve, layout_network
from workplan_engine.core.model import Project, format_date


@dataclass(frozen=True)
class NetworkNode:
    id: str
    title: str
    wp_index: int
    level: int
    x: float
    y: float
    duration: int
    start_date: str
    end_date: str
    critical: bool


@dataclass(frozen=True)
class NetworkEdge:
    from_id: str
    to_id: str
    type: str
    critical: bool
    path: str


@dataclass
class NetworkView:
    """Render-ready precedence network."""

    nodes: list[NetworkNode] = field(default_factory=list)
    edges: list[NetworkEdge] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    scale: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [
                {
                    "id": n.id,
                    "title": n.title,
                    "wp_index": n.wp_index,
                    "level": n.level,
                    "x": n.x,
                    "y": n.y,
                    "duration": n.duration,
                    "start_date": n.start_date,
                    "end_date": n.end_date,
                    "critical": n.critical,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "from": e.from_id,
                    "to": e.to_id,
                    "type": e.type,
                    "critical": e.critical,
                    "path": e.path,
                }
                for e in self.edges
            ],
            "width": self.width,
            "height": self.height,
            "scale": self.scale,
        }


def build_network(
    project: Union[Project, dict[str, Any], None],
    config: Optional[LayoutConfig] = None,
) -> NetworkView:
    """Graph -> levels -> critical path -> layout, rebuilt from scratch."""
    cfg = config or LayoutConfig()
    graph = build_task_graph(project)
    assign_levels(graph)
    critical: CriticalPath = find_critical_path(graph)
    size = layout_network(graph, cfg)

    view = NetworkView(width=size.width, height=size.height)
    for node in graph.nodes:
        view.nodes.append(
            NetworkNode(
                id=node.id,
                title=node.title,
                wp_index=node.wp_index,
                level=node.level,
                x=node.x,
                y=node.y,
                duration=node.duration,
                start_date=format_date(node.start_date),
                end_date=format_date(node.end_date),
                critical=node.id in critical.node_ids,
            )
        )
    for edge in graph.edges:
        curve = connector_curve(graph.nodes_by_id[edge.from_id], graph.nodes_by_id[edge.to_id], cfg)
        view.edges.append(
            NetworkEdge(
                from_id=edge.from_id,
                to_id=edge.to_id,
                type=edge.type,
                critical=edge.key in critical.edge_keys,
                path=curve.to_svg_path(),
            )
        )
    return view
