from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from workplan_engine.core.config.layout_config import LayoutConfig
from workplan_engine.core.model import GraphNode, TaskGraph


@dataclass(frozen=True)
class ConnectorCurve:
    """Horizontal cubic curve from a node's right edge to another's left edge."""

    start: tuple[float, float]
    control1: tuple[float, float]
    control2: tuple[float, float]
    end: tuple[float, float]

    def to_svg_path(self) -> str:
        (sx, sy), (c1x, c1y), (c2x, c2y), (ex, ey) = (
            self.start,
            self.control1,
            self.control2,
            self.end,
        )
        return f"M {_n(sx)} {_n(sy)} C {_n(c1x)} {_n(c1y)}, {_n(c2x)} {_n(c2y)}, {_n(ex)} {_n(ey)}"


@dataclass(frozen=True)
class DiagramSize:
    width: float
    height: float


def layout_network(graph: TaskGraph, config: Optional[LayoutConfig] = None) -> DiagramSize:
    """Place nodes column-per-level and return the diagram's bounding box.

    Expects levels to be assigned already. Within a level, nodes keep input
    order top to bottom; each column is centered against the tallest one.
    """
    cfg = config or LayoutConfig()
    slot_h = cfg.node_height + cfg.vertical_gap
    slot_w = cfg.node_width + cfg.horizontal_gap

    buckets: dict[int, list[GraphNode]] = {}
    for node in graph.nodes:
        buckets.setdefault(node.level, []).append(node)

    max_level = max(buckets) if buckets else 0
    max_nodes = max((len(b) for b in buckets.values()), default=0)
    tallest = max_nodes * slot_h

    for level in sorted(buckets):
        column = buckets[level]
        column_height = len(column) * slot_h - cfg.vertical_gap
        start_y = (tallest - column_height) / 2
        for idx, node in enumerate(column):
            node.x = level * slot_w + cfg.margin
            node.y = start_y + idx * slot_h + cfg.margin

    return DiagramSize(
        width=(max_level + 1) * slot_w + 2 * cfg.margin,
        height=max(tallest + 2 * cfg.margin, cfg.minimum_height),
    )


def connector_curve(
    source: GraphNode, target: GraphNode, config: Optional[LayoutConfig] = None
) -> ConnectorCurve:
    cfg = config or LayoutConfig()
    sx = source.x + cfg.node_width
    sy = source.y + cfg.node_height / 2
    ex = target.x
    ey = target.y + cfg.node_height / 2
    half = abs(ex - sx) / 2
    return ConnectorCurve(
        start=(sx, sy),
        control1=(sx + half, sy),
        control2=(ex - half, ey),
        end=(ex, ey),
    )


def _n(v: float) -> str:
    # 250.0 -> "250", 12.5 -> "12.5"
    return str(int(v)) if float(v).is_integer() else f"{v:.2f}".rstrip("0")
