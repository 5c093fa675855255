from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Literal, Optional, Union

from workplan_engine.core.graph.build_graph import build_task_graph
from workplan_engine.core.graph.critical_path import find_critical_path
from workplan_engine.core.model import Project, format_date, project_from_dict


VIEW_MODES: tuple[str, ...] = ("week", "month", "quarter", "semester", "year", "project")

# Fixed padding (days) on both sides for the scrollable views.
_VIEW_PADDING_DAYS: dict[str, int] = {"week": 14, "month": 30}
_DEFAULT_PADDING_DAYS = 90


@dataclass(frozen=True)
class TimelineRow:
    kind: Literal["wp", "task", "milestone"]
    id: str
    title: str
    wp_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    critical: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "title": self.title,
            "wp_id": self.wp_id,
            "start_date": format_date(self.start_date) or None,
            "end_date": format_date(self.end_date) or None,
            "critical": self.critical,
        }


@dataclass
class Timeline:
    rows: list[TimelineRow] = field(default_factory=list)
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    total_days: int = 0

    @property
    def items(self) -> list[TimelineRow]:
        """Bars and milestones ordered by start (stable for ties)."""
        bars = [r for r in self.rows if r.kind != "wp"]
        return sorted(bars, key=lambda r: r.start_date)  # type: ignore[arg-type,return-value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "min_date": format_date(self.min_date) or None,
            "max_date": format_date(self.max_date) or None,
            "total_days": self.total_days,
        }


def build_timeline(
    project: Union[Project, dict[str, Any], None],
    view_mode: str = "project",
) -> Timeline:
    """Rows and padded bounds for the bar-chart view.

    Only fully dated tasks and dated milestones are shown; a work package
    with neither is left out entirely.
    """
    if not isinstance(project, Project):
        project = project_from_dict(project)
    if view_mode not in VIEW_MODES:
        raise ValueError(f"unknown view mode: {view_mode} (choose one of: {', '.join(VIEW_MODES)})")

    critical = find_critical_path(build_task_graph(project)).node_ids
    timeline = Timeline()

    for wp in project.work_packages:
        tasks = [t for t in wp.tasks if t.has_dates]
        milestones = [m for m in wp.milestones if m.date is not None]
        if not tasks and not milestones:
            continue
        timeline.rows.append(TimelineRow(kind="wp", id=wp.id, title=wp.title, wp_id=wp.id))
        for t in tasks:
            timeline.rows.append(
                TimelineRow(
                    kind="task",
                    id=t.id,
                    title=t.title,
                    wp_id=wp.id,
                    start_date=t.start_date,
                    end_date=t.end_date,
                    critical=t.id in critical,
                )
            )
        for m in milestones:
            timeline.rows.append(
                TimelineRow(
                    kind="milestone",
                    id=m.id,
                    title=m.description,
                    wp_id=wp.id,
                    start_date=m.date,
                    end_date=m.date,
                )
            )

    items = timeline.items
    if not items:
        return timeline

    raw_min = min(r.start_date for r in items)  # type: ignore[type-var]
    raw_max = max(r.end_date for r in items)  # type: ignore[type-var]

    if view_mode == "project":
        span_days = (raw_max - raw_min).days
        padding = timedelta(days=math.ceil(max(span_days * 0.05, 10)))
    else:
        padding = timedelta(days=_VIEW_PADDING_DAYS.get(view_mode, _DEFAULT_PADDING_DAYS))

    min_date = _snap(_clamped(raw_min, -padding), view_mode)
    max_date = _clamped(raw_max, padding)

    timeline.min_date = min_date
    timeline.max_date = max_date
    timeline.total_days = (max_date - min_date).days + 1
    return timeline


def _clamped(d: date, delta: timedelta) -> date:
    try:
        return d + delta
    except OverflowError:
        return date.max if delta > timedelta(0) else date.min


def _snap(d: date, view_mode: str) -> date:
    if view_mode == "year":
        return d.replace(month=1, day=1)
    if view_mode in ("month", "quarter", "project"):
        return d.replace(day=1)
    if view_mode == "semester":
        return d.replace(month=1 if d.month <= 6 else 7, day=1)
    return d
