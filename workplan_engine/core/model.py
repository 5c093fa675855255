from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal, Optional


DependencyType = Literal["FS", "SS", "FF", "SF"]

DEPENDENCY_TYPES: tuple[str, ...] = ("FS", "SS", "FF", "SF")

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class Dependency:
    predecessor_id: str
    type: str = "FS"


@dataclass(frozen=True)
class Task:
    id: str
    title: str = ""
    description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    dependencies: tuple[Dependency, ...] = ()

    @property
    def has_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None


@dataclass(frozen=True)
class Milestone:
    id: str
    description: str = ""
    date: Optional[date] = None


@dataclass(frozen=True)
class Deliverable:
    id: str
    description: str = ""
    indicator: str = ""


@dataclass(frozen=True)
class WorkPackage:
    id: str
    title: str = ""
    tasks: tuple[Task, ...] = ()
    milestones: tuple[Milestone, ...] = ()
    deliverables: tuple[Deliverable, ...] = ()


@dataclass(frozen=True)
class Project:
    schema_version: Optional[str] = None
    title: str = ""
    start_date: Optional[date] = None
    duration_months: Optional[int] = None
    work_packages: tuple[WorkPackage, ...] = ()

    def iter_tasks(self):
        for wp_index, wp in enumerate(self.work_packages):
            for task in wp.tasks:
                yield wp_index, task

    @property
    def end_date(self) -> Optional[date]:
        if self.start_date is None or not self.duration_months:
            return None
        try:
            return project_end_date(self.start_date, self.duration_months)
        except (ValueError, OverflowError):
            # Beyond the calendar: treat the project as open-ended.
            return None


@dataclass
class GraphNode:
    """Derived per pass; never persisted."""

    id: str
    title: str
    wp_index: int
    start_date: Optional[date]
    end_date: Optional[date]
    dependencies: tuple[Dependency, ...]
    duration: int = 0
    level: int = 0
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class GraphEdge:
    from_id: str
    to_id: str
    type: str

    @property
    def key(self) -> str:
        return f"{self.from_id}-{self.to_id}"


@dataclass
class TaskGraph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    nodes_by_id: dict[str, GraphNode] = field(default_factory=dict)
    # to_id -> incoming edges, in dependency order
    incoming: dict[str, list[GraphEdge]] = field(default_factory=dict)

    def predecessors(self, node_id: str) -> list[GraphEdge]:
        return self.incoming.get(node_id, [])


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse `YYYY-MM-DD` or a full ISO-8601 timestamp (date part wins).

    Returns None for anything else, including empty strings.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip().split("T")[0].split(" ")[0]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def format_date(value: Optional[date]) -> str:
    return value.isoformat() if value is not None else ""


def day_span(start: date, end: date) -> int:
    """Whole-day difference between two dates, ceiling-rounded and unsigned."""
    return abs((end - start).days)


def project_end_date(start: date, duration_months: int) -> date:
    """Last day of a project running `duration_months` from `start`.

    The project ends the day before the anniversary; the anniversary day is
    clamped to the target month's length.
    """
    month_index = start.month - 1 + duration_months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day) - ONE_DAY


def _get(raw: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def _list(v: Any) -> list[Any]:
    return v if isinstance(v, list) else []


def _str(v: Any) -> str:
    return v if isinstance(v, str) else ""


def dependency_from_dict(raw: Any) -> Optional[Dependency]:
    if isinstance(raw, str) and raw.strip():
        return Dependency(predecessor_id=raw.strip())
    if not isinstance(raw, dict):
        return None
    pred = _get(raw, "predecessor_id", "predecessorId")
    if not isinstance(pred, str) or not pred.strip():
        return None
    dep_type = _get(raw, "type", default="FS")
    return Dependency(predecessor_id=pred.strip(), type=str(dep_type).upper())


def task_from_dict(raw: dict[str, Any]) -> Task:
    deps = [dependency_from_dict(d) for d in _list(_get(raw, "dependencies"))]
    return Task(
        id=_str(raw.get("id")).strip(),
        title=_str(raw.get("title")),
        description=_str(raw.get("description")),
        start_date=parse_iso_date(_get(raw, "start_date", "startDate")),
        end_date=parse_iso_date(_get(raw, "end_date", "endDate")),
        dependencies=tuple(d for d in deps if d is not None),
    )


def work_package_from_dict(raw: dict[str, Any], index: int) -> WorkPackage:
    tasks = [task_from_dict(t) for t in _list(raw.get("tasks")) if isinstance(t, dict)]
    milestones = [
        Milestone(
            id=_str(m.get("id")),
            description=_str(m.get("description")),
            date=parse_iso_date(m.get("date")),
        )
        for m in _list(raw.get("milestones"))
        if isinstance(m, dict)
    ]
    deliverables = [
        Deliverable(
            id=_str(d.get("id")),
            description=_str(d.get("description")),
            indicator=_str(d.get("indicator")),
        )
        for d in _list(raw.get("deliverables"))
        if isinstance(d, dict)
    ]
    return WorkPackage(
        id=_str(raw.get("id")) or f"WP{index + 1}",
        title=_str(raw.get("title")),
        tasks=tuple(t for t in tasks if t.id),
        milestones=tuple(milestones),
        deliverables=tuple(deliverables),
    )


def project_from_dict(raw: Any) -> Project:
    """Normalize a raw project mapping (best effort, never raises).

    Accepts the editor's camelCase names as aliases of the snake_case keys.
    Missing arrays are treated as empty.
    """
    if not isinstance(raw, dict):
        return Project()

    wps = _list(_get(raw, "work_packages", "activities"))
    duration = _get(raw, "duration_months", "durationMonths")
    if isinstance(duration, bool) or not isinstance(duration, int):
        duration = None
    schema_version = raw.get("schema_version")

    return Project(
        schema_version=schema_version if isinstance(schema_version, str) else None,
        title=_str(raw.get("title")),
        start_date=parse_iso_date(_get(raw, "start_date", "startDate")),
        duration_months=duration,
        work_packages=tuple(
            work_package_from_dict(wp, i) for i, wp in enumerate(wps) if isinstance(wp, dict)
        ),
    )


def project_to_dict(project: Project) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if project.schema_version is not None:
        out["schema_version"] = project.schema_version
    out["title"] = project.title
    if project.start_date is not None:
        out["start_date"] = format_date(project.start_date)
    if project.duration_months is not None:
        out["duration_months"] = project.duration_months

    out["work_packages"] = [
        {
            "id": wp.id,
            "title": wp.title,
            "tasks": [
                {
                    "id": t.id,
                    "title": t.title,
                    "description": t.description,
                    "start_date": format_date(t.start_date),
                    "end_date": format_date(t.end_date),
                    "dependencies": [
                        {"predecessor_id": d.predecessor_id, "type": d.type} for d in t.dependencies
                    ],
                }
                for t in wp.tasks
            ],
            "milestones": [
                {"id": m.id, "description": m.description, "date": format_date(m.date)}
                for m in wp.milestones
            ],
            "deliverables": [
                {"id": d.id, "description": d.description, "indicator": d.indicator}
                for d in wp.deliverables
            ],
        }
        for wp in project.work_packages
    ]
    return out
