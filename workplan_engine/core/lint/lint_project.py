from __future__ import annotations

import re
from typing import Any, Optional

from workplan_engine.core.errors import ProjectValidationError
from workplan_engine.core.model import DEPENDENCY_TYPES, Task, project_from_dict
from workplan_engine.core.schedule.recalculate import earliest_start


# Work plan lint rules:
# - L_CYCLE_DETECTED: dependency cycle exists (reported once per cycle)
# - L_SELF_DEPENDENCY: task lists itself as predecessor
# - L_DANGLING_DEPENDENCY: predecessor id not found in the project
# - L_MISSING_DATES: task has only one of start/end
# - L_END_BEFORE_START: task ends before it starts
# - L_WP_ID_SEQUENCE: work package ids are not WP1..WPn in order
# - L_OUTSIDE_PROJECT_WINDOW: task outside project start/end
# - L_CONSTRAINT_VIOLATED: precedence constraint not met by current dates

_WP_ID_RE = re.compile(r"^WP(\d+)$")


def lint_project(raw: dict[str, Any]) -> list[ProjectValidationError]:
    """Lint a project.

    Runs on top of validation and works on partially-invalid input (best
    effort). Paths point at the normalized position of the task.
    """

    file = _cast_optional_str(raw.get("__file__"))
    project = project_from_dict(raw)
    errors: list[ProjectValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(ProjectValidationError(code=code, message=message, file=file, path=path))

    tasks_by_id: dict[str, Task] = {}
    path_by_id: dict[str, str] = {}
    for wi, wp in enumerate(project.work_packages):
        for ti, task in enumerate(wp.tasks):
            tasks_by_id.setdefault(task.id, task)
            path_by_id.setdefault(task.id, f"work_packages[{wi}].tasks[{ti}]")

    # Rule: work package numbering
    for wi, wp in enumerate(project.work_packages):
        expected = f"WP{wi + 1}"
        if wp.id != expected:
            m = _WP_ID_RE.match(wp.id)
            hint = "" if m else " (ids must look like WP<n>)"
            err(
                "L_WP_ID_SEQUENCE",
                f"work package id {wp.id} should be {expected}{hint}",
                f"work_packages[{wi}].id",
            )

    project_start = project.start_date
    project_end = project.end_date

    for tid, task in tasks_by_id.items():
        path = path_by_id[tid]

        if (task.start_date is None) != (task.end_date is None):
            err("L_MISSING_DATES", "task must set both start_date and end_date, or neither", path)

        if task.has_dates and task.end_date < task.start_date:  # type: ignore[operator]
            err(
                "L_END_BEFORE_START",
                f"end_date {task.end_date} is before start_date {task.start_date}",
                path,
            )

        if task.has_dates and project_start is not None and task.start_date < project_start:  # type: ignore[operator]
            err(
                "L_OUTSIDE_PROJECT_WINDOW",
                f"starts {task.start_date}, before the project start {project_start}",
                f"{path}.start_date",
            )
        if task.has_dates and project_end is not None and task.end_date > project_end:  # type: ignore[operator]
            err(
                "L_OUTSIDE_PROJECT_WINDOW",
                f"ends {task.end_date}, after the project end {project_end}",
                f"{path}.end_date",
            )

        for di, dep in enumerate(task.dependencies):
            d_path = f"{path}.dependencies[{di}]"
            if dep.predecessor_id == tid:
                err("L_SELF_DEPENDENCY", "task depends on itself", d_path)
                continue
            pred = tasks_by_id.get(dep.predecessor_id)
            if pred is None:
                err(
                    "L_DANGLING_DEPENDENCY",
                    f"predecessor {dep.predecessor_id} does not exist",
                    d_path,
                )
                continue
            msg = _constraint_violation(task, pred, dep.type)
            if msg:
                err("L_CONSTRAINT_VIOLATED", msg, d_path)

    id_to_deps = {
        tid: [d.predecessor_id for d in t.dependencies if d.predecessor_id != tid]
        for tid, t in tasks_by_id.items()
    }
    for tid, msg in _detect_cycles(id_to_deps):
        err("L_CYCLE_DETECTED", msg, f"{path_by_id[tid]}.dependencies")

    return _sorted(errors)


def _constraint_violation(task: Task, pred: Task, dep_type: str) -> Optional[str]:
    if not task.has_dates or not pred.has_dates:
        return None
    if dep_type not in DEPENDENCY_TYPES:
        return None
    offset = task.end_date - task.start_date  # type: ignore[operator]
    try:
        required = earliest_start(dep_type, pred.start_date, pred.end_date, offset)  # type: ignore[arg-type]
    except OverflowError:
        return f"{dep_type} on {pred.id} cannot be met before the end of the calendar"
    if task.start_date < required:  # type: ignore[operator]
        return f"{dep_type} on {pred.id} requires start on or after {required}, got {task.start_date}"
    return None


def _detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in id_to_deps.keys()}
    stack: list[str] = []
    emitted: set[frozenset[str]] = set()
    out: list[tuple[str, str]] = []

    def dfs(u: str) -> None:
        state[u] = GRAY
        stack.append(u)
        for v in id_to_deps.get(u, []):
            if v not in state:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                idx = stack.index(v)
                cycle = stack[idx:] + [v]
                key = frozenset(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                dfs(v)
        stack.pop()
        state[u] = BLACK

    for nid in list(state.keys()):
        if state[nid] == WHITE:
            dfs(nid)

    return out


def _sorted(errors: list[ProjectValidationError]) -> list[ProjectValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
