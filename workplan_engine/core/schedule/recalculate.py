from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Any, Optional, Union

from workplan_engine.core.graph.build_graph import build_task_graph
from workplan_engine.core.graph.levels import assign_levels, find_cyclic_nodes, topological_order
from workplan_engine.core.model import (
    DEPENDENCY_TYPES,
    ONE_DAY,
    Project,
    Task,
    WorkPackage,
    project_from_dict,
)

logger = logging.getLogger(__name__)

DatePair = tuple[Optional[date], Optional[date]]


@dataclass(frozen=True)
class TaskEdit:
    """A date edit made in the editor.

    Setting both endpoints replaces both. Setting one keeps the other fixed
    (the duration follows the edit) unless `keep_duration` is set, in which
    case the task moves as a block.
    """

    task_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    keep_duration: bool = False


@dataclass
class ScheduleResult:
    project: Project
    warnings: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)


def earliest_start(dep_type: str, pred_start: date, pred_end: date, offset: timedelta) -> date:
    """Earliest successor start allowed by one dependency.

    `offset` is the successor's end - start; end-side constraints are turned
    into start dates with it.
    """
    if dep_type == "FS":
        return pred_end + ONE_DAY
    if dep_type == "SS":
        return pred_start
    if dep_type == "FF":
        return pred_end - offset
    if dep_type == "SF":
        return pred_start - offset
    raise ValueError(f"unknown dependency type: {dep_type}")


def recalculate_schedule(
    project: Union[Project, dict[str, Any], None],
    edit: Optional[TaskEdit] = None,
) -> ScheduleResult:
    """Forward pass: push every dated task to its earliest consistent dates.

    Tasks are visited in level order so each one sees settled predecessors.
    Tasks only ever move later and keep their duration, so a settled schedule
    is returned unchanged. Anything that cannot be satisfied becomes a
    warning and the task keeps its last valid dates.
    """
    if not isinstance(project, Project):
        project = project_from_dict(project)

    warnings: list[str] = []
    changed: list[str] = []

    dates: dict[str, DatePair] = {}
    for _, task in project.iter_tasks():
        dates.setdefault(task.id, (task.start_date, task.end_date))

    if edit is not None and _apply_edit(dates, edit, warnings):
        changed.append(edit.task_id)

    graph = build_task_graph(project)
    levels = assign_levels(graph)
    cyclic = find_cyclic_nodes(graph)
    project_start = project.start_date
    project_end = project.end_date

    for task_id in topological_order(graph, levels):
        start, end = dates[task_id]
        if start is None or end is None:
            continue
        if end < start:
            warnings.append(
                f"{task_id}: ends ({end}) before it starts ({start}); dates left unchanged"
            )
            continue
        if task_id in cyclic:
            warnings.append(f"{task_id}: part of a dependency cycle; dates left unchanged")
            continue

        offset = end - start
        required = start
        blocked = False
        if project_start is not None and required < project_start:
            required = project_start

        for dep in graph.nodes_by_id[task_id].dependencies:
            if dep.type not in DEPENDENCY_TYPES:
                warnings.append(
                    f"{task_id}: unknown dependency type '{dep.type}' on {dep.predecessor_id}; ignored"
                )
                continue
            pred = dates.get(dep.predecessor_id)
            if pred is None:
                warnings.append(f"{task_id}: depends on unknown task {dep.predecessor_id}")
                continue
            pred_start, pred_end = pred
            if pred_start is None or pred_end is None:
                warnings.append(
                    f"{task_id}: predecessor {dep.predecessor_id} has no dates; {dep.type} constraint skipped"
                )
                continue
            try:
                candidate = earliest_start(dep.type, pred_start, pred_end, offset)
            except OverflowError:
                warnings.append(
                    f"{task_id}: {dep.type} on {dep.predecessor_id} falls outside the calendar; dates left unchanged"
                )
                blocked = True
                break
            if candidate > required:
                required = candidate

        if blocked:
            continue
        if required != start:
            try:
                new_end = required + offset
            except OverflowError:
                warnings.append(
                    f"{task_id}: moving to {required} would end past the calendar; dates left unchanged"
                )
                continue
            dates[task_id] = (required, new_end)
            if task_id not in changed:
                changed.append(task_id)
            logger.debug("moved %s: %s -> %s", task_id, start, required)

        new_end = dates[task_id][1]
        if project_end is not None and new_end is not None and new_end > project_end:
            warnings.append(
                f"{task_id}: ends {new_end}, after the project end {project_end}"
            )

    for w in warnings:
        logger.info("schedule warning: %s", w)

    return ScheduleResult(
        project=_with_dates(project, dates),
        warnings=warnings,
        changed=changed,
    )


def _apply_edit(dates: dict[str, DatePair], edit: TaskEdit, warnings: list[str]) -> bool:
    if edit.task_id not in dates:
        warnings.append(f"{edit.task_id}: edit targets an unknown task; ignored")
        return False

    start, end = dates[edit.task_id]
    if edit.start_date is not None and edit.end_date is not None:
        new_start, new_end = edit.start_date, edit.end_date
    elif edit.start_date is not None:
        new_start = edit.start_date
        new_end = end
        if edit.keep_duration and start is not None and end is not None:
            new_end = _shifted(new_start, end - start)
    elif edit.end_date is not None:
        new_end = edit.end_date
        new_start = start
        if edit.keep_duration and start is not None and end is not None:
            new_start = _shifted(new_end, start - end)
    else:
        return False

    if edit.keep_duration and start is not None and end is not None and None in (new_start, new_end):
        warnings.append(f"{edit.task_id}: edit moves the task outside the calendar; rejected")
        return False

    if new_start is not None and new_end is not None and new_end < new_start:
        warnings.append(
            f"{edit.task_id}: edit would end ({new_end}) before start ({new_start}); rejected"
        )
        return False

    if (new_start, new_end) == (start, end):
        return False
    dates[edit.task_id] = (new_start, new_end)
    return True


def _shifted(day: date, delta: timedelta) -> Optional[date]:
    try:
        return day + delta
    except OverflowError:
        return None


def _with_dates(project: Project, dates: dict[str, DatePair]) -> Project:
    seen: set[str] = set()

    def _task(t: Task) -> Task:
        if t.id in seen:
            return t
        seen.add(t.id)
        start, end = dates[t.id]
        if (start, end) == (t.start_date, t.end_date):
            return t
        return replace(t, start_date=start, end_date=end)

    wps: list[WorkPackage] = [
        replace(wp, tasks=tuple(_task(t) for t in wp.tasks)) for wp in project.work_packages
    ]
    return replace(project, work_packages=tuple(wps))
