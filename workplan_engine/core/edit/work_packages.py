from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional

from workplan_engine.core.errors import ProjectEditError
from workplan_engine.core.model import (
    DEPENDENCY_TYPES,
    Dependency,
    DependencyType,
    Project,
    Task,
    WorkPackage,
)


def renumber_work_packages(work_packages: tuple[WorkPackage, ...]) -> tuple[WorkPackage, ...]:
    """Assign sequential ids WP1..WPn in current order."""
    return tuple(
        wp if wp.id == f"WP{i + 1}" else replace(wp, id=f"WP{i + 1}")
        for i, wp in enumerate(work_packages)
    )


def insert_work_package(
    project: Project, work_package: WorkPackage, index: Optional[int] = None
) -> Project:
    wps = list(project.work_packages)
    if index is None:
        index = len(wps)
    _check_index(index, len(wps) + 1, "index")
    wps.insert(index, work_package)
    return replace(project, work_packages=renumber_work_packages(tuple(wps)))


def remove_work_package(project: Project, index: int) -> Project:
    """Drop a work package with its tasks.

    Dependencies elsewhere that pointed at the removed tasks are kept as-is.
    """
    wps = list(project.work_packages)
    _check_index(index, len(wps), "index")
    del wps[index]
    return replace(project, work_packages=renumber_work_packages(tuple(wps)))


def move_work_package(project: Project, from_index: int, to_index: int) -> Project:
    wps = list(project.work_packages)
    _check_index(from_index, len(wps), "from_index")
    _check_index(to_index, len(wps), "to_index")
    wp = wps.pop(from_index)
    wps.insert(to_index, wp)
    return replace(project, work_packages=renumber_work_packages(tuple(wps)))


def remove_task(project: Project, task_id: str) -> Project:
    wi, _ = _locate(project, task_id)
    wp = project.work_packages[wi]
    return _replace_wp(project, wi, replace(wp, tasks=tuple(t for t in wp.tasks if t.id != task_id)))


def set_task_dates(
    project: Project, task_id: str, start_date: Optional[date], end_date: Optional[date]
) -> Project:
    """Store dates verbatim; run the schedule recalculation afterwards."""
    return _update_task(
        project, task_id, lambda t: replace(t, start_date=start_date, end_date=end_date)
    )


def add_dependency(
    project: Project, task_id: str, predecessor_id: str, dep_type: DependencyType = "FS"
) -> Project:
    dep_type = dep_type.upper()
    if dep_type not in DEPENDENCY_TYPES:
        raise ProjectEditError(
            code="E_EDIT_INVALID_TYPE",
            message=f"dependency type must be one of {list(DEPENDENCY_TYPES)}, got {dep_type}",
            path=f"{task_id}.dependencies",
            task_id=task_id,
        )
    if predecessor_id == task_id:
        raise ProjectEditError(
            code="E_EDIT_SELF_DEPENDENCY",
            message="a task cannot depend on itself",
            path=f"{task_id}.dependencies",
            task_id=task_id,
        )
    _locate(project, predecessor_id)

    def _add(t: Task) -> Task:
        kept = tuple(d for d in t.dependencies if d.predecessor_id != predecessor_id)
        return replace(t, dependencies=kept + (Dependency(predecessor_id, dep_type),))

    return _update_task(project, task_id, _add)


def remove_dependency(project: Project, task_id: str, predecessor_id: str) -> Project:
    return _update_task(
        project,
        task_id,
        lambda t: replace(
            t, dependencies=tuple(d for d in t.dependencies if d.predecessor_id != predecessor_id)
        ),
    )


def _update_task(project: Project, task_id: str, fn) -> Project:
    wi, ti = _locate(project, task_id)
    wp = project.work_packages[wi]
    tasks = list(wp.tasks)
    tasks[ti] = fn(tasks[ti])
    return _replace_wp(project, wi, replace(wp, tasks=tuple(tasks)))


def _replace_wp(project: Project, index: int, wp: WorkPackage) -> Project:
    wps = list(project.work_packages)
    wps[index] = wp
    return replace(project, work_packages=tuple(wps))


def _locate(project: Project, task_id: str) -> tuple[int, int]:
    for wi, wp in enumerate(project.work_packages):
        for ti, t in enumerate(wp.tasks):
            if t.id == task_id:
                return wi, ti
    raise ProjectEditError(
        code="E_EDIT_UNKNOWN_TASK",
        message=f"unknown task id: {task_id}",
        path=task_id,
        task_id=task_id,
    )


def _check_index(index: int, size: int, name: str) -> None:
    if not 0 <= index < size:
        raise ProjectEditError(
            code="E_EDIT_INDEX_OUT_OF_RANGE",
            message=f"{name} {index} out of range (0..{size - 1})",
            path=name,
        )
