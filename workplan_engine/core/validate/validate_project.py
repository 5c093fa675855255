from __future__ import annotations

from typing import Any, Iterable, Optional, cast

from workplan_engine.core.errors import ProjectValidationError
from workplan_engine.core.model import (
    DEPENDENCY_TYPES,
    Project,
    format_date,
    parse_iso_date,
    project_from_dict,
)


def _first_key(raw: dict[str, Any], *keys: str) -> Optional[str]:
    for k in keys:
        if k in raw:
            return k
    return None


def validate_project(
    raw: dict[str, Any],
) -> tuple[Optional[Project], list[ProjectValidationError]]:
    """Validate a raw project mapping.

    Returns (project, errors). Project is None when errors exist. Dependency
    references to unknown tasks are errors here even though the engine
    tolerates them.
    """

    file = cast(Optional[str], raw.get("__file__"))
    errors: list[ProjectValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(ProjectValidationError(code=code, message=message, file=file, path=path))

    start_key = _first_key(raw, "start_date", "startDate")
    if start_key and raw.get(start_key) not in (None, "") and parse_iso_date(raw[start_key]) is None:
        err("E_INVALID_DATE", "start_date must be an ISO-8601 date", start_key)

    duration_key = _first_key(raw, "duration_months", "durationMonths")
    if duration_key:
        dm = raw.get(duration_key)
        if dm is not None and (isinstance(dm, bool) or not isinstance(dm, int) or dm <= 0):
            err("E_INVALID_TYPE", "duration_months must be a positive integer", duration_key)

    wp_key = _first_key(raw, "work_packages", "activities") or "work_packages"
    wps = raw.get(wp_key)
    if not isinstance(wps, list):
        err("E_REQUIRED_FIELD", "work_packages is required and must be an array", wp_key)
        return None, _sorted(errors)

    task_ids: set[str] = set()
    deps_to_check: list[tuple[str, str]] = []  # (path, predecessor_id)

    for wi, wp in enumerate(wps):
        wp_path = f"{wp_key}[{wi}]"
        if not isinstance(wp, dict):
            err("E_INVALID_TYPE", "work package must be an object", wp_path)
            continue

        wid = wp.get("id")
        if wid is not None and (not isinstance(wid, str) or not wid.strip()):
            err("E_INVALID_TYPE", "id must be a non-empty string", f"{wp_path}.id")

        tasks = wp.get("tasks", [])
        if tasks is None:
            tasks = []
        if not isinstance(tasks, list):
            err("E_INVALID_TYPE", "tasks must be an array", f"{wp_path}.tasks")
            continue

        for ti, task in enumerate(tasks):
            t_path = f"{wp_path}.tasks[{ti}]"
            if not isinstance(task, dict):
                err("E_INVALID_TYPE", "task must be an object", t_path)
                continue

            tid = task.get("id")
            if not isinstance(tid, str) or not tid.strip():
                err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{t_path}.id")
                continue
            if tid in task_ids:
                err("E_DUPLICATE_ID", f"duplicate task id: {tid}", f"{t_path}.id")
                continue
            task_ids.add(tid)

            for keys in (("start_date", "startDate"), ("end_date", "endDate")):
                k = _first_key(task, *keys)
                if k is None or task.get(k) in (None, ""):
                    continue
                if parse_iso_date(task[k]) is None:
                    err("E_INVALID_DATE", f"{keys[0]} must be an ISO-8601 date", f"{t_path}.{k}")

            deps = task.get("dependencies", [])
            if deps is None:
                deps = []
            if not isinstance(deps, list):
                err("E_INVALID_TYPE", "dependencies must be an array", f"{t_path}.dependencies")
                continue

            for di, dep in enumerate(deps):
                d_path = f"{t_path}.dependencies[{di}]"
                if not isinstance(dep, dict):
                    err("E_INVALID_TYPE", "dependency must be an object", d_path)
                    continue
                pk = _first_key(dep, "predecessor_id", "predecessorId") or "predecessor_id"
                pred = dep.get(pk)
                if not isinstance(pred, str) or not pred.strip():
                    err(
                        "E_REQUIRED_FIELD",
                        "predecessor_id is required and must be a non-empty string",
                        f"{d_path}.{pk}",
                    )
                    continue
                dtype = dep.get("type", "FS")
                if not isinstance(dtype, str) or dtype.upper() not in DEPENDENCY_TYPES:
                    err(
                        "E_INVALID_ENUM",
                        f"type must be one of {list(DEPENDENCY_TYPES)}",
                        f"{d_path}.type",
                    )
                    continue
                deps_to_check.append((f"{d_path}.{pk}", pred.strip()))

        milestones = wp.get("milestones", [])
        if isinstance(milestones, list):
            for mi, ms in enumerate(milestones):
                if isinstance(ms, dict) and ms.get("date") not in (None, ""):
                    if parse_iso_date(ms["date"]) is None:
                        err(
                            "E_INVALID_DATE",
                            "date must be an ISO-8601 date",
                            f"{wp_path}.milestones[{mi}].date",
                        )
        elif milestones is not None:
            err("E_INVALID_TYPE", "milestones must be an array", f"{wp_path}.milestones")

    # Referential integrity.
    for path, pred in deps_to_check:
        if pred not in task_ids:
            err("E_UNKNOWN_DEPENDENCY", f"dependency references unknown task: {pred}", path)

    if errors:
        return None, _sorted(errors)
    return project_from_dict(raw), []


def summarize_project(project: Project) -> str:
    tasks = [t for _, t in project.iter_tasks()]
    milestones = sum(len(wp.milestones) for wp in project.work_packages)
    deps = sum(len(t.dependencies) for t in tasks)
    starts = [t.start_date for t in tasks if t.start_date is not None]
    ends = [t.end_date for t in tasks if t.end_date is not None]

    lines = [
        f"OK: {len(project.work_packages)} work packages, {len(tasks)} tasks, "
        f"{milestones} milestones, {deps} dependencies"
    ]
    if starts and ends:
        lines.append(f"Span: {format_date(min(starts))} .. {format_date(max(ends))}")
    return "\n".join(lines)


def _sorted(errors: Iterable[ProjectValidationError]) -> list[ProjectValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
