from __future__ import annotations

import json
import logging
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from workplan_engine.core.config.layout_config import LayoutConfigError, load_and_merge
from workplan_engine.core.errors import ProjectError, ProjectLoadError, ProjectValidationError
from workplan_engine.core.graph.build_graph import build_task_graph
from workplan_engine.core.graph.critical_path import find_critical_path
from workplan_engine.core.graph.network import build_network
from workplan_engine.core.io.load_project import dump_project, load_project
from workplan_engine.core.layout.timeline import VIEW_MODES, build_timeline
from workplan_engine.core.layout.viewport import ViewportFitController
from workplan_engine.core.lint.lint_project import lint_project
from workplan_engine.core.model import format_date, parse_iso_date, project_from_dict, project_to_dict
from workplan_engine.core.schedule.recalculate import TaskEdit, recalculate_schedule
from workplan_engine.core.validate.validate_project import summarize_project, validate_project

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine details to stderr"),
) -> None:
    """Work plan scheduling CLI."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a project file's shape and references."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    try:
        raw = load_project(path)
    except ProjectLoadError as e:
        if format == "json":
            _emit_json("validate", False, errors=[e], exit_code=1)
        _print_errors([e])
        raise typer.Exit(code=1)

    project, errors = validate_project(raw)
    if errors:
        if format == "json":
            _emit_json("validate", False, errors=errors, exit_code=2)
        _print_errors(errors)
        raise typer.Exit(code=2)

    assert project is not None

    if format == "text":
        typer.echo(summarize_project(project))
        return

    tasks = [t for _, t in project.iter_tasks()]
    summary = {
        "work_package_count": len(project.work_packages),
        "task_count": len(tasks),
        "dependency_count": sum(len(t.dependencies) for t in tasks),
    }
    _emit_json("validate", True, errors=[], exit_code=0, summary=summary)


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a project file (cycles, dangling references, date consistency)."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")

    try:
        raw = load_project(path)
    except ProjectLoadError as e:
        if format == "json":
            _emit_json("lint", False, errors=[e], exit_code=1)
        _print_errors([e])
        raise typer.Exit(code=1)

    _, validation_errors = validate_project(raw)
    errors: list[ProjectError] = lint_project(raw) + validation_errors

    if format == "json":
        _emit_json("lint", not errors, errors=errors, exit_code=2 if errors else 0)

    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("schedule")
def schedule(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    out: str = typer.Option(..., "--out", help="Where to write the recalculated project"),
    task: Optional[str] = typer.Option(None, "--task", help="Task id to edit before recalculating"),
    start: Optional[str] = typer.Option(None, "--start", help="New start date for --task (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="New end date for --task (YYYY-MM-DD)"),
    keep_duration: bool = typer.Option(
        False, "--keep-duration", help="Move --task as a block when only one date is given"
    ),
) -> None:
    """Recalculate task dates from their dependencies (forward pass)."""
    raw = _load_or_exit(path)

    edit: Optional[TaskEdit] = None
    if task is not None:
        start_d, end_d = parse_iso_date(start), parse_iso_date(end)
        if (start is not None and start_d is None) or (end is not None and end_d is None):
            _usage_error("E_SCHEDULE_INVALID_DATE", "--start/--end must be YYYY-MM-DD", "task")
        if start_d is None and end_d is None:
            _usage_error("E_SCHEDULE_NO_DATES", "--task needs --start and/or --end", "task")
        edit = TaskEdit(task_id=task, start_date=start_d, end_date=end_d, keep_duration=keep_duration)
    elif start is not None or end is not None:
        _usage_error("E_SCHEDULE_NO_TASK", "--start/--end require --task", "task")

    result = recalculate_schedule(project_from_dict(raw), edit)

    data = project_to_dict(result.project)
    dump_project(data, out)
    typer.echo(f"OK: wrote {out} (changed={len(result.changed)}, warnings={len(result.warnings)})")

    # Warnings are advisory: report them, never fail the run.
    for w in result.warnings:
        typer.echo(f"WARN: {w}", err=True)


@app.command("network")
def network(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    layout: str = typer.Option("screen", "--layout", help="Layout preset name"),
    layout_file: Optional[str] = typer.Option(
        None, "--layout-file", help="Optional YAML file to add/override layout presets"
    ),
    width: Optional[float] = typer.Option(None, "--width", help="Container width for fit scale"),
    height: Optional[float] = typer.Option(None, "--height", help="Container height for fit scale"),
) -> None:
    """Emit the precedence network (levels, coordinates, critical flags) as JSON."""
    raw = _load_or_exit(path)
    layouts = _layouts_or_exit(layout_file)
    if layout not in layouts:
        _usage_error(
            "E_NETWORK_UNKNOWN_LAYOUT",
            f"unknown layout: {layout} (choose one of: {', '.join(sorted(layouts))})",
            "layout",
        )

    view = build_network(project_from_dict(raw), layouts[layout])

    viewport = ViewportFitController()
    if width is not None and height is not None:
        viewport.resize(width, height)
    view.scale = viewport.set_diagram(view.width, view.height)

    typer.echo(json.dumps(view.to_dict(), indent=2, sort_keys=True))


@app.command("critical-path")
def critical_path(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
) -> None:
    """Show the tasks on the critical path."""
    raw = _load_or_exit(path)
    graph = build_task_graph(project_from_dict(raw))
    result = find_critical_path(graph)

    if not result.node_ids:
        typer.echo("No dated tasks: critical path is empty.")
        return

    table = Table(title="Critical path")
    table.add_column("Task")
    table.add_column("Title")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Days", justify="right")
    critical_nodes = [n for n in graph.nodes if n.id in result.node_ids]
    critical_nodes.sort(key=lambda n: (n.start_date is None, n.start_date or n.end_date, n.id))
    for n in critical_nodes:
        table.add_row(n.id, n.title, format_date(n.start_date), format_date(n.end_date), str(n.duration))
    console.print(table)


@app.command("timeline")
def timeline(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    view: str = typer.Option("project", "--view", help="View: " + "|".join(VIEW_MODES)),
) -> None:
    """Emit bar-chart rows and padded bounds as JSON."""
    if view not in VIEW_MODES:
        _usage_error(
            "E_TIMELINE_UNKNOWN_VIEW",
            f"unknown view: {view} (choose one of: {', '.join(VIEW_MODES)})",
            "view",
        )
    raw = _load_or_exit(path)
    result = build_timeline(project_from_dict(raw), view)
    typer.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))


@app.command("layouts")
def layouts(
    layout_file: Optional[str] = typer.Option(
        None, "--layout-file", help="Optional YAML file to add/override layout presets"
    ),
) -> None:
    """List available layout presets."""
    presets = _layouts_or_exit(layout_file)
    typer.echo("Layouts:")
    for name in sorted(presets):
        settings = ", ".join(f"{k}={v:g}" for k, v in presets[name].to_dict().items())
        typer.echo(f"- {name}: {settings}")


def _load_or_exit(path: str) -> dict[str, Any]:
    try:
        return load_project(path)
    except ProjectLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)


def _layouts_or_exit(layout_file: Optional[str]):
    try:
        return load_and_merge(layout_file)
    except FileNotFoundError:
        _print_errors(
            [
                ProjectLoadError(
                    code="E_LAYOUT_FILE_NOT_FOUND",
                    message=f"layout file not found: {layout_file}",
                    path="layout_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except LayoutConfigError as e:
        _usage_error("E_LAYOUT_FILE_INVALID", str(e), "layout_file")


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        _usage_error(code, f"unknown format: {format} (choose one of: text, json)", "format")


def _usage_error(code: str, message: str, path: str) -> None:
    _print_errors([ProjectValidationError(code=code, message=message, path=path)])
    raise typer.Exit(code=2)


def _emit_json(
    command: str,
    ok: bool,
    *,
    errors: list[ProjectError],
    exit_code: int,
    summary: Optional[dict] = None,
) -> None:
    payload = {
        "tool": "workplan",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": [e.to_dict() for e in sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))],
        "summary": summary,
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[ProjectError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="workplan")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
