from pathlib import Path

import yaml
from typer.testing import CliRunner

from workplan_engine.cli import app
from workplan_engine.core.lint.lint_project import lint_project

runner = CliRunner()


def _load_yaml(p: Path) -> dict:
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def _task(data: dict, task_id: str) -> dict:
    for wp in data["work_packages"]:
        for t in wp["tasks"]:
            if t["id"] == task_id:
                return t
    raise KeyError(task_id)


def test_schedule_repairs_overlaps(tmp_path: Path):
    out = tmp_path / "scheduled.yaml"
    r = runner.invoke(app, ["schedule", "examples/unscheduled-project.yaml", "--out", str(out)])
    assert r.exit_code == 0, r.output
    assert "changed=2" in r.stdout

    data = _load_yaml(out)
    assert (_task(data, "T1.2")["start_date"], _task(data, "T1.2")["end_date"]) == ("2024-01-11", "2024-01-15")
    assert (_task(data, "T1.3")["start_date"], _task(data, "T1.3")["end_date"]) == ("2024-01-13", "2024-01-15")
    assert not [e for e in lint_project(data) if e.code == "L_CONSTRAINT_VIOLATED"]


def test_schedule_is_idempotent(tmp_path: Path):
    a = tmp_path / "a.yaml"
    b = tmp_path / "b.yaml"
    r1 = runner.invoke(app, ["schedule", "examples/unscheduled-project.yaml", "--out", str(a)])
    assert r1.exit_code == 0, r1.output
    r2 = runner.invoke(app, ["schedule", str(a), "--out", str(b)])
    assert r2.exit_code == 0, r2.output
    assert "changed=0" in r2.stdout
    assert _load_yaml(a) == _load_yaml(b)


def test_schedule_with_edit(tmp_path: Path):
    out = tmp_path / "edited.yaml"
    r = runner.invoke(
        app,
        ["schedule", "examples/basic-project.yaml", "--out", str(out), "--task", "T1.1", "--end", "2024-01-08"],
    )
    assert r.exit_code == 0, r.output
    data = _load_yaml(out)
    assert _task(data, "T1.2")["start_date"] == "2024-01-09"
    assert _task(data, "T1.3")["start_date"] == "2024-01-14"
    assert _task(data, "T1.3")["end_date"] == "2024-01-18"


def test_schedule_warnings_do_not_fail(tmp_path: Path):
    out = tmp_path / "cyclic.json"
    r = runner.invoke(app, ["schedule", "examples/cyclic-project.yaml", "--out", str(out)])
    assert r.exit_code == 0, r.output
    assert "WARN: A: part of a dependency cycle" in r.output
    assert out.exists()


def test_schedule_rejects_dates_without_task(tmp_path: Path):
    r = runner.invoke(
        app, ["schedule", "examples/basic-project.yaml", "--out", str(tmp_path / "x.yaml"), "--start", "2024-01-02"]
    )
    assert r.exit_code == 2
    assert "E_SCHEDULE_NO_TASK" in r.output


def test_schedule_rejects_bad_date(tmp_path: Path):
    r = runner.invoke(
        app,
        ["schedule", "examples/basic-project.yaml", "--out", str(tmp_path / "x.yaml"), "--task", "T1.1", "--start", "soon"],
    )
    assert r.exit_code == 2
    assert "E_SCHEDULE_INVALID_DATE" in r.output
