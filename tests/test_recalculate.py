from datetime import date

from workplan_engine.core.model import project_from_dict, project_to_dict
from workplan_engine.core.schedule.recalculate import TaskEdit, recalculate_schedule


def _task(tid, start, end, *deps):
    return {
        "id": tid,
        "start_date": start,
        "end_date": end,
        "dependencies": [{"predecessor_id": p, "type": t} for p, t in deps],
    }


def _project(*tasks, **extra):
    raw = {"work_packages": [{"id": "WP1", "tasks": list(tasks)}]}
    raw.update(extra)
    return project_from_dict(raw)


def _dates(project):
    return {t.id: (t.start_date, t.end_date) for _, t in project.iter_tasks()}


def _chain():
    return _project(
        _task("A", "2024-01-01", "2024-01-05"),
        _task("B", "2024-01-06", "2024-01-10", ("A", "FS")),
        _task("C", "2024-01-11", "2024-01-15", ("B", "FS")),
    )


def test_consistent_schedule_is_untouched():
    result = recalculate_schedule(_chain())
    assert result.warnings == []
    assert result.changed == []
    assert result.project == _chain()


def test_editing_end_pushes_dependents_and_keeps_durations():
    result = recalculate_schedule(_chain(), TaskEdit("A", end_date=date(2024, 1, 8)))
    dates = _dates(result.project)
    assert dates["A"] == (date(2024, 1, 1), date(2024, 1, 8))
    assert dates["B"] == (date(2024, 1, 9), date(2024, 1, 13))
    assert dates["C"] == (date(2024, 1, 14), date(2024, 1, 18))
    assert result.changed == ["A", "B", "C"]
    assert result.warnings == []


def test_keep_duration_moves_edited_task_as_block():
    result = recalculate_schedule(
        _chain(), TaskEdit("A", start_date=date(2024, 1, 3), keep_duration=True)
    )
    dates = _dates(result.project)
    assert dates["A"] == (date(2024, 1, 3), date(2024, 1, 7))
    assert dates["B"][0] == date(2024, 1, 8)


def test_ss_dependency_ignores_predecessor_end():
    project = _project(
        _task("A", "2024-01-01", "2024-01-05"),
        _task("D", "2023-12-20", "2023-12-22", ("A", "SS")),
    )
    result = recalculate_schedule(project)
    assert _dates(result.project)["D"] == (date(2024, 1, 1), date(2024, 1, 3))


def test_ff_and_sf_constrain_the_end():
    project = _project(
        _task("P", "2024-02-01", "2024-02-10"),
        _task("F", "2024-01-01", "2024-01-04", ("P", "FF")),
        _task("S", "2024-01-01", "2024-01-04", ("P", "SF")),
    )
    dates = _dates(recalculate_schedule(project).project)
    assert dates["F"] == (date(2024, 2, 7), date(2024, 2, 10))
    assert dates["S"] == (date(2024, 1, 29), date(2024, 2, 1))


def test_tightest_constraint_wins():
    project = _project(
        _task("A", "2024-01-01", "2024-01-05"),
        _task("B", "2024-01-01", "2024-01-20"),
        _task("C", "2024-01-02", "2024-01-03", ("A", "FS"), ("B", "FS")),
    )
    assert _dates(recalculate_schedule(project).project)["C"] == (date(2024, 1, 21), date(2024, 1, 22))


def test_constraints_hold_after_recalculation():
    project = _project(
        _task("A", "2024-01-01", "2024-01-10"),
        _task("B", "2024-01-02", "2024-01-04", ("A", "FS")),
        _task("C", "2023-12-01", "2023-12-05", ("B", "SS")),
        _task("D", "2024-01-01", "2024-01-02", ("C", "FF"), ("A", "SF")),
    )
    result = recalculate_schedule(project)
    assert result.warnings == []
    d = _dates(result.project)
    assert d["B"][0] > d["A"][1]
    assert d["C"][0] >= d["B"][0]
    assert d["D"][1] >= d["C"][1]
    assert d["D"][1] >= d["A"][0]


def test_recalculation_is_idempotent():
    project = _project(
        _task("A", "2024-01-01", "2024-01-10"),
        _task("B", "2024-01-02", "2024-01-04", ("A", "FS")),
        _task("C", "2024-01-01", "2024-01-02", ("B", "FF")),
    )
    once = recalculate_schedule(project)
    twice = recalculate_schedule(once.project)
    assert twice.project == once.project
    assert twice.changed == []
    assert project_to_dict(twice.project) == project_to_dict(once.project)


def test_project_start_is_a_lower_bound():
    project = _project(_task("A", "2023-12-01", "2023-12-05"), start_date="2024-01-01")
    assert _dates(recalculate_schedule(project).project)["A"] == (date(2024, 1, 1), date(2024, 1, 5))


def test_overrunning_project_end_is_a_warning():
    project = _project(
        _task("A", "2024-01-01", "2024-02-15"),
        start_date="2024-01-01",
        duration_months=1,
    )
    result = recalculate_schedule(project)
    assert _dates(result.project)["A"] == (date(2024, 1, 1), date(2024, 2, 15))
    assert any("after the project end 2024-01-31" in w for w in result.warnings)


def test_cycle_is_a_warning_and_dates_are_kept():
    project = _project(
        _task("A", "2024-01-01", "2024-01-05", ("B", "FS")),
        _task("B", "2024-01-02", "2024-01-06", ("A", "FS")),
        _task("C", "2024-01-01", "2024-01-02", ("B", "FS")),
    )
    result = recalculate_schedule(project)
    dates = _dates(result.project)
    assert dates["A"] == (date(2024, 1, 1), date(2024, 1, 5))
    assert dates["B"] == (date(2024, 1, 2), date(2024, 1, 6))
    # C still follows its (cyclic) predecessor's current dates.
    assert dates["C"] == (date(2024, 1, 7), date(2024, 1, 8))
    assert sum("dependency cycle" in w for w in result.warnings) == 2


def test_unresolvable_references_become_warnings():
    project = _project(
        _task("A", None, None),
        _task("B", "2024-01-01", "2024-01-02", ("GHOST", "FS"), ("A", "FS"), ("A", "XX")),
    )
    result = recalculate_schedule(project)
    assert _dates(result.project)["B"] == (date(2024, 1, 1), date(2024, 1, 2))
    joined = "\n".join(result.warnings)
    assert "unknown task GHOST" in joined
    assert "predecessor A has no dates" in joined
    assert "unknown dependency type 'XX'" in joined


def test_inverted_edit_is_rejected():
    result = recalculate_schedule(_chain(), TaskEdit("B", end_date=date(2024, 1, 1)))
    assert _dates(result.project)["B"] == (date(2024, 1, 6), date(2024, 1, 10))
    assert any("rejected" in w for w in result.warnings)


def test_edit_of_unknown_task_is_a_warning():
    result = recalculate_schedule(_chain(), TaskEdit("Z", start_date=date(2024, 1, 1)))
    assert result.changed == []
    assert any("unknown task" in w for w in result.warnings)


def test_empty_input_returns_empty_result():
    result = recalculate_schedule(None)
    assert result.project.work_packages == ()
    assert result.warnings == []


def test_huge_duration_leaves_project_open_ended():
    project = _project(
        _task("A", "2024-01-01", "2024-01-05"),
        _task("B", "2024-01-02", "2024-01-03", ("A", "FS")),
        start_date="2024-01-01",
        duration_months=200000,
    )
    assert project.end_date is None
    result = recalculate_schedule(project)
    assert _dates(result.project)["B"] == (date(2024, 1, 6), date(2024, 1, 7))
    assert result.warnings == []


def test_constraint_past_calendar_end_is_a_warning():
    project = _project(
        _task("A", "9999-12-30", "9999-12-31"),
        _task("B", "9999-12-30", "9999-12-31", ("A", "FS")),
    )
    result = recalculate_schedule(project)
    assert result.changed == []
    assert _dates(result.project)["B"] == (date(9999, 12, 30), date(9999, 12, 31))
    assert any("B:" in w and "calendar" in w for w in result.warnings)


def test_shift_past_calendar_end_is_a_warning():
    project = _project(
        _task("A", "9999-12-20", "9999-12-25"),
        _task("B", "9999-12-01", "9999-12-31", ("A", "SS")),
    )
    result = recalculate_schedule(project)
    assert result.changed == []
    assert _dates(result.project)["B"] == (date(9999, 12, 1), date(9999, 12, 31))
    assert any("B:" in w and "calendar" in w for w in result.warnings)


def test_block_move_past_calendar_end_is_rejected():
    project = _project(_task("A", "2024-01-01", "2024-01-10"))
    edit = TaskEdit("A", start_date=date(9999, 12, 30), keep_duration=True)
    result = recalculate_schedule(project, edit)
    assert result.changed == []
    assert _dates(result.project)["A"] == (date(2024, 1, 1), date(2024, 1, 10))
    assert any("outside the calendar" in w for w in result.warnings)
