from workplan_engine.core.io.load_project import load_project
from workplan_engine.core.lint.lint_project import lint_project


def _codes(errors):
    return sorted(e.code for e in errors)


def test_lint_clean_project():
    assert lint_project(load_project("examples/basic-project.yaml")) == []


def test_lint_cycle_reported_once():
    errors = lint_project(load_project("examples/cyclic-project.yaml"))
    cycles = [e for e in errors if e.code == "L_CYCLE_DETECTED"]
    assert len(cycles) == 1
    assert "dependency cycle detected" in cycles[0].message
    assert "L_CONSTRAINT_VIOLATED" in _codes(errors)


def test_lint_dangling_dependency():
    errors = lint_project(load_project("examples/dangling-dependency.yaml"))
    assert _codes(errors) == ["L_DANGLING_DEPENDENCY"]


def test_lint_violated_constraints():
    errors = lint_project(load_project("examples/unscheduled-project.yaml"))
    violated = [e for e in errors if e.code == "L_CONSTRAINT_VIOLATED"]
    assert [e.path for e in violated] == [
        "work_packages[0].tasks[1].dependencies[0]",
        "work_packages[0].tasks[2].dependencies[0]",
    ]


def test_lint_dates_and_numbering():
    raw = {
        "start_date": "2024-01-01",
        "duration_months": 1,
        "work_packages": [
            {
                "id": "WP2",
                "tasks": [
                    {"id": "A", "start_date": "2024-01-10", "end_date": "2024-01-05"},
                    {"id": "B", "start_date": "2024-01-10"},
                    {"id": "C", "start_date": "2023-12-20", "end_date": "2024-02-10"},
                    {"id": "D", "dependencies": [{"predecessor_id": "D", "type": "FS"}]},
                ],
            }
        ],
    }
    codes = _codes(lint_project(raw))
    assert codes == [
        "L_END_BEFORE_START",
        "L_MISSING_DATES",
        "L_OUTSIDE_PROJECT_WINDOW",
        "L_OUTSIDE_PROJECT_WINDOW",
        "L_SELF_DEPENDENCY",
        "L_WP_ID_SEQUENCE",
    ]


def test_lint_tolerates_malformed_input():
    assert lint_project({"work_packages": "nope"}) == []


def test_lint_huge_duration_has_no_project_end():
    raw = {
        "start_date": "2024-01-01",
        "duration_months": 200000,
        "work_packages": [
            {"id": "WP1", "tasks": [{"id": "A", "start_date": "2024-01-01", "end_date": "2030-01-01"}]}
        ],
    }
    assert lint_project(raw) == []


def test_lint_constraint_past_calendar_end():
    raw = {
        "work_packages": [
            {
                "id": "WP1",
                "tasks": [
                    {"id": "A", "start_date": "9999-12-30", "end_date": "9999-12-31"},
                    {
                        "id": "B",
                        "start_date": "9999-12-30",
                        "end_date": "9999-12-31",
                        "dependencies": [{"predecessor_id": "A", "type": "FS"}],
                    },
                ],
            }
        ]
    }
    errors = lint_project(raw)
    assert _codes(errors) == ["L_CONSTRAINT_VIOLATED"]
    assert "end of the calendar" in errors[0].message
