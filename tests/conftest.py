from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def _run_from_repo_root(monkeypatch):
    # Fixture paths like "examples/basic-project.yaml" are repo-relative.
    monkeypatch.chdir(REPO_ROOT)
