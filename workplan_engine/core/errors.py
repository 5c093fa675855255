from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ProjectError(Exception):
    """Error envelope shared by loading, validation, lint and editing.

    `path` points into the project document (e.g. `work_packages[0].tasks[1]`)
    or names the offending CLI option.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    @property
    def source(self) -> str:
        return "lint" if self.code.startswith("L_") else "validate"

    def location(self) -> str:
        parts = [p for p in (self.file, self.path) if p]
        return ":".join(parts) if parts else "<project>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "severity": "error",
            "source": self.source,
        }

    def __str__(self) -> str:
        return f"{self.location()}: {self.code}: {self.message}"


class ProjectLoadError(ProjectError):
    @property
    def source(self) -> str:
        return "load"


class ProjectValidationError(ProjectError):
    pass


@dataclass(frozen=True)
class ProjectEditError(ProjectError):
    """Rejected edit; the project passed in is left as it was."""

    task_id: Optional[str] = None

    @property
    def source(self) -> str:
        return "edit"

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["task_id"] = self.task_id
        return out
