from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import yaml

from workplan_engine.core.errors import ProjectLoadError

# suffix -> (parser, parse error code)
_READERS: dict[str, tuple[Callable[[str], Any], str]] = {
    ".yaml": (yaml.safe_load, "E_YAML_PARSE"),
    ".yml": (yaml.safe_load, "E_YAML_PARSE"),
    ".json": (json.loads, "E_JSON_PARSE"),
}


def load_project(path: str) -> dict[str, Any]:
    """Read a project document saved by the editor or written by hand.

    The mapping comes back untouched apart from `__file__`, which error
    envelopes use for their location.
    """
    p = Path(path)
    if not p.exists():
        raise ProjectLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))

    reader = _READERS.get(p.suffix.lower())
    if reader is None:
        raise ProjectLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message=f"supported formats are {', '.join(sorted(_READERS))}",
            file=str(p),
        )
    parse, parse_code = reader

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ProjectLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        data = parse(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ProjectLoadError(code=parse_code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise ProjectLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="a project document must be a mapping with work_packages",
            file=str(p),
        )
    return {**data, "__file__": str(p)}


def dump_project(data: dict[str, Any], path: str) -> None:
    """Write a project mapping as YAML or JSON, chosen by suffix."""
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    clean = {k: v for k, v in data.items() if k != "__file__"}
    if p.suffix.lower() == ".json":
        p.write_text(json.dumps(clean, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        return
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(clean, f, sort_keys=False, default_flow_style=False, allow_unicode=True)
