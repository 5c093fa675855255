from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class LayoutConfig:
    """Spacing for the precedence-network diagram, in layout units."""

    node_width: float = 180
    node_height: float = 80
    horizontal_gap: float = 100
    vertical_gap: float = 40
    margin: float = 50
    minimum_height: float = 500

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ViewportConfig:
    fit_padding: float = 40
    min_zoom: float = 0.2
    max_zoom: float = 2.0
    zoom_step: float = 0.1


DEFAULT_LAYOUTS: dict[str, LayoutConfig] = {
    # Interactive screen rendering; keep stable for golden tests.
    "screen": LayoutConfig(),
    # Export-to-image: roomier boxes so labels survive downscaling.
    "export": LayoutConfig(
        node_width=220,
        node_height=96,
        horizontal_gap=120,
        vertical_gap=48,
        margin=60,
        minimum_height=600,
    ),
}

_FIELD_NAMES = {f.name for f in fields(LayoutConfig)}


class LayoutConfigError(ValueError):
    pass


def load_layout_file(path: str | Path) -> dict[str, LayoutConfig]:
    """Load layout presets from a YAML file.

    Format:
      <name>:
        node_width: 200
        vertical_gap: 30

    Unspecified fields fall back to the `screen` preset (or the existing
    preset of the same name when merged).
    """
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise LayoutConfigError(f"layout file is not valid YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise LayoutConfigError("layout file must be a mapping of name -> settings")

    out: dict[str, LayoutConfig] = {}
    for name, settings in raw.items():
        if not isinstance(name, str) or not name.strip():
            raise LayoutConfigError("layout names must be non-empty strings")
        if not isinstance(settings, dict):
            raise LayoutConfigError(f"layout '{name}' must be a mapping of field -> number")
        base = DEFAULT_LAYOUTS.get(name.strip(), DEFAULT_LAYOUTS["screen"])
        out[name.strip()] = replace(base, **_coerce_settings(name, settings))
    return out


def _coerce_settings(name: str, settings: dict[Any, Any]) -> dict[str, float]:
    values: dict[str, float] = {}
    for key, value in settings.items():
        if key not in _FIELD_NAMES:
            raise LayoutConfigError(
                f"layout '{name}' has unknown field '{key}' (allowed: {', '.join(sorted(_FIELD_NAMES))})"
            )
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise LayoutConfigError(f"layout '{name}' field '{key}' must be a number")
        if key != "margin" and value <= 0:
            raise LayoutConfigError(f"layout '{name}' field '{key}' must be positive")
        if value < 0:
            raise LayoutConfigError(f"layout '{name}' field '{key}' must not be negative")
        values[key] = value
    return values


def merged_layouts(overrides: dict[str, LayoutConfig] | None = None) -> dict[str, LayoutConfig]:
    merged = dict(DEFAULT_LAYOUTS)
    if overrides:
        merged.update(overrides)
    return merged


def load_and_merge(layout_file: str | None) -> dict[str, LayoutConfig]:
    if not layout_file:
        return merged_layouts()
    return merged_layouts(load_layout_file(layout_file))
