"""Loading scene parameters from JSON.

A settings document has optional top-level blocks, each mapping to one frozen
parameter dataclass::

    {
        "shape":   {"power": 8, "bailout": 2.0, "max_iterations": 10},
        "trace":   {"epsilon": 0.03, "max_steps": 64},
        "shadow":  {"max_steps": 10},
        "extract": {"max_depth": 5},
        "light":   {"direction": [-0.4, -0.8, -0.45], "strength": 1.0},
        "material": {"ambient": 0.15}
    }

Missing blocks and keys keep their defaults; unknown ones are rejected.
"""
from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mandelscape.errors import InvalidConfigError
from mandelscape.mesh.config import ExtractParams
from mandelscape.raymarch.config import TraceParams
from mandelscape.shading import Light, Material
from mandelscape.shape.base import ShapeParams

logger = logging.getLogger(__name__)

_TUPLE_FIELDS = {"direction", "color", "base_color", "far_color"}


@dataclass(frozen=True, slots=True)
class Settings:
    shape: ShapeParams = field(default_factory=ShapeParams)
    trace: TraceParams = field(default_factory=TraceParams)
    shadow: TraceParams = field(default_factory=TraceParams.shadow)
    extract: ExtractParams = field(default_factory=ExtractParams)
    light: Light = field(default_factory=Light)
    material: Material = field(default_factory=Material)

    def validate(self) -> Settings:
        self.shape.validate()
        self.trace.validate()
        self.shadow.validate()
        self.extract.validate()
        self.light.validate()
        self.material.validate()
        if self.extract.iso_level <= self.shape.distance_floor:
            msg = (
                f"extract.iso_level ({self.extract.iso_level}) must exceed "
                f"shape.distance_floor ({self.shape.distance_floor})"
            )
            raise InvalidConfigError(msg)
        return self


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _check_value(name: str, key: str, value: Any, default: Any) -> None:
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)) or len(value) != len(default) or not all(map(_is_number, value)):
            msg = f"'{name}.{key}' must be a list of {len(default)} numbers, got {value!r}"
            raise InvalidConfigError(msg)
    elif value is None:
        if default is not None:
            msg = f"'{name}.{key}' cannot be null"
            raise InvalidConfigError(msg)
    elif not _is_number(value):
        msg = f"'{name}.{key}' must be a number, got {type(value).__name__}"
        raise InvalidConfigError(msg)


def _build(cls: type, base: Any, block: Any, name: str) -> Any:
    if not isinstance(block, dict):
        msg = f"settings block '{name}' must be an object, got {type(block).__name__}"
        raise InvalidConfigError(msg)

    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(block) - known)
    if unknown:
        msg = f"unknown keys in '{name}': {', '.join(unknown)}"
        raise InvalidConfigError(msg)

    for key, value in block.items():
        _check_value(name, key, value, getattr(base, key))

    values = {k: tuple(v) if k in _TUPLE_FIELDS and isinstance(v, list) else v for k, v in block.items()}
    return dataclasses.replace(base, **values)


def settings_from_dict(data: dict[str, Any]) -> Settings:
    if not isinstance(data, dict):
        msg = "settings document must be a JSON object"
        raise InvalidConfigError(msg)

    defaults = Settings()
    blocks = {f.name: f for f in dataclasses.fields(Settings)}
    unknown = sorted(set(data) - set(blocks))
    if unknown:
        msg = f"unknown settings blocks: {', '.join(unknown)}"
        raise InvalidConfigError(msg)

    values = {}
    for name, block in data.items():
        base = getattr(defaults, name)
        values[name] = _build(type(base), base, block, name)

    return dataclasses.replace(defaults, **values).validate()


def load_settings(path: str | Path) -> Settings:
    """Read and validate a JSON settings file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        msg = f"{path}: invalid JSON ({e})"
        raise InvalidConfigError(msg) from e

    settings = settings_from_dict(data)
    logger.info(f"Loaded settings from {path}")
    return settings
