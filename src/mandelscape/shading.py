"""Shading model shared by the raymarch and the rasterized paths.

Both renderers feed the same function, the raymarcher once per pixel with the
traced normal and the rasterizer once per fragment with the interpolated one,
so a given camera and light produce matching colours on both paths.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, NamedTuple

import numpy as np

from mandelscape.errors import require


class Color(NamedTuple):
    r: float
    g: float
    b: float


@dataclass(frozen=True, slots=True)
class Material:
    """Surface constants.

    The albedo fades from ``base_color`` to ``far_color`` with the distance of
    the shaded point from the viewer, reaching ``far_color`` at
    ``fade_distance``.
    """

    base_color: tuple[float, float, float] = (0.85, 0.55, 0.3)
    far_color: tuple[float, float, float] = (0.35, 0.3, 0.45)
    ambient: float = 0.15
    fade_distance: float = 8.0

    def validate(self) -> Material:
        require(0.0 <= self.ambient <= 1.0, f"ambient must be in [0, 1], got {self.ambient}")
        require(self.fade_distance > 0.0, f"fade_distance must be > 0, got {self.fade_distance}")
        return self


@dataclass(frozen=True, slots=True)
class Light:
    """Directional light. ``direction`` points from the light into the scene."""

    direction: tuple[float, float, float] = (-0.4, -0.8, -0.45)
    color: tuple[float, float, float] = (1.0, 0.96, 0.9)
    strength: float = 1.0

    def validate(self) -> Light:
        require(
            float(np.linalg.norm(np.asarray(self.direction, dtype=np.float64))) > 1e-12,
            "light direction must be non-zero",
        )
        require(self.strength >= 0.0, f"light strength must be >= 0, got {self.strength}")
        return self

    def unit_direction(self) -> np.ndarray:
        d = np.asarray(self.direction, dtype=np.float64)
        return d / np.linalg.norm(d)


def sun_direction(theta: float, phi: float) -> tuple[float, float, float]:
    """Light direction of a sun placed at spherical angles (theta, phi)."""
    v = np.array(
        [math.sin(theta) * math.cos(phi), math.sin(phi) * math.sin(theta), math.cos(theta)],
        dtype=np.float64,
    )
    v = -v / np.linalg.norm(v)
    return float(v[0]), float(v[1]), float(v[2])


def shade_batch(
        xp: Any,
        normals: Any,
        light_dir: Any,
        view_pos: Any,
        material: Material,
        shadowed: Any,
        light: Light | None = None,
) -> Any:
    """Colours for (..., 3) normals, returns (..., 3) RGB in [0, 1].

    view_pos:
        Shaded points relative to the viewer, (..., 3).
    shadowed:
        Bool mask of the batch shape (or a scalar) from the shadow test.
    """
    light = light or Light()

    n = xp.asarray(normals, dtype=xp.float64)
    ld = xp.asarray(light_dir, dtype=xp.float64)
    ld = ld / xp.linalg.norm(ld)

    angle = xp.sum(n * (-ld), axis=-1)

    dist = xp.linalg.norm(xp.asarray(view_pos, dtype=xp.float64), axis=-1)
    t = xp.clip(dist / material.fade_distance, 0.0, 1.0)[..., None]
    base = xp.asarray(material.base_color, dtype=xp.float64)
    far = xp.asarray(material.far_color, dtype=xp.float64)
    albedo = base * (1.0 - t) + far * t

    lit = (angle > 0.0) & ~xp.asarray(shadowed, dtype=bool)
    diffuse = xp.where(lit, angle, 0.0)[..., None] * light.strength
    diffuse = diffuse * xp.asarray(light.color, dtype=xp.float64)

    return xp.clip(albedo * (material.ambient + diffuse), 0.0, 1.0)


def shade(
        normal: Any,
        light_dir: Any,
        view_pos: Any,
        material: Material,
        shadowed: bool,
        light: Light | None = None,
) -> Color:
    """Colour of a single shaded point."""
    rgb = shade_batch(np, np.asarray(normal)[None, :], light_dir, np.asarray(view_pos)[None, :], material,
                      np.asarray([shadowed]), light)[0]
    return Color(float(rgb[0]), float(rgb[1]), float(rgb[2]))
