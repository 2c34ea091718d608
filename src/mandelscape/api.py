"""Function-style entry points over the shape, tracer, extractor and shading
classes, taking plain parameter records so hosts need not hold any state."""
from __future__ import annotations

from typing import Any

import numpy as np

from mandelscape.mesh.config import BoundingCube, ExtractParams
from mandelscape.mesh.extract import extract_mesh
from mandelscape.mesh.model import Mesh
from mandelscape.normals import DEFAULT_DELTA, estimate_normal as _estimate_normal
from mandelscape.raymarch.config import MarchResult, Ray, TraceParams
from mandelscape.raymarch.marcher import SphereTracer
from mandelscape.shading import Color, Material, shade as _shade
from mandelscape.shape.base import DEResult, ShapeParams
from mandelscape.shape.mandelbulb import Mandelbulb


def evaluate_distance(point: Any, shape_params: ShapeParams | None = None) -> DEResult:
    return Mandelbulb(xp=np, params=shape_params or ShapeParams()).distance(point)


def trace_ray(ray: Ray, shape_params: ShapeParams | None = None, trace_params: TraceParams | None = None) -> MarchResult:
    shape = Mandelbulb(xp=np, params=shape_params or ShapeParams())
    return SphereTracer(np, shape, trace_params or TraceParams()).trace(ray)


def estimate_normal(point: Any, shape_params: ShapeParams | None = None, delta: float = DEFAULT_DELTA) -> np.ndarray:
    shape = Mandelbulb(xp=np, params=shape_params or ShapeParams())
    return _estimate_normal(np, shape, point, delta)


def extract_surface(
        bounding_cube: BoundingCube,
        shape_params: ShapeParams | None = None,
        max_depth: int = 5,
        params: ExtractParams | None = None,
) -> Mesh:
    """Mesh of the bulb inside ``bounding_cube`` at the given octree depth.

    ``params`` supplies the remaining extraction settings; its max_depth is
    overridden by ``max_depth``.
    """
    cfg = ExtractParams(max_depth=max_depth) if params is None else _with_depth(params, max_depth)
    shape = Mandelbulb(xp=np, params=shape_params or ShapeParams())
    return extract_mesh(np, shape, bounding_cube, cfg)


def _with_depth(params: ExtractParams, max_depth: int) -> ExtractParams:
    return ExtractParams(
        max_depth=max_depth,
        min_cell_size=params.min_cell_size,
        iso_level=params.iso_level,
        workers=params.workers,
        normal_delta=params.normal_delta,
    )


def shade(normal: Any, light_dir: Any, view_pos: Any, material: Material | None = None,
          shadowed: bool = False) -> Color:
    return _shade(normal, light_dir, view_pos, (material or Material()).validate(), shadowed)
