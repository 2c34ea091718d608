"""Minimal z-buffered software rasterizer for extracted meshes.

Stands in for a GPU pipeline: vertices go through the camera's view and
projection matrices, triangles are scan converted with perspective-correct
barycentrics, and every covered pixel is shaded from its interpolated normal
with the same shading function the raymarcher uses.
"""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import numpy as np

from mandelscape.backend import to_numpy
from mandelscape.math_utils import normalize_batch, transform_points
from mandelscape.raymarch.marcher import shadow_mask
from mandelscape.render.result import DEFAULT_BACKGROUND, RenderResult
from mandelscape.shading import shade_batch

if TYPE_CHECKING:
    from mandelscape.camera.camera3d import Camera3D
    from mandelscape.mesh.model import Mesh
    from mandelscape.scene import Scene

logger = logging.getLogger(__name__)


def _edge(ax: float, ay: float, bx: float, by: float, px: np.ndarray, py: np.ndarray) -> np.ndarray:
    return (bx - ax) * (py - ay) - (by - ay) * (px - ax)


def rasterize_mesh(
        mesh: Mesh,
        scene: Scene,
        camera: Camera3D,
        width: int,
        height: int,
        shadows: bool = True,
        background: tuple[float, float, float] = DEFAULT_BACKGROUND,
) -> RenderResult:
    t0 = time.perf_counter()

    image = np.empty((height, width, 3), dtype=np.float32)
    image[...] = np.asarray(background, dtype=np.float32)
    depth = np.full((height, width), np.inf, dtype=np.float64)
    ndc_depth = np.full((height, width), np.inf, dtype=np.float64)
    normal_buf = np.zeros((height, width, 3), dtype=np.float64)
    world_buf = np.zeros((height, width, 3), dtype=np.float64)

    if mesh.n_triangles == 0:
        return RenderResult(image=image, coverage=np.isfinite(depth), depth=depth)

    mvp = camera.projection_matrix() @ camera.view_matrix(np)
    positions = mesh.positions.astype(np.float64)
    normals = mesh.normals.astype(np.float64)
    clip = transform_points(mvp, positions)

    sx = (clip[:, 0] + 1.0) * 0.5 * width - 0.5
    sy = (1.0 - clip[:, 1]) * 0.5 * height - 0.5
    sz = clip[:, 2]
    inv_w = 1.0 / clip[:, 3]

    cam_pos = to_numpy(np, camera.position).astype(np.float64)

    for tri in mesh.indices:
        i0, i1, i2 = int(tri[0]), int(tri[1]), int(tri[2])
        # No clipping: drop triangles touching the near plane or behind it.
        if min(clip[i0, 3], clip[i1, 3], clip[i2, 3]) <= camera.near:
            continue

        xs = (sx[i0], sx[i1], sx[i2])
        ys = (sy[i0], sy[i1], sy[i2])
        x_lo = max(int(np.ceil(min(xs))), 0)
        x_hi = min(int(np.floor(max(xs))), width - 1)
        y_lo = max(int(np.ceil(min(ys))), 0)
        y_hi = min(int(np.floor(max(ys))), height - 1)
        if x_lo > x_hi or y_lo > y_hi:
            continue

        area = _edge(xs[0], ys[0], xs[1], ys[1], np.asarray(xs[2]), np.asarray(ys[2]))
        if abs(float(area)) < 1e-12:
            continue

        px, py = np.meshgrid(
            np.arange(x_lo, x_hi + 1, dtype=np.float64),
            np.arange(y_lo, y_hi + 1, dtype=np.float64),
        )
        b0 = _edge(xs[1], ys[1], xs[2], ys[2], px, py) / area
        b1 = _edge(xs[2], ys[2], xs[0], ys[0], px, py) / area
        b2 = 1.0 - b0 - b1
        inside = (b0 >= 0.0) & (b1 >= 0.0) & (b2 >= 0.0)
        if not inside.any():
            continue

        z = b0 * sz[i0] + b1 * sz[i1] + b2 * sz[i2]
        rows = py.astype(np.int64)
        cols = px.astype(np.int64)
        closer = inside & (z < ndc_depth[rows, cols])
        if not closer.any():
            continue

        r, c = rows[closer], cols[closer]
        w0 = b0[closer] * inv_w[i0]
        w1 = b1[closer] * inv_w[i1]
        w2 = b2[closer] * inv_w[i2]
        wsum = w0 + w1 + w2

        world = (w0[:, None] * positions[i0] + w1[:, None] * positions[i1] + w2[:, None] * positions[i2])
        world /= wsum[:, None]
        normal = (w0[:, None] * normals[i0] + w1[:, None] * normals[i1] + w2[:, None] * normals[i2])

        ndc_depth[r, c] = z[closer]
        world_buf[r, c] = world
        normal_buf[r, c] = normal
        depth[r, c] = np.linalg.norm(world - cam_pos, axis=-1)

    coverage = np.isfinite(ndc_depth)
    if coverage.any():
        n = normalize_batch(np, normal_buf[coverage])
        pts = world_buf[coverage]
        light_dir = scene.light.unit_direction()
        shadowed = shadow_mask(np, scene.shape, pts, light_dir, scene.shadow, n) if shadows else False
        image[coverage] = shade_batch(np, n, light_dir, pts - cam_pos, scene.material, shadowed, scene.light)

    logger.info(
        f"Rasterized {mesh.n_triangles} triangles into {width}x{height}, "
        f"{int(coverage.sum())} fragments in {(time.perf_counter() - t0) * 1e3:.1f} ms",
    )
    return RenderResult(image=image, coverage=coverage, depth=depth)
