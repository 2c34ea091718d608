from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import numpy as np

from mandelscape.backend import to_numpy
from mandelscape.normals import estimate_normals
from mandelscape.raymarch.config import TraceParams
from mandelscape.raymarch.marcher import ImageMarcher, shadow_mask
from mandelscape.render.result import DEFAULT_BACKGROUND, RenderResult
from mandelscape.shading import shade_batch

if TYPE_CHECKING:
    from mandelscape.backend import ArrayModule
    from mandelscape.camera.camera3d import Camera3D
    from mandelscape.scene import Scene

logger = logging.getLogger(__name__)


def _shade_band(
        xp: ArrayModule,
        scene: Scene,
        marcher: ImageMarcher,
        ro: Any,
        rd: Any,
        shadows: bool,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    res = marcher.march(ro, rd)
    hit = res.hit

    rgb = xp.zeros(rd.shape, dtype=xp.float64)
    depth = xp.full(hit.shape, xp.inf, dtype=xp.float64)

    pts = res.position[hit]
    if pts.shape[0]:
        normals = estimate_normals(xp, scene.shape, pts)
        light_dir = xp.asarray(scene.light.unit_direction())
        shadowed = shadow_mask(xp, scene.shape, pts, light_dir, scene.shadow, normals) if shadows else False
        rgb[hit] = shade_batch(xp, normals, light_dir, pts - ro, scene.material, shadowed, scene.light)
        depth[hit] = res.traveled[hit]

    return to_numpy(xp, rgb), to_numpy(xp, hit), to_numpy(xp, depth)


def render_raymarch(
        xp: ArrayModule,
        scene: Scene,
        camera: Camera3D,
        width: int,
        height: int,
        trace: TraceParams | None = None,
        shadows: bool = True,
        workers: int = 1,
        background: tuple[float, float, float] = DEFAULT_BACKGROUND,
) -> RenderResult:
    """Sphere trace one ray per pixel and shade the hits.

    With ``workers > 1`` the image is cut into row bands traced on a thread
    pool; pixels are independent, so the result does not change.
    """
    cfg = trace or TraceParams(max_travel=scene.bounds.far_distance)
    marcher = ImageMarcher(xp, scene.shape, cfg)

    t0 = time.perf_counter()
    ro = xp.asarray(camera.position, dtype=xp.float64)
    rd = camera.ray_directions_grid(xp, width=width, height=height)

    if workers > 1 and height > 1:
        bands = np.array_split(np.arange(height), min(int(workers), height))
        with ThreadPoolExecutor(max_workers=int(workers)) as pool:
            parts = list(pool.map(
                lambda rows: _shade_band(xp, scene, marcher, ro, rd[int(rows[0]):int(rows[-1]) + 1], shadows),
                bands,
            ))
        rgb = np.concatenate([p[0] for p in parts])
        hit = np.concatenate([p[1] for p in parts])
        depth = np.concatenate([p[2] for p in parts])
    else:
        rgb, hit, depth = _shade_band(xp, scene, marcher, ro, rd, shadows)

    image = np.empty((height, width, 3), dtype=np.float32)
    image[...] = np.asarray(background, dtype=np.float32)
    image[hit] = rgb[hit]

    logger.info(
        f"Raymarched {width}x{height} frame, {int(hit.sum())} surface pixels "
        f"in {(time.perf_counter() - t0) * 1e3:.1f} ms",
    )
    return RenderResult(image=image, coverage=hit, depth=depth)
