from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from mandelscape.backend import get_array_module, to_numpy
from mandelscape.camera.camera3d import Camera3D
from mandelscape.mesh import BoundingCube, SurfaceExtractor
from mandelscape.render import rasterize_mesh, render_raymarch
from mandelscape.scene import Scene, SceneBounds
from mandelscape.settings import load_settings
from mandelscape.shape import Mandelbulb
from mandelscape.viz.plot3d import RenderFrame, RenderSplitPlotter

try:
    from tqdm import tqdm
except ImportError:  # pragma: no cover
    tqdm = None

# ============================================================
# TOP-LEVEL SCENE + CAMERA + RENDER SETTINGS (edit these)
# ============================================================
USE_CUDA = False
SETTINGS_PATH = Path(__file__).with_name("settings.json")

LOOK_AT_NP = np.array([0.0, 0.0, 0.0], dtype=np.float64)
UP_NP = np.array([0.0, 0.0, 1.0], dtype=np.float64)

ORBIT_RADIUS = 2.9
ORBIT_HEIGHT = 1.1
ORBIT_START_DEG = 35.0
# 1 -> single still frame, > 1 -> animation around the bulb
ORBIT_FRAMES = 1
ANIM_INTERVAL_MS = 150

RENDER_WIDTH = 240
RENDER_HEIGHT = 180
FOV_HORIZONTAL_DEG = 60.0
RENDER_WORKERS = 4

SHOW_DIFF = True
USE_TQDM = True


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    xp = get_array_module(USE_CUDA)
    settings = load_settings(SETTINGS_PATH)

    shape = Mandelbulb(xp=xp, params=settings.shape)
    scene = Scene(
        shape=shape,
        light=settings.light,
        material=settings.material,
        bounds=SceneBounds(far_distance=float(settings.trace.max_travel)),
        shadow=settings.shadow,
    )

    # The mesh does not depend on the view, extract it once.
    lo, hi = shape.bounding_box()
    mesh, stats = SurfaceExtractor(xp, shape, settings.extract).extract(BoundingCube.around(lo, hi))
    print(f"mesh: {mesh.n_vertices} vertices, {mesh.n_triangles} triangles, {stats}")

    fov_y = Camera3D.vertical_fov(RENDER_WIDTH, RENDER_HEIGHT, FOV_HORIZONTAL_DEG)

    it = range(ORBIT_FRAMES)
    if USE_TQDM and tqdm is not None and ORBIT_FRAMES > 1:
        it = tqdm(it, total=ORBIT_FRAMES, desc="Rendering frames")

    frames = []
    for i in it:
        camera = Camera3D.orbit(
            target=LOOK_AT_NP,
            radius=ORBIT_RADIUS,
            height=ORBIT_HEIGHT,
            angle_deg=ORBIT_START_DEG + 360.0 * i / ORBIT_FRAMES,
            fov_x_deg=FOV_HORIZONTAL_DEG,
            fov_y_deg=fov_y,
            xp=xp,
            up=UP_NP,
        )
        cam_pos = to_numpy(xp, camera.position)

        marched = render_raymarch(
            xp, scene, camera, RENDER_WIDTH, RENDER_HEIGHT, trace=settings.trace, workers=RENDER_WORKERS,
        )
        rastered = rasterize_mesh(mesh, scene, camera, RENDER_WIDTH, RENDER_HEIGHT)

        frames.append(
            RenderFrame(
                raymarch=marched.image,
                raster=rastered.image,
                cam_pos=cam_pos,
                label=f"power={settings.shape.power:g}, depth={settings.extract.max_depth}, frame {i}",
            ),
        )

    plotter = RenderSplitPlotter(show_diff=SHOW_DIFF)
    if len(frames) == 1:
        plotter.draw(frames[0])
    else:
        _anim = plotter.animate(frames, interval_ms=ANIM_INTERVAL_MS)  # keep reference
    plotter.show()


if __name__ == "__main__":
    main()
