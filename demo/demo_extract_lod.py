from __future__ import annotations

import logging

import matplotlib.pyplot as plt
import numpy as np

from mandelscape.camera.camera3d import Camera3D
from mandelscape.mesh import BoundingCube, ExtractParams, SurfaceExtractor
from mandelscape.render import rasterize_mesh
from mandelscape.scene import Scene
from mandelscape.shape import Mandelbulb, ShapeParams
from mandelscape.viz.plot3d import plot_distance_histogram

try:
    from tqdm import tqdm
except ImportError:  # pragma: no cover
    tqdm = None

# ============================================================
# PARAMS
# ============================================================
POWER = 8.0
BAILOUT = 2.0
MAX_ITERATIONS = 8

DEPTHS = (3, 4, 5, 6)
ISO_LEVEL = 0.01
WORKERS = 4
USE_TQDM = True

CAM_POS_NP = np.array([0.0, -2.6, 1.2], dtype=np.float64)
RENDER_WIDTH = 160
RENDER_HEIGHT = 160
FOV_DEG = 55.0


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    shape = Mandelbulb(xp=np, params=ShapeParams(power=POWER, bailout=BAILOUT, max_iterations=MAX_ITERATIONS))
    scene = Scene(shape=shape)
    cube = BoundingCube.around(*shape.bounding_box())
    camera = Camera3D.from_look_at(
        position=CAM_POS_NP,
        look_at=np.zeros(3),
        up=np.array([0.0, 0.0, 1.0]),
        fov_x_deg=FOV_DEG,
        fov_y_deg=FOV_DEG,
        xp=np,
    )

    depth_iter = DEPTHS
    if USE_TQDM and tqdm is not None:
        depth_iter = tqdm(DEPTHS, desc="Extracting LODs")

    meshes = []
    images = []
    for depth in depth_iter:
        extractor = SurfaceExtractor(np, shape, ExtractParams(max_depth=depth, iso_level=ISO_LEVEL, workers=WORKERS))
        mesh, _ = extractor.extract(cube)
        meshes.append(mesh)
        images.append(rasterize_mesh(mesh, scene, camera, RENDER_WIDTH, RENDER_HEIGHT, shadows=False).image)

    fig, axes = plt.subplots(1, len(DEPTHS), figsize=(4 * len(DEPTHS), 4))
    for ax, depth, mesh, img in zip(axes, DEPTHS, meshes, images, strict=True):
        ax.imshow(img)
        ax.set_axis_off()
        ax.set_title(f"depth {depth}: {mesh.n_triangles} tris")

    plot_distance_histogram(meshes[-1])
    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
