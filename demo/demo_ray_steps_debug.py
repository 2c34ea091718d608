from __future__ import annotations

import logging

import matplotlib.pyplot as plt
import numpy as np

from mandelscape.raymarch import Ray, SphereTracer, TraceParams
from mandelscape.shape import Mandelbulb

# ============================================================
# PARAMS
# ============================================================
MAX_ITERATIONS = 10
EPSILON = 0.01
MAX_STEPS = 96

RO_NP = np.array([0.0, -3.0, 0.0], dtype=np.float64)
NUM_RAYS = 41
FAN_HALF_ANGLE_DEG = 25.0

# Plot window in the XY slice
XLIM = (-1.6, 1.6)
YLIM = (-3.2, 1.6)
SLICE_RES = 300


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    shape = Mandelbulb.classic(np, max_iterations=MAX_ITERATIONS)
    tracer = SphereTracer(np, shape, TraceParams(epsilon=EPSILON, max_steps=MAX_STEPS, max_travel=8.0))

    xs = np.linspace(*XLIM, SLICE_RES)
    ys = np.linspace(*YLIM, SLICE_RES)
    gx, gy = np.meshgrid(xs, ys)
    slice_pts = np.stack([gx, gy, np.zeros_like(gx)], axis=-1)
    dist = shape.distance_batch(slice_pts).distance

    fig, (ax_slice, ax_steps) = plt.subplots(1, 2, figsize=(12, 5.5))
    ax_slice.contourf(gx, gy, np.log10(dist + 1e-6), levels=40, cmap="viridis")
    ax_slice.contour(gx, gy, dist, levels=[EPSILON], colors="white", linewidths=1.0)
    ax_slice.set_aspect("equal", adjustable="box")
    ax_slice.set_title("log10 distance estimate (z = 0 slice) + ray paths")

    angles = np.deg2rad(np.linspace(-FAN_HALF_ANGLE_DEG, FAN_HALF_ANGLE_DEG, NUM_RAYS))
    steps = []
    for a in angles:
        d = np.array([np.sin(a), np.cos(a), 0.0])
        res = tracer.trace(Ray(origin=RO_NP, direction=d), record_path=True)
        steps.append(res.steps)
        ax_slice.plot(res.path[:, 0], res.path[:, 1], ".-", linewidth=0.8, markersize=2,
                      color="tab:red" if res.hit else "tab:gray")

    ax_steps.bar(np.rad2deg(angles), steps, width=0.8 * 2 * FAN_HALF_ANGLE_DEG / NUM_RAYS)
    ax_steps.set_xlabel("ray angle [deg]")
    ax_steps.set_ylabel("steps")
    ax_steps.set_title("sphere tracing steps per ray")

    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
