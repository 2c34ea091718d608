from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mandelscape.backend import as_points

if TYPE_CHECKING:
    from mandelscape.backend import ArrayModule
    from mandelscape.protocols import DistanceEstimator

DEFAULT_DELTA: float = 1e-4

# Offsets for the six central-difference samples: +x, -x, +y, -y, +z, -z
_AXES = (
    (1.0, 0.0, 0.0),
    (-1.0, 0.0, 0.0),
    (0.0, 1.0, 0.0),
    (0.0, -1.0, 0.0),
    (0.0, 0.0, 1.0),
    (0.0, 0.0, -1.0),
)


def estimate_normals(
        xp: ArrayModule,
        shape: DistanceEstimator,
        points: Any,
        delta: float = DEFAULT_DELTA,
) -> Any:
    """Surface normals at (..., 3) points from the DE gradient.

    All six samples per point go through one batched distance query. Points
    where the gradient vanishes get +z so the result stays deterministic.
    """
    if delta <= 0.0:
        msg = f"delta must be > 0, got {delta}"
        raise ValueError(msg)

    pts = as_points(xp, points)
    batch_shape = pts.shape[:-1]
    flat = pts.reshape(-1, 1, 3)

    offsets = xp.asarray(_AXES, dtype=xp.float64) * delta
    samples = (flat + offsets[None, :, :]).reshape(-1, 3)
    d = shape.distance_batch(samples).distance.reshape(-1, 6)

    grad = xp.stack([d[:, 0] - d[:, 1], d[:, 2] - d[:, 3], d[:, 4] - d[:, 5]], axis=-1)
    norm = xp.linalg.norm(grad, axis=-1, keepdims=True)

    flat_ok = norm[:, 0] > 0.0
    n = xp.where(flat_ok[:, None], grad / xp.where(flat_ok[:, None], norm, 1.0), 0.0)
    n[~flat_ok, 2] = 1.0
    return n.reshape(batch_shape + (3,))


def estimate_normal(
        xp: ArrayModule,
        shape: DistanceEstimator,
        point: Any,
        delta: float = DEFAULT_DELTA,
) -> Any:
    """Unit normal at a single point presumed close to the surface."""
    return estimate_normals(xp, shape, as_points(xp, point).reshape(1, 3), delta)[0]
