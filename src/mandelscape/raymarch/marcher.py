from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mandelscape.backend import as_points
from mandelscape.errors import InvalidConfigError
from mandelscape.math_utils import normalize_batch
from mandelscape.raymarch.config import Hit, ImageMarchResult, MarchResult, Miss, Ray, TraceParams

if TYPE_CHECKING:
    from mandelscape.backend import ArrayModule
    from mandelscape.protocols import DistanceEstimator

logger = logging.getLogger(__name__)


def _unit_direction(xp: ArrayModule, direction: Any) -> Any:
    d = xp.asarray(direction, dtype=xp.float64)
    n = float(xp.linalg.norm(d))
    if n <= 1e-12:
        msg = "ray direction must be non-zero"
        raise InvalidConfigError(msg)
    return d / n


class SphereTracer:
    """Single-ray sphere tracer.

    Each step advances by the distance estimate itself. Since the estimate
    never exceeds the true distance to the surface, the step cannot cross it.
    """

    def __init__(self, xp: ArrayModule, shape: DistanceEstimator, config: TraceParams | None = None) -> None:
        """Initialise the tracer."""
        self.xp = xp
        self.shape = shape
        self.cfg = (config or TraceParams()).validate()

    def trace(self, ray: Ray, record_path: bool = False) -> MarchResult:
        """March ``ray`` until it hits, runs out of steps or travels too far."""
        xp = self.xp
        cfg = self.cfg

        p = as_points(xp, ray.origin).copy()
        d = _unit_direction(xp, ray.direction)

        points: list[Any] | None = [p.copy()] if record_path else None
        traveled = 0.0

        if self.shape.distance(p).distance < cfg.epsilon and cfg.offset > 0.0:
            p = p + d * cfg.offset
            traveled = cfg.offset
            if points is not None:
                points.append(p.copy())

        def _path() -> Any:
            return None if points is None else xp.stack(points)

        for step in range(1, int(cfg.max_steps) + 1):
            dist = self.shape.distance(p).distance
            if dist < cfg.epsilon:
                return Hit(point=p, steps=step, travel=traveled, path=_path())

            p = p + d * dist
            traveled += dist
            if points is not None:
                points.append(p.copy())

            if traveled > cfg.max_travel:
                return Miss(steps=step, travel=traveled, termination="far", path=_path())

        return Miss(steps=int(cfg.max_steps), travel=traveled, termination="max_steps", path=_path())


class ImageMarcher:
    """Batched sphere tracer over any (..., 3) bundle of rays.

    Used per pixel for primary visibility and per surface point for shadow
    rays. Only rays still in flight are evaluated each step.
    """

    def __init__(self, xp: ArrayModule, shape: DistanceEstimator, config: TraceParams | None = None) -> None:
        """Initialise the marcher."""
        self.xp = xp
        self.shape = shape
        self.config = (config or TraceParams()).validate()

    def march(self, ro: Any, rd: Any) -> ImageMarchResult:
        """March.

        ro: (3,) or broadcastable to rd
        rd: (..., 3), need not be normalized
        """
        xp = self.xp
        cfg = self.config

        rd = as_points(xp, rd)
        batch_shape = rd.shape[:-1]

        d = normalize_batch(xp, rd.reshape(-1, 3))
        p = xp.broadcast_to(xp.asarray(ro, dtype=xp.float64), rd.shape).reshape(-1, 3).copy()
        count = p.shape[0]

        hit = xp.zeros(count, dtype=bool)
        steps = xp.zeros(count, dtype=xp.int64)
        traveled = xp.zeros(count, dtype=xp.float64)

        # Rays starting on the surface step off it once before testing.
        if cfg.offset > 0.0:
            start = self.shape.distance_batch(p).distance < cfg.epsilon
            p[start] += d[start] * cfg.offset
            traveled[start] = cfg.offset

        idx = xp.arange(count)
        for _ in range(int(cfg.max_steps)):
            if idx.shape[0] == 0:
                break

            dist = self.shape.distance_batch(p[idx]).distance
            steps[idx] += 1

            done = dist < cfg.epsilon
            hit[idx[done]] = True

            idx, dist = idx[~done], dist[~done]
            p[idx] += d[idx] * dist[:, None]
            traveled[idx] += dist

            idx = idx[traveled[idx] <= cfg.max_travel]

        logger.debug(f"Marched {count} rays, {int(hit.sum())} hits")

        return ImageMarchResult(
            hit=hit.reshape(batch_shape),
            position=p.reshape(batch_shape + (3,)),
            steps=steps.reshape(batch_shape),
            traveled=traveled.reshape(batch_shape),
        )


def shadow_origins(xp: ArrayModule, points: Any, normals: Any | None, lift: float) -> Any:
    """Lift surface points along their normals so shadow rays start outside the shell."""
    pts = as_points(xp, points)
    if normals is None:
        return pts
    return pts + xp.asarray(normals, dtype=xp.float64) * lift


def is_shadowed(
        xp: ArrayModule,
        shape: DistanceEstimator,
        point: Any,
        light_direction: Any,
        config: TraceParams | None = None,
        normal: Any | None = None,
) -> bool:
    """True when something blocks the way from ``point`` toward the light.

    ``light_direction`` points from the light into the scene, the shadow ray
    travels against it.
    """
    cfg = config or TraceParams.shadow()
    origin = shadow_origins(xp, point, normal, cfg.offset)
    toward_light = -_unit_direction(xp, light_direction)
    result = SphereTracer(xp, shape, cfg).trace(Ray(origin=origin, direction=toward_light))
    return result.hit


def shadow_mask(
        xp: ArrayModule,
        shape: DistanceEstimator,
        points: Any,
        light_direction: Any,
        config: TraceParams | None = None,
        normals: Any | None = None,
) -> Any:
    """Batched is_shadowed over (..., 3) surface points."""
    cfg = config or TraceParams.shadow()
    origins = shadow_origins(xp, points, normals, cfg.offset)
    toward_light = -_unit_direction(xp, light_direction)
    rd = xp.broadcast_to(toward_light, origins.shape)
    return ImageMarcher(xp, shape, cfg).march(origins, rd).hit
