from __future__ import annotations

import numpy as np
import pytest

from mandelscape import InvalidConfigError, trace_ray
from mandelscape.raymarch import (
    Hit,
    ImageMarcher,
    Miss,
    Ray,
    SphereTracer,
    TraceParams,
    is_shadowed,
    shadow_mask,
)
from mandelscape.shape import ShapeParams


def test_ray_down_the_z_axis_hits_the_bulb(bulb):
    result = trace_ray(
        Ray(origin=(0.0, 0.0, 5.0), direction=(0.0, 0.0, -1.0)),
        ShapeParams(power=8.0, bailout=2.0, max_iterations=10),
        TraceParams(epsilon=0.03, max_steps=64),
    )

    assert isinstance(result, Hit)
    assert result.hit
    assert result.termination == "hit"
    assert 1 <= result.steps <= 64
    assert bulb.distance(result.point).distance <= 0.03
    # Still on the axis, above the origin, below the start.
    np.testing.assert_allclose(result.point[:2], 0.0, atol=1e-12)
    assert 0.0 < result.point[2] < 5.0
    assert result.travel == pytest.approx(5.0 - result.point[2])


def test_no_surface_is_skipped_between_steps(unit_sphere):
    tracer = SphereTracer(np, unit_sphere, TraceParams(epsilon=1e-3, max_steps=200))
    res = tracer.trace(Ray(origin=(-4.0, 0.35, 0.2), direction=(1.0, 0.05, 0.0)), record_path=True)

    assert res.hit
    path = res.path
    for a, b in zip(path[:-1], path[1:], strict=True):
        t = np.linspace(0.0, 1.0, 33)[:, None]
        samples = a + t * (b - a)
        assert np.all(unit_sphere.sdf(samples) >= -1e-9)


def test_bulb_march_never_steps_into_the_set(bulb):
    rng = np.random.default_rng(11)
    tracer = SphereTracer(np, bulb, TraceParams(epsilon=0.01, max_steps=200))
    t = np.linspace(0.0, 1.0, 9)[:-1, None]

    for _ in range(60):
        origin = rng.normal(size=3)
        origin *= 3.0 / np.linalg.norm(origin)
        direction = rng.uniform(-0.3, 0.3, size=3) - origin
        res = tracer.trace(Ray(origin=origin, direction=direction), record_path=True)

        path = res.path
        for a, b in zip(path[:-1], path[1:], strict=True):
            assert not bulb.contains_batch(a + t * (b - a)).any()


def test_miss_after_max_steps(unit_sphere):
    tracer = SphereTracer(np, unit_sphere, TraceParams(epsilon=0.01, max_steps=5))
    res = tracer.trace(Ray(origin=(0.0, 0.0, 3.0), direction=(0.0, 0.0, 1.0)))

    assert isinstance(res, Miss)
    assert not res.hit
    assert res.termination == "max_steps"
    assert res.steps == 5


def test_miss_beyond_max_travel(unit_sphere):
    tracer = SphereTracer(np, unit_sphere, TraceParams(epsilon=0.01, max_steps=100, max_travel=10.0))
    res = tracer.trace(Ray(origin=(0.0, 0.0, 3.0), direction=(0.0, 1.0, 0.0)))

    assert isinstance(res, Miss)
    assert res.termination == "far"
    assert res.travel > 10.0


def test_ray_leaving_the_surface_steps_off_first(unit_sphere):
    cfg = TraceParams(epsilon=0.01, max_steps=20)
    res = SphereTracer(np, unit_sphere, cfg).trace(Ray(origin=(0.0, 0.0, 1.0), direction=(0.0, 0.0, 1.0)))
    assert not res.hit


def test_zero_direction_is_rejected(bulb):
    with pytest.raises(InvalidConfigError):
        SphereTracer(np, bulb).trace(Ray(origin=(0.0, 0.0, 5.0), direction=(0.0, 0.0, 0.0)))


@pytest.mark.parametrize(
    "params",
    [TraceParams(epsilon=0.0), TraceParams(epsilon=-1.0), TraceParams(max_steps=0), TraceParams(max_travel=0.0)],
)
def test_invalid_trace_params(bulb, params):
    with pytest.raises(InvalidConfigError):
        SphereTracer(np, bulb, params)


def test_image_marcher_agrees_with_single_rays(bulb):
    cfg = TraceParams(epsilon=0.02, max_steps=64, max_travel=10.0)
    ro = np.array([0.0, -3.0, 0.5])
    rd = np.array([[0.0, 1.0, -0.15], [0.3, 1.0, 0.0], [0.0, 1.0, 1.0], [1.0, 0.2, 0.0]])

    batched = ImageMarcher(np, bulb, cfg).march(ro, rd)
    tracer = SphereTracer(np, bulb, cfg)
    for i in range(rd.shape[0]):
        single = tracer.trace(Ray(origin=ro, direction=rd[i]))
        assert bool(batched.hit[i]) == single.hit
        if single.hit:
            np.testing.assert_allclose(batched.position[i], single.point, atol=1e-9)
            assert int(batched.steps[i]) == single.steps


def test_shadow_symmetry(unit_sphere):
    light = np.array([0.0, -1.0, 0.0])
    cfg = TraceParams.shadow(epsilon=0.03, max_steps=10)

    top = np.array([0.0, 1.0, 0.0])
    bottom = np.array([0.0, -1.0, 0.0])

    assert not is_shadowed(np, unit_sphere, top, light, cfg, normal=top)
    assert is_shadowed(np, unit_sphere, bottom, light, cfg, normal=bottom)


def test_shadow_mask_matches_single_queries(unit_sphere):
    light = np.array([0.0, -1.0, 0.0])
    pts = np.array([[0.0, 1.0, 0.0], [0.0, -1.0, 0.0], [1.0, 0.0, 0.0]])
    normals = pts.copy()

    mask = shadow_mask(np, unit_sphere, pts, light, normals=normals)
    expected = [is_shadowed(np, unit_sphere, p, light, normal=n) for p, n in zip(pts, normals, strict=True)]
    np.testing.assert_array_equal(mask, expected)
