from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mandelscape import InvalidConfigError, evaluate_distance
from mandelscape.shape import Mandelbulb, ShapeParams, Sphere


def test_distance_non_negative_and_finite_inside_bailout(bulb):
    rng = np.random.default_rng(7)
    pts = rng.uniform(-2.0, 2.0, size=(6000, 3))
    pts = pts[np.linalg.norm(pts, axis=-1) <= bulb.params.bailout]

    d = bulb.distance_batch(pts).distance

    assert np.all(np.isfinite(d))
    assert np.all(d >= 0.0)


def test_origin_is_on_the_surface(bulb):
    res = bulb.distance(np.zeros(3))
    assert res.distance == 0.0


def test_points_outside_bailout_are_positive(bulb):
    pts = np.array([[0.0, 0.0, 5.0], [3.0, 0.0, 0.0], [-2.5, 2.5, 1.0]])
    res = bulb.distance_batch(pts)
    assert np.all(res.distance > 0.0)
    # Escapes on the first test, no iteration is spent.
    np.testing.assert_array_equal(res.iterations_used, 0)


def test_far_distance_grows_with_radius(bulb):
    near = bulb.distance(np.array([0.0, 0.0, 2.5])).distance
    far = bulb.distance(np.array([0.0, 0.0, 5.0])).distance
    assert 0.0 < near < far


def test_interior_point_gets_distance_floor(bulb):
    # Close to the origin the orbit never escapes in 10 iterations.
    res = bulb.distance(np.array([0.05, 0.02, -0.03]))
    assert res.distance == pytest.approx(bulb.params.distance_floor)
    assert res.iterations_used == bulb.params.max_iterations
    assert bulb.contains(np.array([0.05, 0.02, -0.03]))


def test_batch_matches_single_queries(bulb):
    pts = np.array([[0.3, -0.4, 0.9], [1.0, 1.0, 0.2], [0.0, 0.0, -1.3], [0.1, 0.0, 0.0]])
    batch = bulb.distance_batch(pts)
    for i, p in enumerate(pts):
        single = bulb.distance(p)
        assert single.iterations_used == batch.at(i).iterations_used
        assert single.distance == pytest.approx(batch.at(i).distance, rel=1e-12, abs=0.0)


def test_batch_keeps_leading_shape(bulb):
    pts = np.zeros((2, 5, 3)) + np.array([0.0, 0.0, 3.0])
    res = bulb.distance_batch(pts)
    assert res.distance.shape == (2, 5)
    assert res.iterations_used.shape == (2, 5)


def test_integer_rotation_matches_trigonometric_form(bulb):
    rng = np.random.default_rng(3)
    z = rng.normal(scale=0.5, size=(500, 3))
    z[0] = [0.0, 0.0, 0.7]
    z[1] = [0.0, 0.0, -0.4]
    r = np.linalg.norm(z, axis=-1)

    assert_allclose(bulb._rotate_integer(z), bulb._rotate_generic(z, r), rtol=1e-9, atol=1e-9)


def test_fractional_power_uses_generic_rotation():
    shape = Mandelbulb(xp=np, params=ShapeParams(power=7.5))
    assert not shape.params.integer_power
    d = shape.distance_batch(np.array([[0.4, 0.5, 0.6], [0.0, 0.0, 0.0]])).distance
    assert np.all(np.isfinite(d))
    assert d[1] == 0.0


def test_on_axis_orbit_stays_on_axis(bulb):
    out = bulb.rotate(np.array([[0.0, 0.0, 0.9], [0.0, 0.0, -0.9]]))
    np.testing.assert_array_equal(out[:, :2], 0.0)


def test_api_evaluate_distance_uses_given_params():
    res = evaluate_distance((0.0, 0.0, 5.0), ShapeParams(power=8.0, bailout=2.0, max_iterations=10))
    assert res.distance > 0.0


@pytest.mark.parametrize(
    "params",
    [
        ShapeParams(power=1.0),
        ShapeParams(bailout=0.0),
        ShapeParams(bailout=-1.0),
        ShapeParams(max_iterations=0),
        ShapeParams(distance_floor=0.0),
    ],
)
def test_invalid_shape_params(params):
    with pytest.raises(InvalidConfigError):
        Mandelbulb(xp=np, params=params)


def test_invalid_config_is_a_value_error():
    with pytest.raises(ValueError):
        ShapeParams(power=0.5).validate()


def test_bounding_box_contains_surface(bulb):
    lo, hi = bulb.bounding_box()
    assert_allclose(lo, -1.2)
    assert_allclose(hi, 1.2)
    assert not bulb.contains(np.array([1.3, 0.0, 0.0]))


def test_bounding_box_of_other_powers_is_the_escape_ball():
    cubic = Mandelbulb(xp=np, params=ShapeParams(power=3.0, bailout=2.0))
    lo, hi = cubic.bounding_box()
    assert_allclose(lo, -2.0)
    assert_allclose(hi, 2.0)
    # Points outside the escape ball can never belong to the set.
    assert not cubic.contains(np.array([2.01, 0.0, 0.0]))


def test_sphere_distance(unit_sphere):
    assert unit_sphere.distance(np.array([0.0, 3.0, 0.0])).distance == pytest.approx(2.0)
    assert unit_sphere.distance(np.array([0.0, 0.5, 0.0])).distance == 0.0
    assert unit_sphere.sdf(np.array([0.0, 0.5, 0.0])) == pytest.approx(-0.5)
    assert unit_sphere.contains(np.array([0.2, 0.2, 0.2]))


def test_sphere_rejects_bad_radius():
    with pytest.raises(InvalidConfigError):
        Sphere(xp=np, center=np.zeros(3), radius=0.0)
