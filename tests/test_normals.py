from __future__ import annotations

import numpy as np
import pytest

from mandelscape import estimate_normal
from mandelscape.normals import estimate_normals
from mandelscape.normals import estimate_normal as estimate_shape_normal


def test_sphere_normals_point_radially(unit_sphere):
    pts = np.array([[0.6, 0.0, 0.8], [0.0, -1.0, 0.0], [-0.48, 0.6, 0.64]])
    n = estimate_normals(np, unit_sphere, 1.5 * pts)
    np.testing.assert_allclose(n, pts, atol=1e-6)


def test_single_point_normal(unit_sphere):
    n = estimate_shape_normal(np, unit_sphere, np.array([0.0, 0.0, 1.5]))
    np.testing.assert_allclose(n, [0.0, 0.0, 1.0], atol=1e-6)


def test_flat_gradient_falls_back_to_up(unit_sphere):
    # Deep inside the sphere every sample reads zero distance.
    n = estimate_shape_normal(np, unit_sphere, np.zeros(3))
    np.testing.assert_array_equal(n, [0.0, 0.0, 1.0])


def test_bulb_normal_is_unit_length():
    n = estimate_normal((0.0, 0.0, 1.2))
    assert np.linalg.norm(n) == pytest.approx(1.0)
    # Above the bulb on the z axis the surface faces up.
    assert n[2] > 0.9


def test_non_positive_delta_is_rejected(unit_sphere):
    with pytest.raises(ValueError):
        estimate_normals(np, unit_sphere, np.array([[1.0, 0.0, 0.0]]), delta=0.0)
