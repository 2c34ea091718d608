from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mandelscape import Color, InvalidConfigError, Material
from mandelscape import shade as api_shade
from mandelscape.shading import Light, shade, shade_batch, sun_direction

MATERIAL = Material(base_color=(0.8, 0.5, 0.2), far_color=(0.2, 0.3, 0.4), ambient=0.1, fade_distance=10.0)
WHITE = Light(direction=(0.0, 0.0, -1.0), color=(1.0, 1.0, 1.0), strength=1.0)


def test_shadowed_point_gets_ambient_only():
    c = shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), MATERIAL, shadowed=True, light=WHITE)
    assert isinstance(c, Color)
    assert_allclose(c, np.array(MATERIAL.base_color) * 0.1)


def test_facing_away_gets_ambient_only():
    c = shade((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), MATERIAL, shadowed=False, light=WHITE)
    assert_allclose(c, np.array(MATERIAL.base_color) * 0.1)


def test_lit_point_adds_diffuse():
    c = shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), MATERIAL, shadowed=False, light=WHITE)
    assert_allclose(c, [0.88, 0.55, 0.22])


def test_grazing_light_scales_diffuse():
    n = np.array([0.0, np.sqrt(0.5), np.sqrt(0.5)])
    c = shade(n, (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), MATERIAL, shadowed=False, light=WHITE)
    assert_allclose(c, np.array(MATERIAL.base_color) * (0.1 + np.sqrt(0.5)))


def test_albedo_fades_with_view_distance():
    far = shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 25.0), MATERIAL, shadowed=True, light=WHITE)
    half = shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 5.0, 0.0), MATERIAL, shadowed=True, light=WHITE)

    assert_allclose(far, np.array(MATERIAL.far_color) * 0.1)
    assert_allclose(half, (np.array(MATERIAL.base_color) + np.array(MATERIAL.far_color)) * 0.5 * 0.1)


def test_output_is_clipped():
    bright = Light(direction=(0.0, 0.0, -1.0), strength=5.0)
    c = shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), MATERIAL, shadowed=False, light=bright)
    assert max(c) <= 1.0


def test_batch_matches_single():
    normals = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, -1.0], [1.0, 0.0, 0.0]])
    view = np.array([[0.0, 0.0, 1.0], [0.0, 2.0, 0.0], [3.0, 0.0, 0.0]])
    shadowed = np.array([False, False, True])
    light_dir = (0.3, -0.2, -1.0)

    batch = shade_batch(np, normals, light_dir, view, MATERIAL, shadowed)
    for i in range(3):
        assert_allclose(batch[i], shade(normals[i], light_dir, view[i], MATERIAL, bool(shadowed[i])))


def test_api_shade_uses_default_material():
    c = api_shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), shadowed=True)
    assert_allclose(c, np.array(Material().base_color) * Material().ambient)


def test_invalid_material_is_rejected():
    with pytest.raises(InvalidConfigError):
        api_shade((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), Material(ambient=1.5))


def test_sun_direction_points_down_from_zenith():
    assert_allclose(sun_direction(0.0, 0.0), (0.0, 0.0, -1.0), atol=1e-12)
    assert np.linalg.norm(sun_direction(0.7, 1.9)) == pytest.approx(1.0)
