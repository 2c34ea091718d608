from __future__ import annotations

import numpy as np
import pytest

from mandelscape.mesh import BoundingCube, ExtractParams
from mandelscape.shape import Mandelbulb, ShapeParams, Sphere


@pytest.fixture
def xp():
    return np


@pytest.fixture
def bulb() -> Mandelbulb:
    return Mandelbulb(xp=np, params=ShapeParams(power=8.0, bailout=2.0, max_iterations=10))


@pytest.fixture
def unit_sphere() -> Sphere:
    return Sphere(xp=np, center=np.zeros(3), radius=1.0)


@pytest.fixture
def small_sphere() -> Sphere:
    return Sphere(xp=np, center=np.zeros(3), radius=0.6)


@pytest.fixture
def sphere_cube() -> BoundingCube:
    return BoundingCube(origin=np.array([-1.0, -1.0, -1.0]), size=2.0)


@pytest.fixture
def coarse_params() -> ExtractParams:
    return ExtractParams(max_depth=4, iso_level=0.03)
