from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from mandelscape.errors import require

MAX_DEPTH_LIMIT: int = 10


@dataclass(frozen=True, slots=True)
class BoundingCube:
    """Axis-aligned cube given by its minimum corner and edge length."""

    origin: Any
    size: float

    def validate(self) -> BoundingCube:
        require(self.size > 0.0, f"cell size must be > 0, got {self.size}")
        require(math.isfinite(self.size), f"cell size must be finite, got {self.size}")
        o = np.asarray(self.origin, dtype=np.float64)
        require(o.shape == (3,), f"cube origin must be a 3-vector, got shape {o.shape}")
        require(bool(np.all(np.isfinite(o))), "cube origin must be finite")
        return self

    @classmethod
    def centered(cls, center: Any, size: float) -> BoundingCube:
        c = np.asarray(center, dtype=np.float64)
        return cls(origin=c - 0.5 * size, size=float(size))

    @classmethod
    def around(cls, lo: Any, hi: Any) -> BoundingCube:
        """Smallest cube containing the box [lo, hi]."""
        lo = np.asarray(lo, dtype=np.float64)
        hi = np.asarray(hi, dtype=np.float64)
        size = float(np.max(hi - lo))
        return cls.centered((lo + hi) * 0.5, size)

    @property
    def center(self) -> np.ndarray:
        return np.asarray(self.origin, dtype=np.float64) + 0.5 * self.size


@dataclass(frozen=True, slots=True)
class ExtractParams:
    """Surface extraction limits.

    max_depth:
        Octree depth of the leaves, the mesh resolution is 2^max_depth cells
        per axis.
    min_cell_size:
        Subdivision also stops before children would get smaller than this.
    iso_level:
        Distance of the extracted shell from the fractal. Must exceed the
        shape's distance floor so interior points read as inside.
    workers:
        Threads used for distance queries. Results are merged in order, so
        the mesh does not depend on this value.
    normal_delta:
        Finite-difference step for vertex normals. Defaults to a quarter of the
        leaf size, capped at a tenth of iso_level.
    """

    max_depth: int = 5
    min_cell_size: float = 0.0
    iso_level: float = 0.03
    workers: int = 1
    normal_delta: float | None = None

    def validate(self) -> ExtractParams:
        require(
            0 <= int(self.max_depth) <= MAX_DEPTH_LIMIT,
            f"max_depth must be in [0, {MAX_DEPTH_LIMIT}], got {self.max_depth}",
        )
        require(self.min_cell_size >= 0.0, f"min_cell_size must be >= 0, got {self.min_cell_size}")
        require(self.iso_level > 0.0, f"iso_level must be > 0, got {self.iso_level}")
        require(int(self.workers) >= 1, f"workers must be >= 1, got {self.workers}")
        if self.normal_delta is not None:
            require(self.normal_delta > 0.0, f"normal_delta must be > 0, got {self.normal_delta}")
        return self

    def leaf_depth(self, cube: BoundingCube) -> int:
        depth = 0
        while depth < int(self.max_depth) and cube.size / 2 ** (depth + 1) >= self.min_cell_size:
            depth += 1
        return depth
