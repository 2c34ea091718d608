from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import numpy as np


class CellKind(enum.Enum):
    EMPTY = "empty"
    BOUNDARY = "boundary"
    FULL = "full"


@dataclass(frozen=True, slots=True)
class Cell:
    """One octree cell.

    ``index`` is the integer position of the cell in the lattice of its depth,
    so the cell spans origin + index * size ... origin + (index + 1) * size.
    """

    index: tuple[int, int, int]
    depth: int
    origin: Any
    size: float
    kind: CellKind

    @property
    def center(self) -> np.ndarray:
        return np.asarray(self.origin, dtype=np.float64) + 0.5 * self.size

    @property
    def half_diagonal(self) -> float:
        return 0.5 * float(np.sqrt(3.0)) * self.size


@dataclass(frozen=True, slots=True)
class Mesh:
    """Immutable triangle mesh snapshot.

    positions:
        (N, 3) float32 vertex positions.
    normals:
        (N, 3) float32 unit vertex normals.
    distances:
        (N,) float32 distance estimate at each vertex, a confidence cue for
        shading and debugging.
    indices:
        (M, 3) uint32 triangles, counter-clockwise seen from outside.
    """

    positions: np.ndarray
    normals: np.ndarray
    distances: np.ndarray
    indices: np.ndarray

    def __post_init__(self) -> None:
        for name in ("positions", "normals", "distances", "indices"):
            arr = np.array(getattr(self, name), copy=True)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @classmethod
    def empty(cls) -> Mesh:
        return cls(
            positions=np.zeros((0, 3), dtype=np.float32),
            normals=np.zeros((0, 3), dtype=np.float32),
            distances=np.zeros(0, dtype=np.float32),
            indices=np.zeros((0, 3), dtype=np.uint32),
        )

    @property
    def n_vertices(self) -> int:
        return int(self.positions.shape[0])

    @property
    def n_triangles(self) -> int:
        return int(self.indices.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.n_vertices == 0 and self.n_triangles == 0

    def triangle_normals(self) -> np.ndarray:
        """Unnormalised geometric normal of every triangle, (M, 3)."""
        p = self.positions.astype(np.float64)
        a, b, c = p[self.indices[:, 0]], p[self.indices[:, 1]], p[self.indices[:, 2]]
        return np.cross(b - a, c - a)


@dataclass(frozen=True, slots=True)
class ExtractStats:
    """Phase timings and cell counts of one extraction.

    classify_s:
        Octree pruning.
    tessellate_s:
        Surface net closure, vertices and faces.
    attributes_s:
        Vertex normals and distances.
    """

    classify_s: float = 0.0
    tessellate_s: float = 0.0
    attributes_s: float = 0.0
    cells_visited: int = 0
    cells_pruned: int = 0
    leaves_boundary: int = 0
    leaves_full: int = 0
    leaves_empty: int = 0

    @property
    def total_s(self) -> float:
        return self.classify_s + self.tessellate_s + self.attributes_s

    def __str__(self) -> str:
        return (
            f"{self.total_s * 1e3:9.2f} ms "
            f"({self.classify_s * 1e3:.2f}, {self.tessellate_s * 1e3:.2f}, {self.attributes_s * 1e3:.2f})"
        )
