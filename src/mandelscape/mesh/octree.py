"""Level-synchronous octree pruning.

Cells are tracked as integer lattice coordinates per depth, so a cell at
depth k with index (i, j, k) spans origin + index * size_k with
size_k = cube.size / 2^k. Children of a cell are ordered like the octants

    0 => (-x, -y, -z)    4 => (+x, -y, -z)
    1 => (-x, -y, +z)    5 => (+x, -y, +z)
    2 => (-x, +y, -z)    6 => (+x, +y, -z)
    3 => (-x, +y, +z)    7 => (+x, +y, +z)

and every level is sorted lexicographically, which fixes the traversal order.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from mandelscape.backend import to_numpy
from mandelscape.errors import ExtractionCancelled
from mandelscape.mesh.model import Cell, CellKind

if TYPE_CHECKING:
    from mandelscape.backend import ArrayModule
    from mandelscape.mesh.config import BoundingCube
    from mandelscape.protocols import DistanceEstimator

logger = logging.getLogger(__name__)

OCTANTS = np.array([[(i >> 2) & 1, (i >> 1) & 1, i & 1] for i in range(8)], dtype=np.int64)

SQRT3_HALF = 0.5 * float(np.sqrt(3.0))


def sort_cells(cells: np.ndarray) -> np.ndarray:
    """Sort (N, 3) integer coordinates by x, then y, then z."""
    if cells.shape[0] == 0:
        return cells
    order = np.lexsort((cells[:, 2], cells[:, 1], cells[:, 0]))
    return cells[order]


class DistanceSampler:
    """Evaluates the distance estimator on NumPy point batches.

    With an executor the batch is cut into contiguous chunks and mapped in
    order, so the result is identical to the single-threaded one.
    """

    MIN_CHUNK: int = 4096

    def __init__(self, xp: ArrayModule, shape: DistanceEstimator, executor: Executor | None = None,
                 workers: int = 1) -> None:
        self.xp = xp
        self.shape = shape
        self.executor = executor
        self.workers = max(1, int(workers))
        self.evaluated = 0

    def _one(self, points: np.ndarray) -> np.ndarray:
        d = self.shape.distance_batch(self.xp.asarray(points, dtype=self.xp.float64)).distance
        return to_numpy(self.xp, d).astype(np.float64)

    def __call__(self, points: np.ndarray) -> np.ndarray:
        n = points.shape[0]
        self.evaluated += n
        if n == 0:
            return np.zeros(0, dtype=np.float64)
        if self.executor is None or self.workers == 1 or n < 2 * self.MIN_CHUNK:
            return self._one(points)

        chunks = np.array_split(points, min(self.workers, n // self.MIN_CHUNK))
        return np.concatenate(list(self.executor.map(self._one, chunks)))


@dataclass(frozen=True, slots=True)
class OctreeLeaves:
    """Surviving leaf cells of the pruning pass."""

    depth: int
    cells: np.ndarray
    visited: int
    pruned: int


def is_empty_cell(distance_at_center: Any, size: float, iso_level: float) -> Any:
    """A cell whose center is further from the surface than its half diagonal
    (plus the shell thickness) cannot contain any of the shell."""
    return distance_at_center > SQRT3_HALF * size + iso_level


def corner_kinds(inside: np.ndarray) -> np.ndarray:
    """CellKind of every row of an (M, 8) corner inside-mask."""
    kinds = np.full(inside.shape[0], CellKind.BOUNDARY, dtype=object)
    kinds[inside.all(axis=1)] = CellKind.FULL
    kinds[~inside.any(axis=1)] = CellKind.EMPTY
    return kinds


def classify_cell(
        sample: Callable[[np.ndarray], np.ndarray],
        cube: BoundingCube,
        index: tuple[int, int, int],
        depth: int,
        iso_level: float,
) -> Cell:
    """Classify one cell the way the surface net sees it.

    Cells failing the center bound are EMPTY without sampling their corners.
    Otherwise the corner signs decide, so a shell pocket that fits between
    the corners reads as EMPTY and gets no vertex.
    """
    size = cube.size / 2 ** depth
    cube_origin = np.asarray(cube.origin, dtype=np.float64)
    lattice = np.asarray(index, dtype=np.int64)
    origin = cube_origin + lattice.astype(np.float64) * size

    d_center = float(sample((origin + 0.5 * size)[None, :])[0])
    if is_empty_cell(d_center, size, iso_level):
        kind = CellKind.EMPTY
    else:
        # Same lattice arithmetic as CornerField.position, so shared corners agree.
        corners = cube_origin + (lattice[None, :] + OCTANTS).astype(np.float64) * size
        kind = corner_kinds((sample(corners) - iso_level < 0.0)[None, :])[0]

    return Cell(index=tuple(int(i) for i in index), depth=depth, origin=origin, size=size, kind=kind)


def prune(
        sample: DistanceSampler,
        cube: BoundingCube,
        leaf_depth: int,
        iso_level: float,
        should_abort: Callable[[], bool] | None = None,
) -> OctreeLeaves:
    """Descend from the root, dropping provably empty cells on every level.

    All children of the surviving cells of one level are evaluated together
    before the next level starts.
    """
    origin = np.asarray(cube.origin, dtype=np.float64)
    cells = np.zeros((1, 3), dtype=np.int64)
    visited = 0
    pruned = 0

    for depth in range(leaf_depth + 1):
        if should_abort is not None and should_abort():
            msg = f"extraction aborted at depth {depth}"
            raise ExtractionCancelled(msg)

        size = cube.size / 2 ** depth
        centers = origin[None, :] + (cells.astype(np.float64) + 0.5) * size
        keep = ~is_empty_cell(sample(centers), size, iso_level)

        visited += cells.shape[0]
        pruned += int((~keep).sum())
        cells = cells[keep]

        logger.debug(f"depth {depth}: {int(keep.sum())}/{keep.shape[0]} cells survive")

        if depth < leaf_depth:
            cells = sort_cells((cells[:, None, :] * 2 + OCTANTS[None, :, :]).reshape(-1, 3))

    return OctreeLeaves(depth=leaf_depth, cells=sort_cells(cells), visited=visited, pruned=pruned)
