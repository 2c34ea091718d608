"""Naive surface nets over the leaf lattice of the octree.

One vertex is placed in every leaf cell whose corners straddle the iso shell,
at the centroid of the interpolated edge crossings. Every lattice edge that
crosses the shell produces one quad joining the vertices of the four cells
around it.

Corner samples live on a single integer lattice shared by all cells, so two
neighbouring cells always agree on the sign of their common corners and the
resulting surface has no cracks between them.

See https://0fps.net/2012/07/12/smooth-voxel-terrain-part-2/
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from mandelscape.mesh.model import CellKind
from mandelscape.mesh.octree import OCTANTS, corner_kinds, sort_cells

if TYPE_CHECKING:
    from collections.abc import Callable

    from mandelscape.mesh.config import BoundingCube

logger = logging.getLogger(__name__)

# Cell edges as (lower corner, upper corner) octant ids, grouped by axis.
EDGES = np.array(
    [
        # x
        (0, 4), (1, 5), (2, 6), (3, 7),
        # y
        (0, 2), (1, 3), (4, 6), (5, 7),
        # z
        (0, 1), (2, 3), (4, 5), (6, 7),
    ],
    dtype=np.int64,
)
EDGE_AXIS = np.repeat(np.arange(3, dtype=np.int64), 4)

# The four cells around an edge leaving a lattice corner along each axis, in
# counter-clockwise order seen from the +axis side.
EDGE_RING = np.array(
    [
        [(0, -1, -1), (0, 0, -1), (0, 0, 0), (0, -1, 0)],
        [(-1, 0, -1), (-1, 0, 0), (0, 0, 0), (0, 0, -1)],
        [(-1, -1, 0), (0, -1, 0), (0, 0, 0), (-1, 0, 0)],
    ],
    dtype=np.int64,
)

MAX_CLOSURE_ROUNDS: int = 64


class CornerField:
    """Iso field (distance - iso_level) sampled lazily on the corner lattice."""

    def __init__(self, sample: Callable[[np.ndarray], np.ndarray], cube: BoundingCube, depth: int,
                 iso_level: float) -> None:
        self.sample = sample
        self.resolution = 2 ** depth
        self.step = cube.size / self.resolution
        self.origin = np.asarray(cube.origin, dtype=np.float64)
        self.iso_level = float(iso_level)

        self._keys = np.zeros(0, dtype=np.int64)
        self._values = np.zeros(0, dtype=np.float64)

    def key(self, corners: np.ndarray) -> np.ndarray:
        n = self.resolution + 1
        return (corners[..., 0] * n + corners[..., 1]) * n + corners[..., 2]

    def decode(self, keys: np.ndarray) -> np.ndarray:
        n = self.resolution + 1
        return np.stack([keys // (n * n), (keys // n) % n, keys % n], axis=-1)

    def position(self, corners: np.ndarray) -> np.ndarray:
        return self.origin + corners.astype(np.float64) * self.step

    @property
    def sampled(self) -> int:
        return int(self._keys.shape[0])

    def ensure(self, corners: np.ndarray) -> None:
        """Sample every corner not seen before."""
        keys = np.unique(self.key(corners).reshape(-1))
        missing = np.setdiff1d(keys, self._keys, assume_unique=True)
        if missing.shape[0] == 0:
            return

        values = self.sample(self.position(self.decode(missing))) - self.iso_level
        all_keys = np.concatenate([self._keys, missing])
        order = np.argsort(all_keys, kind="stable")
        self._keys = all_keys[order]
        self._values = np.concatenate([self._values, values])[order]

    def __getitem__(self, corners: np.ndarray) -> np.ndarray:
        keys = self.key(corners)
        return self._values[np.searchsorted(self._keys, keys)]


def cell_corners(cells: np.ndarray) -> np.ndarray:
    """(M, 3) cells -> (M, 8, 3) lattice corners in octant order."""
    return cells[:, None, :] + OCTANTS[None, :, :]


def crossing_edges(cells: np.ndarray, inside: np.ndarray) -> np.ndarray:
    """Unique lattice edges crossing the shell, rows (axis, x, y, z)."""
    a, b = EDGES[:, 0], EDGES[:, 1]
    crossing = inside[:, a] != inside[:, b]
    cell_i, edge_i = np.nonzero(crossing)
    if cell_i.shape[0] == 0:
        return np.zeros((0, 4), dtype=np.int64)

    lower = cells[cell_i] + OCTANTS[EDGES[edge_i, 0]]
    rows = np.concatenate([EDGE_AXIS[edge_i][:, None], lower], axis=-1)
    return np.unique(rows, axis=0)


def edge_neighbours(edges: np.ndarray) -> np.ndarray:
    """(E, 4) edges -> (E, 4, 3) ring of adjacent cells."""
    return edges[:, None, 1:] + EDGE_RING[edges[:, 0]]


@dataclass(frozen=True, slots=True)
class SurfaceNet:
    positions: np.ndarray
    cells: np.ndarray
    closed_cells: np.ndarray
    triangles: np.ndarray
    leaves_boundary: int
    leaves_full: int
    leaves_empty: int


def _cell_keys(cells: np.ndarray, resolution: int) -> np.ndarray:
    return (cells[:, 0] * resolution + cells[:, 1]) * resolution + cells[:, 2]


def _close_over_edges(field: CornerField, cells: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Grow the cell set until every crossing edge has its whole ring.

    Returns the closed cell set and its corner-inside mask.
    """
    res = field.resolution
    for _ in range(MAX_CLOSURE_ROUNDS):
        corners = cell_corners(cells)
        field.ensure(corners)
        inside = field[corners] < 0.0

        mixed = inside.any(axis=1) & ~inside.all(axis=1)
        ring = edge_neighbours(crossing_edges(cells[mixed], inside[mixed])).reshape(-1, 3)
        ring = ring[np.all((ring >= 0) & (ring < res), axis=1)]

        known = _cell_keys(cells, res)
        wanted = np.unique(_cell_keys(ring, res))
        new_keys = np.setdiff1d(wanted, known, assume_unique=True)
        if new_keys.shape[0] == 0:
            return cells, inside

        new_cells = np.stack([new_keys // (res * res), (new_keys // res) % res, new_keys % res], axis=-1)
        logger.debug(f"closing {new_cells.shape[0]} cells around crossing edges")
        cells = sort_cells(np.concatenate([cells, new_cells]))

    msg = "surface closure did not converge"
    raise RuntimeError(msg)


def _vertex_positions(field: CornerField, cells: np.ndarray) -> np.ndarray:
    corners = cell_corners(cells)
    pos = field.position(corners)
    val = field[corners]

    a, b = EDGES[:, 0], EDGES[:, 1]
    va, vb = val[:, a], val[:, b]
    crossing = (va < 0.0) != (vb < 0.0)

    denom = np.where(crossing, va - vb, 1.0)
    t = np.where(crossing, va / denom, 0.0)[..., None]
    points = pos[:, a] + t * (pos[:, b] - pos[:, a])

    count = crossing.sum(axis=1)[:, None]
    return (points * crossing[..., None]).sum(axis=1) / count


def _triangles(field: CornerField, cells: np.ndarray, edges: np.ndarray) -> np.ndarray:
    res = field.resolution
    ring = edge_neighbours(edges)
    valid = np.all((ring >= 0) & (ring < res), axis=(1, 2))
    edges, ring = edges[valid], ring[valid]
    if edges.shape[0] == 0:
        return np.zeros((0, 3), dtype=np.int64)

    keys = _cell_keys(cells, res)
    quad = np.searchsorted(keys, _cell_keys(ring.reshape(-1, 3), res)).reshape(-1, 4)

    # The ring winds around +axis; flip it where the outside is at the lower end.
    lower_outside = field[edges[:, 1:]] >= 0.0
    quad[lower_outside] = quad[lower_outside][:, ::-1]

    tris = np.stack([quad[:, [0, 1, 2]], quad[:, [0, 2, 3]]], axis=1)
    return tris.reshape(-1, 3)


def build_surface_net(field: CornerField, leaves: np.ndarray) -> SurfaceNet:
    """Tessellate the shell inside the given leaf cells."""
    if leaves.shape[0] == 0:
        return SurfaceNet(
            positions=np.zeros((0, 3), dtype=np.float64),
            cells=np.zeros((0, 3), dtype=np.int64),
            closed_cells=np.zeros((0, 3), dtype=np.int64),
            triangles=np.zeros((0, 3), dtype=np.int64),
            leaves_boundary=0,
            leaves_full=0,
            leaves_empty=0,
        )

    cells, inside = _close_over_edges(field, sort_cells(leaves))
    kinds = corner_kinds(inside)
    mixed = kinds == CellKind.BOUNDARY

    boundary = cells[mixed]
    positions = _vertex_positions(field, boundary)
    triangles = _triangles(field, boundary, crossing_edges(boundary, inside[mixed]))

    return SurfaceNet(
        positions=positions,
        cells=boundary,
        closed_cells=cells,
        triangles=triangles,
        leaves_boundary=int(mixed.sum()),
        leaves_full=int((kinds == CellKind.FULL).sum()),
        leaves_empty=int((kinds == CellKind.EMPTY).sum()),
    )
