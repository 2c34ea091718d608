from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import TYPE_CHECKING

import numpy as np

from mandelscape.backend import to_numpy
from mandelscape.errors import ExtractionCancelled
from mandelscape.mesh.config import BoundingCube, ExtractParams
from mandelscape.mesh.model import ExtractStats, Mesh
from mandelscape.mesh.octree import DistanceSampler, prune
from mandelscape.mesh.surface_nets import CornerField, build_surface_net
from mandelscape.normals import DEFAULT_DELTA, estimate_normals

if TYPE_CHECKING:
    from mandelscape.backend import ArrayModule
    from mandelscape.protocols import DistanceEstimator

logger = logging.getLogger(__name__)


class SurfaceExtractor:
    """Turns a distance estimator into a triangle mesh of its iso shell.

    The extractor holds only read-only configuration. Each call to
    ``extract`` builds a fresh Mesh; a host that moves the camera simply
    discards the old mesh and asks again.
    """

    def __init__(self, xp: ArrayModule, shape: DistanceEstimator, params: ExtractParams | None = None) -> None:
        """Initialise the extractor."""
        self.xp = xp
        self.shape = shape
        self.params = (params or ExtractParams()).validate()

    def extract(
            self,
            cube: BoundingCube,
            should_abort: Callable[[], bool] | None = None,
            executor: Executor | None = None,
    ) -> tuple[Mesh, ExtractStats]:
        """Extract the mesh inside ``cube``.

        should_abort:
            Polled between octree levels and before tessellation. Returning
            True raises ExtractionCancelled, no partial mesh is produced.
        executor:
            Optional pool for distance queries; one is created for the call when
            ``params.workers > 1`` and none is given.
        """
        cube.validate()
        if executor is None and self.params.workers > 1:
            with ThreadPoolExecutor(max_workers=int(self.params.workers)) as pool:
                return self._extract(cube, should_abort, pool)
        return self._extract(cube, should_abort, executor)

    def _extract(
            self,
            cube: BoundingCube,
            should_abort: Callable[[], bool] | None,
            executor: Executor | None,
    ) -> tuple[Mesh, ExtractStats]:
        cfg = self.params
        depth = cfg.leaf_depth(cube)
        sample = DistanceSampler(self.xp, self.shape, executor=executor, workers=cfg.workers)

        t0 = time.perf_counter()
        leaves = prune(sample, cube, depth, cfg.iso_level, should_abort)

        if should_abort is not None and should_abort():
            msg = "extraction aborted before tessellation"
            raise ExtractionCancelled(msg)

        t1 = time.perf_counter()
        field = CornerField(sample, cube, depth, cfg.iso_level)
        net = build_surface_net(field, leaves.cells)

        t2 = time.perf_counter()
        if net.positions.shape[0] == 0:
            mesh = Mesh.empty()
        else:
            leaf_size = cube.size / 2 ** depth
            delta = cfg.normal_delta
            if delta is None:
                # Samples must stay outside the zero-clamped interior of the shell.
                delta = max(DEFAULT_DELTA, min(0.25 * leaf_size, 0.1 * cfg.iso_level))
            normals = to_numpy(self.xp, estimate_normals(self.xp, self.shape, self.xp.asarray(net.positions), delta))
            mesh = Mesh(
                positions=net.positions.astype(np.float32),
                normals=normals.astype(np.float32),
                distances=sample(net.positions).astype(np.float32),
                indices=net.triangles.astype(np.uint32),
            )
        t3 = time.perf_counter()

        stats = ExtractStats(
            classify_s=t1 - t0,
            tessellate_s=t2 - t1,
            attributes_s=t3 - t2,
            cells_visited=leaves.visited,
            cells_pruned=leaves.pruned,
            leaves_boundary=net.leaves_boundary,
            leaves_full=net.leaves_full,
            leaves_empty=net.leaves_empty,
        )

        logger.info(
            f"Extracted {mesh.n_vertices} vertices, {mesh.n_triangles} triangles "
            f"at depth {depth} in {stats}",
        )
        logger.debug(
            f"cells visited={stats.cells_visited} pruned={stats.cells_pruned} "
            f"boundary={stats.leaves_boundary} full={stats.leaves_full} "
            f"corner samples={field.sampled} distance queries={sample.evaluated}",
        )
        return mesh, stats


def extract_mesh(
        xp: ArrayModule,
        shape: DistanceEstimator,
        cube: BoundingCube,
        params: ExtractParams | None = None,
        should_abort: Callable[[], bool] | None = None,
) -> Mesh:
    """Shortcut for SurfaceExtractor(...).extract(...) without the stats."""
    mesh, _ = SurfaceExtractor(xp, shape, params).extract(cube, should_abort=should_abort)
    return mesh
