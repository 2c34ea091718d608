from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from mandelscape.shape.base import DEBatch, DEResult


class SDF(Protocol):
    """Pure distance field contract."""

    def sdf(self, p: Any) -> Any:
        """Distance to surface at point(s) p, shape (..., 3) -> (...)."""
        ...


class DistanceEstimator(SDF, Protocol):
    """Conservative, non-negative distance estimator over 3D space.

    Implementations must never overestimate the true distance to the surface
    and must hold no mutable state, so one instance can be shared by any number
    of threads.
    """

    def distance(self, p: Any) -> DEResult:
        """Distance estimate for a single point."""
        ...

    def distance_batch(self, points: Any) -> DEBatch:
        """Distance estimates for (..., 3) points."""
        ...

    def contains(self, p: Any) -> bool:
        """True iff p lies inside the shape."""
        ...

    def bounding_box(self) -> tuple[Any, Any]:
        """(lo, hi) corners of a box enclosing the whole surface."""
        ...
