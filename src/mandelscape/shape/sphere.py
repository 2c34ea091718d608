from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mandelscape.backend import ArrayModule
from mandelscape.errors import require
from mandelscape.protocols import DistanceEstimator
from mandelscape.shape.base import DEBatch, DEResult


@dataclass(frozen=True, slots=True)
class Sphere(DistanceEstimator):
    """Exact sphere distance field, clamped to zero inside."""

    xp: ArrayModule
    center: Any
    radius: float

    def __post_init__(self) -> None:
        require(self.radius > 0.0, f"sphere radius must be > 0, got {self.radius}")

    def sdf(self, p: Any) -> Any:
        # For p shaped (..., 3) this returns shape (...)
        c = self.xp.asarray(self.center, dtype=self.xp.float64)
        return self.xp.linalg.norm(self.xp.asarray(p, dtype=self.xp.float64) - c, axis=-1) - self.radius

    def distance_batch(self, points: Any) -> DEBatch:
        d = self.xp.maximum(self.sdf(points), 0.0)
        return DEBatch(distance=d, iterations_used=self.xp.zeros(d.shape, dtype=self.xp.int64))

    def distance(self, p: Any) -> DEResult:
        return DEResult(distance=max(float(self.sdf(p)), 0.0), iterations_used=0)

    def contains(self, p: Any) -> bool:
        return float(self.sdf(p)) <= 0.0

    def bounding_box(self) -> tuple[Any, Any]:
        c = self.xp.asarray(self.center, dtype=self.xp.float64)
        return c - self.radius, c + self.radius
