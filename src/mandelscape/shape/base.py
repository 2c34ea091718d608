from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mandelscape.errors import require


@dataclass(frozen=True, slots=True)
class DEResult:
    """Distance estimate for one point.

    ``distance`` is never negative. Zero means the point is at or inside the
    surface; callers must not try to step away from it using the estimate.
    """

    distance: float
    iterations_used: int


@dataclass(frozen=True, slots=True)
class DEBatch:
    """Distance estimates for a batch of points, arrays shaped like the batch."""

    distance: Any
    iterations_used: Any

    def at(self, i: Any) -> DEResult:
        return DEResult(
            distance=float(self.distance[i]),
            iterations_used=int(self.iterations_used[i]),
        )


@dataclass(frozen=True, slots=True)
class ShapeParams:
    """Fixed parameters of the power-n bulb.

    Attributes
    ----------
    power:
        Fractal exponent. 8 gives the classic bulb.
    bailout:
        Escape radius. Orbits leaving this ball are treated as diverging.
    max_iterations:
        Upper bound on orbit length per distance query.
    distance_floor:
        Distance reported for points whose orbit never escaped. Keeps callers
        making bounded progress instead of stalling on a zero step.

    """

    power: float = 8.0
    bailout: float = 2.0
    max_iterations: int = 10
    distance_floor: float = 1e-5

    def validate(self) -> ShapeParams:
        require(self.power > 1.0, f"power must be > 1, got {self.power}")
        require(self.bailout > 0.0, f"bailout must be > 0, got {self.bailout}")
        require(
            int(self.max_iterations) >= 1,
            f"max_iterations must be >= 1, got {self.max_iterations}",
        )
        require(
            self.distance_floor > 0.0,
            f"distance_floor must be > 0, got {self.distance_floor}",
        )
        return self

    @property
    def integer_power(self) -> bool:
        return float(self.power).is_integer()
