from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Union

from mandelscape.errors import require


@dataclass(frozen=True, slots=True)
class TraceParams:
    """Sphere tracing limits.

    epsilon:
        Surface thickness. A march position whose distance estimate drops below
        this value is reported as a hit.
    max_steps:
        Upper bound on distance evaluations per ray.
    max_travel:
        Rays that travelled further than this are reported as a miss.
    start_offset:
        Step taken once when the origin already lies within epsilon of the
        surface, so rays leaving a surface do not hit it immediately.
        Defaults to 2 * epsilon.
    """

    epsilon: float = 0.03
    max_steps: int = 64
    max_travel: float = math.inf
    start_offset: float | None = None

    @property
    def offset(self) -> float:
        if self.start_offset is None:
            return 2.0 * self.epsilon
        return float(self.start_offset)

    def validate(self) -> TraceParams:
        require(self.epsilon > 0.0, f"epsilon must be > 0, got {self.epsilon}")
        require(int(self.max_steps) >= 1, f"max_steps must be >= 1, got {self.max_steps}")
        require(self.max_travel > 0.0, f"max_travel must be > 0, got {self.max_travel}")
        require(self.offset >= 0.0, f"start_offset must be >= 0, got {self.start_offset}")
        return self

    @classmethod
    def shadow(cls, epsilon: float = 0.03, max_steps: int = 10, max_travel: float = math.inf) -> TraceParams:
        """Cheaper preset used for occlusion rays."""
        return cls(epsilon=epsilon, max_steps=max_steps, max_travel=max_travel)


@dataclass(frozen=True, slots=True)
class Ray:
    """Ray origin and direction. The direction is normalised before marching."""

    origin: Any
    direction: Any


Termination = Literal["hit", "far", "max_steps"]


@dataclass(frozen=True, slots=True)
class Hit:
    point: Any
    steps: int
    travel: float
    path: Any = None

    @property
    def hit(self) -> bool:
        return True

    @property
    def termination(self) -> Termination:
        return "hit"


@dataclass(frozen=True, slots=True)
class Miss:
    steps: int
    travel: float
    termination: Termination = "max_steps"
    path: Any = None

    @property
    def hit(self) -> bool:
        return False


MarchResult = Union[Hit, Miss]


@dataclass(frozen=True, slots=True)
class ImageMarchResult:
    """Per-ray outcome of a batched march. Arrays share the batch shape."""

    hit: Any
    position: Any
    steps: Any
    traveled: Any
