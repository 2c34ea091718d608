from __future__ import annotations

from dataclasses import dataclass, field

from mandelscape.protocols import DistanceEstimator
from mandelscape.raymarch.config import TraceParams
from mandelscape.shading import Light, Material


@dataclass(frozen=True, slots=True)
class SceneBounds:
    """Global scene limits."""

    far_distance: float


@dataclass(frozen=True, slots=True)
class Scene:
    """Complete scene definition, shared read-only by both render paths."""

    shape: DistanceEstimator
    light: Light = field(default_factory=Light)
    material: Material = field(default_factory=Material)
    bounds: SceneBounds = field(default_factory=lambda: SceneBounds(far_distance=20.0))
    shadow: TraceParams = field(default_factory=TraceParams.shadow)
