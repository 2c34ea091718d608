from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Rendered frame.

    image:
        (H, W, 3) float32 RGB in [0, 1].
    coverage:
        (H, W) bool, True where the surface was drawn.
    depth:
        (H, W) float64 distance from the camera along the view ray, inf where
        nothing was drawn.
    """

    image: np.ndarray
    coverage: np.ndarray
    depth: np.ndarray


DEFAULT_BACKGROUND: tuple[float, float, float] = (0.05, 0.06, 0.09)
