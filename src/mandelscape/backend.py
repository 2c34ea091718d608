from __future__ import annotations

import logging
from typing import Any

import numpy as np

try:
    import cupy as cp  # type: ignore
except ImportError:  # pragma: no cover
    cp = None

logger = logging.getLogger(__name__)

ArrayModule = Any


def get_array_module(use_cuda: bool = False) -> ArrayModule:
    """NumPy, or CuPy when requested and importable."""
    if not use_cuda:
        return np
    if cp is None:
        logger.warning("CUDA requested but CuPy is not installed, falling back to NumPy")
        return np
    return cp


def is_cupy(xp: ArrayModule) -> bool:
    return cp is not None and xp is cp


def as_points(xp: ArrayModule, a: Any) -> Any:
    """float64 xp array of shape (..., 3)."""
    p = xp.asarray(a, dtype=xp.float64)
    if p.ndim == 0 or p.shape[-1] != 3:
        msg = f"expected points shaped (..., 3), got {p.shape}"
        raise ValueError(msg)
    return p


def to_numpy(xp: ArrayModule, a: Any) -> np.ndarray:
    """Host copy of an xp array, for meshes, images and matplotlib."""
    if is_cupy(xp) or (cp is not None and isinstance(a, cp.ndarray)):
        return cp.asnumpy(a)  # type: ignore[union-attr]
    return np.asarray(a)
