from __future__ import annotations

import math
from typing import Any

import numpy as np


def normalize(xp: Any, v: Any, eps: float = 1e-12) -> Any:
    """Normalize vector with division-by-zero guard."""
    n = xp.linalg.norm(v)
    if float(n) <= eps:
        return v
    return v / n


def normalize_batch(xp: Any, v: Any) -> Any:
    """Normalize vector with division-by-zero guard."""
    n = xp.linalg.norm(v, axis=-1, keepdims=True)
    n = xp.maximum(n, xp.asarray(1e-12, dtype=xp.float64))
    return v / n


def cross(xp: Any, a: Any, b: Any) -> Any:
    """Cross product that works for NumPy/CuPy and array-likes."""
    if hasattr(xp, "cross"):
        return xp.cross(a, b)
    ax, ay, az = a[..., 0], a[..., 1], a[..., 2]
    bx, by, bz = b[..., 0], b[..., 1], b[..., 2]
    return xp.stack([ay * bz - az * by, az * bx - ax * bz, ax * by - ay * bx], axis=-1)


# ---------------------------------------------------------------------------
# 4x4 matrices
#
# Matrices are row-major numpy arrays acting on column vectors, so a point p
# maps to M @ [p, 1]. Camera space looks down -z (OpenGL convention).
# ---------------------------------------------------------------------------


def look_at(eye: Any, target: Any, up: Any) -> np.ndarray:
    """World -> camera (view) matrix."""
    eye = np.asarray(eye, dtype=np.float64)
    f = normalize(np, np.asarray(target, dtype=np.float64) - eye)
    s = normalize(np, np.cross(f, np.asarray(up, dtype=np.float64)))
    u = np.cross(s, f)

    m = np.eye(4, dtype=np.float64)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -float(np.dot(s, eye))
    m[1, 3] = -float(np.dot(u, eye))
    m[2, 3] = float(np.dot(f, eye))
    return m


def perspective(fov_y_rad: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Camera -> clip matrix, depth mapped to [-1, 1]."""
    if not 0.0 < fov_y_rad < math.pi:
        msg = f"fov_y must be in (0, pi), got {fov_y_rad}"
        raise ValueError(msg)
    if not 0.0 < near < far:
        msg = f"expected 0 < near < far, got near={near}, far={far}"
        raise ValueError(msg)

    t = 1.0 / math.tan(fov_y_rad * 0.5)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = t / aspect
    m[1, 1] = t
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = 2.0 * far * near / (near - far)
    m[3, 2] = -1.0
    return m


def transform_points(m: np.ndarray, points: Any) -> np.ndarray:
    """Apply a 4x4 matrix to (..., 3) points, with perspective divide.

    Returns (..., 4) with xyz already divided by w and the raw w kept in the
    last column (useful for clipping).
    """
    p = np.asarray(points, dtype=np.float64)
    ones = np.ones(p.shape[:-1] + (1,), dtype=np.float64)
    h = np.concatenate([p, ones], axis=-1) @ m.T
    w = h[..., 3:4]
    safe_w = np.where(np.abs(w) < 1e-12, 1e-12, w)
    return np.concatenate([h[..., :3] / safe_w, w], axis=-1)

