from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from mandelscape.backend import to_numpy
from mandelscape.math_utils import cross, look_at, normalize_batch, perspective

if TYPE_CHECKING:
    from mandelscape.backend import ArrayModule


@dataclass(frozen=True, slots=True)
class Camera3D:
    position: Any
    forward: Any
    up: Any
    fov_x_deg: float
    fov_y_deg: float
    near: float = 0.01
    far: float = 100.0

    def basis(self, xp: ArrayModule) -> tuple[Any, Any, Any]:
        f = normalize_batch(xp, xp.asarray(self.forward, dtype=xp.float64))
        up_hint = normalize_batch(xp, xp.asarray(self.up, dtype=xp.float64))
        r = normalize_batch(xp, cross(xp, f, up_hint))
        u = normalize_batch(xp, cross(xp, r, f))
        return f, r, u

    def ray_directions_grid(self, xp: ArrayModule, width: int, height: int) -> Any:
        """Return rd0 of shape (H, W, 3), normalized.

        Uses independent horizontal and vertical FOV. Rays go through pixel
        centers, matching the rasterizer's sampling.
        """
        forward, right, up = self.basis(xp)

        half_x = np.deg2rad(self.fov_x_deg) * 0.5
        half_y = np.deg2rad(self.fov_y_deg) * 0.5

        tx = float(np.tan(half_x))
        ty = float(np.tan(half_y))

        xs = ((xp.arange(width, dtype=xp.float64) + 0.5) / width * 2.0 - 1.0) * tx
        ys = (1.0 - (xp.arange(height, dtype=xp.float64) + 0.5) / height * 2.0) * ty  # top -> bottom

        rd = (
                forward[None, None, :]
                + xs[None, :, None] * right[None, None, :]
                + ys[:, None, None] * up[None, None, :]
        )
        return normalize_batch(xp, rd)

    def view_matrix(self, xp: ArrayModule) -> np.ndarray:
        """World -> camera matrix (camera looks down -z)."""
        pos = to_numpy(xp, xp.asarray(self.position, dtype=xp.float64))
        fwd = to_numpy(xp, xp.asarray(self.forward, dtype=xp.float64))
        return look_at(pos, pos + fwd, to_numpy(xp, xp.asarray(self.up, dtype=xp.float64)))

    def projection_matrix(self) -> np.ndarray:
        """Camera -> clip matrix for this camera's FOV."""
        tx = float(np.tan(np.deg2rad(self.fov_x_deg) * 0.5))
        ty = float(np.tan(np.deg2rad(self.fov_y_deg) * 0.5))
        return perspective(np.deg2rad(self.fov_y_deg), tx / ty, self.near, self.far)

    @staticmethod
    def vertical_fov(width: int, height: int, fov_x_deg: float) -> float:
        """Vertical FOV that keeps square pixels for the given image size."""
        aspect = float(width) / float(height)
        return float(np.rad2deg(2.0 * np.arctan(np.tan(np.deg2rad(fov_x_deg) * 0.5) / aspect)))

    @classmethod
    def from_look_at(
            cls,
            position: Any,
            look_at: Any,
            up: Any,
            fov_x_deg: float,
            fov_y_deg: float,
            xp: ArrayModule,
    ) -> Camera3D:
        pos = xp.asarray(position, dtype=xp.float64)
        tgt = xp.asarray(look_at, dtype=xp.float64)
        forward = tgt - pos
        return cls(position=pos, forward=forward, up=up, fov_x_deg=fov_x_deg, fov_y_deg=fov_y_deg)

    @classmethod
    def orbit(
            cls,
            target: Any,
            radius: float,
            height: float,
            angle_deg: float,
            fov_x_deg: float,
            fov_y_deg: float,
            xp: ArrayModule,
            up: Any = (0.0, 0.0, 1.0),
    ) -> Camera3D:
        """Camera on a horizontal circle around ``target``, looking at it."""
        a = np.deg2rad(angle_deg)
        tgt = xp.asarray(target, dtype=xp.float64)
        offset = xp.asarray([radius * np.cos(a), radius * np.sin(a), height], dtype=xp.float64)
        return cls.from_look_at(tgt + offset, tgt, xp.asarray(up, dtype=xp.float64), fov_x_deg, fov_y_deg, xp)
